from flask import Blueprint, Response, jsonify
import time

from taskboard.database import check_db_health
from taskboard.metrics import CONTENT_TYPE_LATEST, generate_latest

health_bp = Blueprint("health", __name__)


@health_bp.route("/health")
def health_check():
    return jsonify({"status": "ok", "timestamp": time.time()})


@health_bp.route("/ready")
def readiness_check():
    start = time.time()
    db_ok = check_db_health()
    checks = {"database": {"status": "ok" if db_ok else "error", "latency": round(time.time() - start, 3)}}
    return jsonify({"status": "ok" if db_ok else "error", "ready": db_ok, "checks": checks}), 200 if db_ok else 503


@health_bp.route("/metrics")
def metrics():
    return Response(generate_latest(), mimetype=CONTENT_TYPE_LATEST)
