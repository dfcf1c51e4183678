"""Ensure project root is importable for tests and isolate DB for pytest.

Tests never touch data/taskboard.db: DATABASE_URL and DATA_DIR point to a
temporary directory before any taskboard module reads its settings. Set
TEST_DATABASE_URL to run the suite against another database (e.g. PostgreSQL).
"""
import os
import shutil
import sys
import tempfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TEST_DATA_DIR = tempfile.mkdtemp(prefix="taskboard-test-")
TEST_DB_URL = os.environ.get("TEST_DATABASE_URL", f"sqlite:///{os.path.join(TEST_DATA_DIR, 'taskboard_test.db')}")

# Muss vor dem ersten Import von taskboard.config gesetzt sein
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["DATA_DIR"] = TEST_DATA_DIR
os.environ.setdefault("ORDERING_CONCURRENCY", "lock")
os.environ.setdefault("STATION_VALIDATION", "strict")


@pytest.hookimpl(trylast=True)
def pytest_sessionfinish(session, exitstatus):
    """Remove the temporary data directory after all tests, regardless of outcome."""
    shutil.rmtree(TEST_DATA_DIR, ignore_errors=True)
