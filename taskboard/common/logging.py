"""Logging-Setup für das Taskboard.

Jede Zeile trägt die Korrelations-ID des aktuellen Requests. Ordering-Logs
können zusätzlich ``task_id``, ``station`` und ``operation`` per ``extra=``
mitgeben; der JSON-Formatter übernimmt sie als eigene Felder.
"""
import json
import logging
import logging.config
import os
import sys
from contextvars import ContextVar
from typing import Optional

import yaml

# Korrelations-ID pro Request (Thread- und Async-sicher)
correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")

BOARD_FIELDS = ("task_id", "station", "operation")

TEXT_FORMAT = "[%(asctime)s] %(levelname)s %(name)s [%(correlation_id)s]: %(message)s"


class JsonFormatter(logging.Formatter):
    """Eine JSON-Zeile pro Log-Eintrag."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None) or correlation_id_ctx.get(),
        }
        for name in BOARD_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def get_correlation_id() -> str:
    return correlation_id_ctx.get()


def set_correlation_id(cid: str) -> None:
    correlation_id_ctx.set(cid)


def _install_correlation_factory() -> None:
    base_factory = logging.getLogRecordFactory()
    if getattr(base_factory, "adds_correlation_id", False):
        return

    def factory(*args, **kwargs):
        record = base_factory(*args, **kwargs)
        record.correlation_id = correlation_id_ctx.get()
        return record

    factory.adds_correlation_id = True
    logging.setLogRecordFactory(factory)


def _apply_yaml_config(config_path: str) -> bool:
    if not os.path.exists(config_path):
        return False
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            logging.config.dictConfig(yaml.safe_load(f))
    except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
        sys.stderr.write(f"Logging-Konfiguration {config_path} unbrauchbar, nutze Fallback: {e}\n")
        return False
    return True


def setup_logging(
    level: str = "INFO", json_format: bool = False, log_file: Optional[str] = None, config_path: str = "log_config.yaml"
) -> None:
    """Konfiguriert das Root-Logging; eine vorhandene YAML-Datei hat Vorrang vor den Parametern."""
    _install_correlation_factory()

    if _apply_yaml_config(config_path):
        logging.getLogger(__name__).info("Logging initialized from %s", config_path)
        return

    root = logging.getLogger()
    root.setLevel(level.upper())
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    formatter: logging.Formatter = JsonFormatter() if json_format else logging.Formatter(TEXT_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    logging.getLogger(__name__).info("Logging initialized (level=%s, json=%s)", level, json_format)
