"""Logging setup: console formatter with structured extras, optional Cloud Logging."""

from __future__ import annotations

import json
import logging
import os
import time
from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from logging.config import dictConfig
from typing import Any

from opentelemetry import trace

_PACKAGE_LOGGER = "login_firewall"


def _level(env_var: str, default: str) -> str:
    return os.getenv(env_var, default).upper()


def _should_emit_json_payload() -> bool:
    # Managed runtimes ingest JSON lines as structured payloads.
    return bool(os.getenv("K_SERVICE") or os.getenv("KUBERNETES_SERVICE_HOST"))


def _jsonable(value: Any, depth: int = 8) -> Any:
    """Return a JSON-serializable copy of ``value``; unknown objects become strings."""

    if depth <= 0:
        return "<depth_exceeded>"
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Enum):
        return _jsonable(value.value, depth - 1)
    if isinstance(value, datetime):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return _jsonable(asdict(value), depth - 1)
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v, depth - 1) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item, depth - 1) for item in value]
    return str(value)


class ExtrasFormatter(logging.Formatter):
    """Append the ``data`` extra to console lines, or emit one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        data = record.__dict__.get("data")
        if _should_emit_json_payload():
            return json.dumps(self._payload(record, data), sort_keys=True, separators=(",", ":"))

        formatted = super().format(record)
        if data:
            encoded = json.dumps(_jsonable(data), sort_keys=True, separators=(",", ":"))
            return f"{formatted} | data={encoded}"
        return formatted

    def _payload(self, record: logging.LogRecord, data: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "message": record.getMessage(),
            "severity": record.levelname,
            "logger": record.name,
            "timestamp": (
                f"{time.strftime('%Y-%m-%dT%H:%M:%S', time.gmtime(record.created))}"
                f".{int(record.msecs):03d}Z"
            ),
        }
        if data:
            payload["data"] = _jsonable(data)
        otel = record.__dict__.get("otel")
        if otel:
            payload["otel"] = otel
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return payload


class OtelContextLogFilter(logging.Filter):
    """Attach the active OpenTelemetry trace/span ids as the ``otel`` extra."""

    def filter(self, record: logging.LogRecord) -> bool:
        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            record.__dict__["otel"] = {
                "trace_id": f"{span_context.trace_id:032x}",
                "span_id": f"{span_context.span_id:016x}",
            }
        return True


def build_log_config(
    *,
    root_level_env: str = "LOG_LEVEL",
    root_default: str = "INFO",
    cloud_logging_enabled: bool = False,
    gcp_project: str | None = None,
    cloud_log_name: str = "login-firewall",
) -> dict[str, Any]:
    """Return a dictConfig-compatible logging configuration."""

    handler_names = ["console"]
    handlers: dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "console",
            "stream": "ext://sys.stdout",
            "filters": ["otel_context"],
        }
    }
    if cloud_logging_enabled:
        if not gcp_project:
            raise RuntimeError("GCP project required when cloud logging is enabled")
        handlers["cloud_logging"] = _cloud_logging_handler(gcp_project, cloud_log_name)
        handler_names.append("cloud_logging")

    loggers: dict[str, dict[str, Any]] = {
        _PACKAGE_LOGGER: {"level": _level(root_level_env, root_default)},
        "login_firewall.zoraxy": {"level": _level("ZORAXY_LOG_LEVEL", root_default)},
        "httpx": {"level": _level("HTTPX_LOG_LEVEL", "WARNING")},
        "httpcore": {"level": _level("HTTPX_LOG_LEVEL", "WARNING")},
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "()": ExtrasFormatter,
                "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            }
        },
        "filters": {"otel_context": {"()": OtelContextLogFilter}},
        "handlers": handlers,
        "root": {"level": _level(root_level_env, root_default), "handlers": handler_names},
        "loggers": loggers,
    }


def _cloud_logging_handler(project: str, log_name: str) -> dict[str, Any]:
    from google.cloud import logging as gcp_logging
    from google.cloud.logging_v2.resource import Resource

    client = gcp_logging.Client(project=project)  # type: ignore[no-untyped-call]
    return {
        "level": "INFO",
        "class": "google.cloud.logging_v2.handlers.handlers.CloudLoggingHandler",
        "client": client,
        "name": log_name,
        "resource": Resource("global", {"project_id": project}),
        "formatter": "console",
        "filters": ["otel_context"],
    }


def configure_logging(
    *,
    cloud_logging_enabled: bool = False,
    gcp_project: str | None = None,
) -> None:
    """Apply the logging config for the login firewall process."""
    dictConfig(
        build_log_config(
            cloud_logging_enabled=cloud_logging_enabled,
            gcp_project=gcp_project,
        )
    )
    logging.getLogger("login_firewall.observability").debug(
        "configured logging",
        extra={"data": {"cloud_logging_enabled": cloud_logging_enabled, "gcp_project": gcp_project}},
    )


__all__ = ["ExtrasFormatter", "OtelContextLogFilter", "build_log_config", "configure_logging"]
