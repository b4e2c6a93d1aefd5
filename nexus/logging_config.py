from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from google.cloud import logging as cloud_logging

# Attributes every LogRecord carries; anything else came in through `extra=`
_RESERVED = set(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging compatible with Cloud Logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED and not key.startswith("_"):
                log_obj[key] = value

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


def setup_logging(
    *,
    environment: str = "dev",
    project_id: str | None = None,
    log_level: str | None = None,
    use_cloud_logging: bool = True,
) -> None:
    """Configure logging for the service.

    Args:
        environment: Environment name (dev, staging, prod)
        project_id: GCP project ID for Cloud Logging
        log_level: Explicit level name; defaults to DEBUG in dev, INFO elsewhere
        use_cloud_logging: Whether to use the Cloud Logging client outside dev
    """
    if log_level:
        level = logging.getLevelName(log_level.upper())
    else:
        level = logging.DEBUG if environment == "dev" else logging.INFO

    if use_cloud_logging and project_id and environment != "dev":
        client = cloud_logging.Client(project=project_id)
        client.setup_logging(log_level=level)
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logging.basicConfig(level=level, handlers=[handler], force=True)

    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


__all__ = ["setup_logging", "StructuredFormatter"]
