"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger.json import JsonFormatter

from deckvault.config import settings


class CustomJsonFormatter(JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_submission(
    request_id: str,
    user_id: str,
    submission_type: str,
    status: str,
    credits_remaining: Optional[int],
    duration_ms: float,
) -> None:
    """Log structured submission outcome for analysis"""
    logging.info(
        "Submission completed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "submission_complete",
            "submission_type": submission_type,
            "submission_status": status,
            "credits_remaining": credits_remaining,
            "duration_ms": duration_ms,
        },
    )
