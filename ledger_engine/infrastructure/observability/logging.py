"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from ledger_engine.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name
        for key, value in log_record.items():
            if isinstance(value, Decimal):
                log_record[key] = str(value)


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


def log_operation(
    operation: str,
    owner_id: str,
    records: int,
    duration_ms: float,
    **fields: Any,
) -> None:
    """Log a completed engine operation for analysis"""
    logging.getLogger("ledger_engine.operations").info(
        "Operation completed",
        extra={
            "owner_id": owner_id,
            "step": operation,
            "records": records,
            "duration_ms": duration_ms,
            **fields,
        },
    )
