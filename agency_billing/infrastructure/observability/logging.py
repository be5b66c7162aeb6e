"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from agency_billing.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
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


def log_confirmation(
    agency_id: str,
    payment_id: str,
    transaction_id: Optional[str],
    outcome: str,
    duration_ms: float,
) -> None:
    """Log structured confirmation outcome"""
    logging.getLogger("agency_billing.confirmation").info(
        "Payment confirmation completed",
        extra={
            "agency_id": agency_id,
            "payment_id": payment_id,
            "transaction_id": transaction_id,
            "step": "confirmation_complete",
            "outcome": outcome,
            "duration_ms": duration_ms,
        },
    )


def log_generation(
    agency_id: str,
    source_payment_id: Optional[str],
    outcome: str,
    reason: str,
    next_payment_id: Optional[str] = None,
    due_date: Optional[str] = None,
) -> None:
    """Log why a next payment was or was not generated"""
    logging.getLogger("agency_billing.generation").info(
        "Next payment generation",
        extra={
            "agency_id": agency_id,
            "payment_id": source_payment_id,
            "next_payment_id": next_payment_id,
            "due_date": due_date,
            "step": "generation",
            "outcome": outcome,
            "reason": reason,
        },
    )
