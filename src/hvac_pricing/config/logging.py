"""
Logging configuration and the audit logger for pricing events.
"""
import json
import logging
import sys
from typing import Optional

from .settings import Settings, get_settings


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(settings: Optional[Settings] = None):
    """Configure application logging."""
    settings = settings or get_settings()
    root_logger = logging.getLogger()

    # Prevent duplicate handlers on repeated calls
    if root_logger.handlers:
        return

    root_logger.setLevel(getattr(logging, settings.log_level, logging.INFO))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(console_handler)

    # Suppress noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)


class AuditLogger:
    """Helper for logging audit events (requests, approvals, parameter changes)."""

    def __init__(self):
        self.logger = get_logger("hvac_pricing.audit")

    def log(
        self,
        action: str,
        user_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        """Log an audit event."""
        extra = {
            "user_id": user_id,
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
        }

        message = f"AUDIT: {action}"
        if user_id:
            message += f" by {user_id}"
        if entity_type and entity_id:
            message += f" on {entity_type}:{entity_id}"
        if details:
            message += f" - {json.dumps(details, default=str, sort_keys=True)}"

        self.logger.info(message, extra=extra)


audit_logger = AuditLogger()
