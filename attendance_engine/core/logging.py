# attendance_engine/core/logging.py
"""Logging configuration."""
import logging
import sys
from .config import settings

AUDIT_LOGGER_NAME = "attendance_engine.audit"

def setup_logging():
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

logger = logging.getLogger("attendance_engine")
audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
