"""
Centralized logging configuration for FabStorefront.

Status events arrive on the subscriber thread while cart edits and checkouts
run on Flask request threads, so every log line carries the thread name.

Features:
    - Thread name in every log message
    - Console output (always enabled)
    - Rotating file logs plus a separate error log (production)
    - Session-scoped loggers for reconciler and checkout traces

Log Format:
    2026-10-19 10:15:30 [INFO    ] [MainThread] fab_storefront.app - Starting
    2026-10-19 10:15:31 [DEBUG   ] [Events] fab_storefront.session.3f9a1c2e - Merged success for file f-12
    2026-10-19 10:15:32 [INFO    ] [Thread-4] fab_storefront.services.checkout_service - Order #D101 created

Usage:
    # At application startup
    from logging_config import setup_logging, get_logger

    setup_logging(log_level=logging.INFO, enable_file_logging=True)

    # In modules
    logger = get_logger(__name__)

    # For one session's event stream
    session_logger = get_session_logger(session.session_id)
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

APP_LOGGER_NAME = "fab_storefront"


# =============================================================================
# THREAD CONTEXT FILTER
# =============================================================================

class ThreadContextFilter(logging.Filter):
    """
    Logging filter that stamps thread context onto each record.

    Adds ``thread_name`` and ``thread_id`` so the format string can show
    which thread (request, subscriber) produced the line.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        current_thread = threading.current_thread()
        record.thread_name = current_thread.name
        record.thread_id = threading.get_ident()

        # Adds context only; never drops a record
        return True


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logging(
    app_name: str = APP_LOGGER_NAME,
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = True,
) -> logging.Logger:
    """
    Configure application logging with thread context.

    This sets up:
    1. Console handler (always enabled)
    2. Rotating file handler (optional)
    3. Error file handler for ERROR/CRITICAL (optional)
    4. Thread context filter on every handler

    Args:
        app_name: Name of the application root logger
        log_level: Minimum log level (default: INFO)
        log_dir: Directory for log files (default: ./logs next to this file)
        enable_file_logging: Whether to write to log files

    Returns:
        Configured application root logger
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(log_level)
    logger.propagate = False

    # Allows re-configuration (tests create several apps)
    logger.handlers.clear()

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)-8s] [%(thread_name)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    thread_filter = ThreadContextFilter()

    # ---------------------------------------------------------------------
    # Console Handler (always enabled)
    # ---------------------------------------------------------------------
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(thread_filter)
    logger.addHandler(console_handler)

    # ---------------------------------------------------------------------
    # File Handlers (optional)
    # ---------------------------------------------------------------------
    if enable_file_logging:
        if log_dir is None:
            log_dir = Path(__file__).parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        app_log_file = log_dir / f"{app_name}.log"
        file_handler = RotatingFileHandler(
            filename=app_log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB per file
            backupCount=5,
            encoding="utf-8"
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(thread_filter)
        logger.addHandler(file_handler)

        error_handler = RotatingFileHandler(
            filename=log_dir / f"{app_name}_error.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8"
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        error_handler.addFilter(thread_filter)
        logger.addHandler(error_handler)

        logger.info(f"File logging enabled: {app_log_file}")

    logger.info(f"Logging configured at level {logging.getLevelName(log_level)}")
    return logger


# =============================================================================
# LOGGER FACTORY FUNCTIONS
# =============================================================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger under the application namespace.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger that inherits the handlers installed by setup_logging()

    Example:
        # In services/cart_store.py
        logger = get_logger(__name__)
        # Logger name: "fab_storefront.services.cart_store"
    """
    if not name.startswith(APP_LOGGER_NAME):
        name = f"{APP_LOGGER_NAME}.{name}"

    return logging.getLogger(name)


def get_session_logger(session_id: str) -> logging.Logger:
    """
    Get a logger for one storefront session.

    The logger name carries the first 8 characters of the session ID, which
    makes it easy to grep one customer's event stream out of a busy log.

    Args:
        session_id: Session identity

    Returns:
        Logger named ``fab_storefront.session.<short id>``
    """
    short_id = session_id[:8] if len(session_id) >= 8 else session_id
    return logging.getLogger(f"{APP_LOGGER_NAME}.session.{short_id}")


def set_thread_name(name: str) -> None:
    """
    Set the name of the current thread.

    This name appears in the [thread_name] field of every log line.

    Example:
        # In the event subscriber thread
        set_thread_name("Events")
    """
    threading.current_thread().name = name
