"""
Logging configuration for the SMS Broadcast client

Library code only creates loggers; handlers are installed by applications
(the CLI calls setup_logging). SMS events are written as key=value pairs so
they are easy to grep out of mixed logs.
"""

import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone


def setup_logging(log_level=None, log_file=None, max_bytes=10*1024*1024, backup_count=5):
    """
    Set up logging configuration for the SMS Broadcast command line tool.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (if None, logs to stderr)
        max_bytes: Maximum size of log file before rotation (default 10MB)
        backup_count: Number of backup log files to keep (default 5)
    """

    # Default log level from environment or WARNING, stdout carries command output
    if log_level is None:
        log_level = os.environ.get('LOG_LEVEL', 'WARNING')
    log_level = log_level.upper()

    if log_file is None:
        log_file = os.environ.get('LOG_FILE')

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level, logging.WARNING))

    # Clear any existing handlers
    root_logger.handlers.clear()

    if log_file:
        handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count
        )
    else:
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging initialized - Level: {log_level}, Output: {log_file or 'stderr'}")

    return logger


def get_logger(name):
    """
    Get a logger instance for a specific module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_sms_event(event_type, username=None, recipients=None, sender=None,
                  ref=None, parts=None, accepted=None, rejected=None,
                  balance=None, success=True, error=None):
    """
    Log SMS-related events with structured information.

    Args:
        event_type: Type of SMS event (e.g., 'sms_sent', 'balance_checked', 'gateway_error')
        username: Gateway account username (never the password)
        recipients: Number of distinct recipients in the request
        sender: Sender id used for the request
        ref: Caller reference passed to the gateway
        parts: Number of SMS parts per recipient
        accepted: Number of OK result lines
        rejected: Number of BAD result lines
        balance: Remaining credits reported by the gateway
        success: Whether the operation was successful
        error: Error message if applicable
    """
    logger = logging.getLogger('sms')

    log_data = {
        'event_type': event_type,
        'success': success,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }

    optional = {
        'username': username,
        'recipients': recipients,
        'sender': sender,
        'ref': ref,
        'parts': parts,
        'accepted': accepted,
        'rejected': rejected,
        'balance': balance,
        'error': error,
    }
    for key, value in optional.items():
        if value is not None and value != '':
            log_data[key] = value

    # Format as key=value pairs for easy parsing
    log_message = ' '.join([f"{k}={v}" for k, v in log_data.items()])

    if success:
        logger.info(f"SMS: {log_message}")
    else:
        logger.error(f"SMS: {log_message}")
