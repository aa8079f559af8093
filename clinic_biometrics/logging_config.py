# clinic_biometrics/logging_config.py
"""
Logging configuration for the biometric identity service.

Provides structured logging with the service name stamped on every record.
"""
import logging
import sys


class ServiceContextFilter(logging.Filter):
    """Add service context to log records."""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = self.service_name
        return True


def setup_logging(service_name: str, debug: bool = False) -> None:
    """
    Configure logging for the service.

    Args:
        service_name: Service identifier for log context
        debug: Enable debug level logging
    """
    level = logging.DEBUG if debug else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(
        '[%(levelname)s] [service=%(service_name)s] %(name)s: %(message)s'
    ))
    console_handler.addFilter(ServiceContextFilter(service_name))

    root_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance (usually for __name__)."""
    return logging.getLogger(name)
