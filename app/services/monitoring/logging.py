"""
Structured JSON Logging
Provides JSON formatter that tags every stdlib log entry with service and environment
"""

import logging
import sys

from pythonjsonlogger import jsonlogger

from app.config import settings

SERVICE_NAME = "vmdb-table-metrics"


class ServiceJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter with service identification.

    Extends python-json-logger to add service and environment fields to every
    log record, so capture/rollup logs can be filtered in shared log storage.
    """

    def add_fields(self, log_record, record, message_dict):
        """
        Add custom fields to log record.

        Args:
            log_record: Dictionary to be serialized to JSON
            record: Standard logging.LogRecord object
            message_dict: Additional fields from logger call
        """
        super().add_fields(log_record, record, message_dict)

        log_record['service'] = SERVICE_NAME
        log_record['environment'] = settings.environment


def setup_logging(level: int = logging.INFO):
    """
    Configure structured JSON logging to stdout.

    Sets up root logger with:
    - ServiceJsonFormatter for machine-parseable JSON output
    - INFO level logging (production default)
    - StreamHandler outputting to stdout

    Returns:
        logging.Handler: The configured handler (for testing)
    """
    handler = logging.StreamHandler(sys.stdout)

    formatter = ServiceJsonFormatter(
        '%(asctime)s %(levelname)s %(name)s %(message)s',
        rename_fields={
            'asctime': 'timestamp',
            'levelname': 'level'
        }
    )
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    return handler
