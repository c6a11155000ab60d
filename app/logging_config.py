"""
Logging configuration with request context
"""
import logging
import sys
from flask import has_request_context, request, g

from app.services.security_service import SECURITY_LOGGER_NAME


class RequestFormatter(logging.Formatter):
    """Custom formatter that adds request context to logs"""

    def format(self, record):
        if has_request_context():
            record.url = request.url
            record.method = request.method
            record.remote_addr = g.get('client_ip') or request.remote_addr
        else:
            record.url = 'N/A'
            record.method = 'N/A'
            record.remote_addr = 'N/A'

        return super().format(record)


def setup_logging(app, config):
    """
    Setup logging for the Flask app and the service modules under app.*
    """
    level = getattr(logging, config.log_level, logging.INFO)

    formatter = RequestFormatter(
        '%(asctime)s - %(name)s - %(levelname)s - '
        '[%(method)s %(url)s] - '
        '[IP: %(remote_addr)s] - '
        '%(message)s'
    )

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    # app.logger is the "app" logger, so app.services.* loggers propagate into it
    app.logger.setLevel(level)
    app.logger.handlers = [console_handler]

    # Prevent duplicate logs
    app.logger.propagate = False

    security_logger = logging.getLogger(SECURITY_LOGGER_NAME)
    security_logger.setLevel(logging.WARNING)
    security_logger.handlers = [console_handler]
    if config.security_log_file:
        file_handler = logging.FileHandler(config.security_log_file, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - SECURITY - %(levelname)s - %(message)s'
        ))
        security_logger.addHandler(file_handler)
    security_logger.propagate = False

    app.logger.info('Application logging configured', extra={
        'event_type': 'app_startup',
        'allowed_ip_count': len(config.allowed_ips)
    })

    return app.logger
