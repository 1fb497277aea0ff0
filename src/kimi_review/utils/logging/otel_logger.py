"""
Process-wide logger factory.

Every logger writes to stderr: JSON lines locally, workflow commands when
running inside GitHub Actions. When ``OTEL_EXPORTER_OTLP_ENDPOINT`` is set
and the ``otel`` extra is installed, records are exported over OTLP too.
"""

import logging
import os

from pythonjsonlogger.json import JsonFormatter

from kimi_review.utils.logging.actions_formatter import GitHubActionsFormatter

SERVICE_NAME: str = "kimi-review-bot"
SERVICE_VERSION: str = "1.0.0"

_LOGGERS: dict = {}
_level = logging.INFO


def _running_in_actions() -> bool:
    return os.getenv("GITHUB_ACTIONS", "").lower() == "true"


def _stream_handler() -> logging.Handler:
    handler = logging.StreamHandler()
    if _running_in_actions():
        handler.setFormatter(GitHubActionsFormatter("%(message)s"))
    else:
        handler.setFormatter(JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    return handler


def _attach_otlp_handler(run_logger: logging.Logger, endpoint: str) -> None:
    try:
        from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
        from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
        from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
        from opentelemetry.sdk.resources import Resource
    except ImportError:
        run_logger.warning(
            "OTEL_EXPORTER_OTLP_ENDPOINT is set but the 'otel' extra is not installed; "
            "logs stay on stderr only"
        )
        return

    provider = LoggerProvider(
        Resource.create(
            {
                "service.name": SERVICE_NAME,
                "service.version": SERVICE_VERSION,
                "host.name": os.getenv("RUNNER_NAME", "ENV_NOT_SET"),
                "github.repository": os.getenv("GITHUB_REPOSITORY", "ENV_NOT_SET"),
            }
        )
    )
    provider.add_log_record_processor(
        BatchLogRecordProcessor(OTLPLogExporter(endpoint=endpoint, insecure=True))
    )
    run_logger.addHandler(LoggingHandler(level=logging.DEBUG, logger_provider=provider))
    run_logger.debug(f"OTLP log export enabled for '{run_logger.name}'")


def get_logger(name: str) -> logging.Logger:
    """
    Returns the logger with the given name if it exists, else creates a new one.
    """
    if name in _LOGGERS:
        return _LOGGERS[name]

    run_logger = logging.getLogger(name)
    run_logger.setLevel(_level)
    run_logger.propagate = False
    run_logger.addHandler(_stream_handler())
    _LOGGERS[name] = run_logger

    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if endpoint:
        _attach_otlp_handler(run_logger, endpoint)

    return run_logger


def set_log_level(level: str) -> None:
    """Apply ``level`` to every logger handed out so far and to those created later."""
    global _level
    _level = logging.getLevelName(level.upper())
    for cached in _LOGGERS.values():
        cached.setLevel(_level)
