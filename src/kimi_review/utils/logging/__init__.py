from kimi_review.utils.logging.otel_logger import get_logger, set_log_level

__all__ = ["get_logger", "set_log_level"]
