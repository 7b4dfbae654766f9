"""ユーティリティモジュール。"""

from .logger import setup_logging, ProgressLogger
from .retry import retry_async, RetryExhaustedError

__all__ = ["setup_logging", "ProgressLogger", "retry_async", "RetryExhaustedError"]
