"""バッチ分割モジュール。"""

from .batcher import Batcher

__all__ = ["Batcher"]
