"""ロギング設定モジュール。"""

import logging
import sys
import time
from pathlib import Path
from typing import Optional
from datetime import datetime

# HTTPクライアントの詳細ログはDEBUG時も抑制する
_QUIET_LOGGERS = ("httpx", "httpcore", "openai")


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """ロギング設定をセットアップする。

    Args:
        level: ログレベル（DEBUG, INFO, WARNING, ERROR, CRITICAL）
        log_file: ログファイルへのパス（省略可）
        format_string: カスタムフォーマット文字列（省略可）

    Returns:
        ルートロガー
    """
    if format_string is None:
        format_string = (
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(format_string)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(
            log_path,
            encoding="utf-8"
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    return root_logger


def get_log_filename(prefix: str = "cppaudit") -> str:
    """タイムスタンプ付きのログファイル名を生成する。

    Args:
        prefix: ログファイル名のプレフィックス

    Returns:
        タイムスタンプ付きのログファイル名
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{timestamp}.log"


class ProgressLogger:
    """バッチ処理の進捗ログ出力用のヘルパークラス。"""

    def __init__(
        self,
        total: int,
        logger: Optional[logging.Logger] = None,
        label: str = "Batch"
    ):
        """進捗ロガーを初期化する。

        Args:
            total: バッチの総数
            logger: 使用するロガー
            label: ログに表示する単位名
        """
        self.total = total
        self.current = 0
        self.logger = logger or logging.getLogger(__name__)
        self.label = label
        self._started = time.monotonic()

    def update(self, message: Optional[str] = None) -> None:
        """次のバッチの開始を記録する。

        Args:
            message: 含めるメッセージ（省略可）
        """
        self.current += 1
        msg = f"{self.label} {self.current}/{self.total}"
        if message:
            msg += f" - {message}"
        self.logger.info(msg)

    def complete(self, message: str = "Complete") -> None:
        """進捗を完了としてマークする。

        Args:
            message: 完了メッセージ
        """
        elapsed = time.monotonic() - self._started
        self.logger.info(
            f"{message}: {self.current}/{self.total} processed in {elapsed:.1f}s"
        )
