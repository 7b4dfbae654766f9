"""設定管理モジュール。"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Any
from pathlib import Path
import os
import logging

import yaml

from .models.finding import Severity

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """設定の検証に失敗した。"""

    def __init__(self, errors: List[str]):
        super().__init__("Invalid configuration: " + "; ".join(errors))
        self.errors = errors


@dataclass
class Config:
    """アプリケーション設定。"""

    # 補完サービス設定
    api_key: str = ""
    base_url: str = "https://api.anthropic.com/v1/"
    model: str = "claude-sonnet-4-6"
    max_tokens: int = 8192  # 1回の補完の最大出力トークン
    max_retries: int = 3  # 初回を含む試行回数
    request_timeout: float = 600.0

    # バッチ設定
    max_tokens_per_batch: int = 30000
    chars_per_token: int = 4

    # 実行設定
    stream: bool = True
    min_severity: str = "suggestion"
    system_prompt_file: Optional[str] = None

    # ロギング設定
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_yaml(cls, file_path: str) -> "Config":
        """YAMLファイルから設定を読み込む。

        APIキーとエンドポイントは環境変数が優先される。

        Args:
            file_path: YAML設定ファイルのパス

        Returns:
            Configインスタンス
        """
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        config = cls.from_dict(data)
        logger.info(f"Configuration loaded from {file_path}")
        return config

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """辞書から設定を作成する。

        Args:
            data: 設定辞書

        Returns:
            Configインスタンス
        """
        config = cls()

        for key, value in data.items():
            if hasattr(config, key):
                setattr(config, key, value)
            else:
                logger.warning(f"Unknown configuration key ignored: {key}")

        config.apply_env()
        return config

    @classmethod
    def from_env(cls) -> "Config":
        """環境変数のみから設定を作成する。"""
        config = cls()
        config.apply_env()
        return config

    def apply_env(self) -> None:
        """環境変数の値で上書きする。"""
        self.api_key = os.getenv("ANTHROPIC_API_KEY", self.api_key)
        self.base_url = os.getenv("ANTHROPIC_BASE_URL", self.base_url)

    def validate(self) -> List[str]:
        """設定を検証する。

        Returns:
            検証エラーのリスト（有効な場合は空）
        """
        errors = []

        if not self.api_key:
            errors.append(
                "ANTHROPIC_API_KEY is required "
                "(export ANTHROPIC_API_KEY=your-key-here)"
            )
        if self.max_tokens <= 0:
            errors.append("max_tokens must be positive")
        if self.max_retries < 1:
            errors.append("max_retries must be at least 1")
        if self.max_tokens_per_batch <= 0:
            errors.append("max_tokens_per_batch must be positive")
        if self.chars_per_token <= 0:
            errors.append("chars_per_token must be positive")

        valid_severities = [s.value for s in Severity]
        if self.min_severity not in valid_severities:
            errors.append(
                f"min_severity must be one of {', '.join(valid_severities)}: "
                f"{self.min_severity}"
            )

        if self.system_prompt_file and not Path(self.system_prompt_file).exists():
            errors.append(
                f"System prompt file does not exist: {self.system_prompt_file}"
            )

        return errors

    def to_dict(self) -> dict:
        """設定を辞書に変換する（APIキーは含めない）。

        Returns:
            辞書形式の設定
        """
        data: Dict[str, Any] = {
            "base_url": self.base_url,
            "model": self.model,
            "max_tokens": self.max_tokens,
            "max_retries": self.max_retries,
            "request_timeout": self.request_timeout,
            "max_tokens_per_batch": self.max_tokens_per_batch,
            "chars_per_token": self.chars_per_token,
            "stream": self.stream,
            "min_severity": self.min_severity,
            "log_level": self.log_level,
        }
        if self.system_prompt_file:
            data["system_prompt_file"] = self.system_prompt_file
        if self.log_file:
            data["log_file"] = self.log_file
        return data

    def save_yaml(self, file_path: str) -> None:
        """設定をYAMLファイルに保存。

        Args:
            file_path: 保存先パス
        """
        output_path = Path(file_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.to_dict(),
                f,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False
            )

        logger.info(f"Configuration saved to {file_path}")
