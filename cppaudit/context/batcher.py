"""LLMリクエスト用のファイルバッチ分割。"""

from typing import List, Sequence
import logging

from ..models.source import SourceFileRecord

logger = logging.getLogger(__name__)


class Batcher:
    """ソースファイルをトークン予算内のバッチに分割する。"""

    # 1バッチあたりの推定トークン上限
    DEFAULT_MAX_TOKENS = 30000

    # トークンあたりの平均文字数（英語/コード）
    CHARS_PER_TOKEN = 4

    def __init__(
        self,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        chars_per_token: int = CHARS_PER_TOKEN
    ):
        """バッチ分割器を初期化する。

        Args:
            max_tokens: 1バッチあたりの推定トークン上限
            chars_per_token: トークンあたりの平均文字数
        """
        self.max_tokens = max_tokens
        self.chars_per_token = chars_per_token

    @property
    def max_chars(self) -> int:
        """1バッチあたりの文字数予算。"""
        return self.max_tokens * self.chars_per_token

    def create_batches(
        self,
        files: Sequence[SourceFileRecord]
    ) -> List[List[SourceFileRecord]]:
        """ファイルを順序を保ったままバッチに分割する。

        予算を超えるまで貪欲にファイルを詰める。ファイルは分割しない。
        単独で予算を超えるファイルは切り詰めずに専用のバッチに入れる。

        Args:
            files: 優先度順に並んだソースファイル

        Returns:
            空でないバッチのリスト（入力が空なら空リスト）
        """
        batches: List[List[SourceFileRecord]] = []
        current: List[SourceFileRecord] = []
        current_size = 0
        budget = self.max_chars

        for record in files:
            size = record.size

            if size > budget:
                logger.warning(
                    f"{record.relative_path} exceeds the batch budget "
                    f"({size} > {budget} chars), sending it alone"
                )

            if current and current_size + size > budget:
                batches.append(current)
                current = []
                current_size = 0

            current.append(record)
            current_size += size

        if current:
            batches.append(current)

        logger.debug(
            f"Split {len(files)} files into {len(batches)} batches "
            f"(budget: {budget} chars)"
        )
        return batches

    def estimate_tokens(self, text: str) -> int:
        """テキストのトークン数を推定する。

        Args:
            text: 推定するテキスト

        Returns:
            推定トークン数
        """
        return len(text) // self.chars_per_token
