"""LLMが報告する指摘のモデル。"""

from dataclasses import dataclass
from typing import Optional
from enum import Enum


class Severity(str, Enum):
    """指摘の重大度。"""
    CRITICAL = "critical"
    WARNING = "warning"
    SUGGESTION = "suggestion"
    GOOD = "good"        # 良いパターンの指摘

    @property
    def rank(self) -> int:
        """重大度の順位（小さいほど重大）。"""
        return _SEVERITY_ORDER.index(self)

    @classmethod
    def parse(cls, value) -> "Severity":
        """任意の値から重大度をパースする。

        認識できない値はSUGGESTIONとして扱う。

        Args:
            value: 重大度の値

        Returns:
            Severity列挙値
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.SUGGESTION

        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.SUGGESTION


_SEVERITY_ORDER = [
    Severity.CRITICAL,
    Severity.WARNING,
    Severity.SUGGESTION,
    Severity.GOOD,
]


@dataclass(frozen=True)
class Finding:
    """コード監査の指摘。"""
    severity: Severity
    category: str
    title: str
    file: str
    description: str
    line: Optional[int] = None
    code_snippet: Optional[str] = None
    fix: Optional[str] = None
    source: Optional[str] = None  # 出典（C++ Core Guidelines R.11 など）

    @property
    def location(self) -> str:
        """ファイルと行番号の表示用文字列。"""
        if self.line is not None:
            return f"{self.file}:{self.line}"
        return self.file

    def __str__(self) -> str:
        return f"[{self.severity.value}] {self.title} ({self.location})"
