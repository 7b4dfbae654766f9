"""LLM監査結果のレスポンスパーサー。"""

import json
import math
from typing import Any, List, Optional
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..models.finding import Finding, Severity

logger = logging.getLogger(__name__)


def _to_text(value: Any) -> str:
    """JSON値を文字列に変換する。"""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, ensure_ascii=False)


class FindingPayload(BaseModel):
    """モデル出力の配列要素1件分の緩いスキーマ。

    すべてのフィールドはbefore検証で強制変換されるため、
    どのような入力でも検証エラーにならない。
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    severity: Severity = Severity.SUGGESTION
    category: str = "other"
    title: str = "Untitled finding"
    file: str = ""
    line: Optional[int] = None
    description: str = ""
    code_snippet: Optional[str] = Field(default=None, alias="codeSnippet")
    fix: Optional[str] = None
    source: Optional[str] = None

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, value: Any) -> Severity:
        return Severity.parse(value)

    @field_validator("category", "title", "file", "description", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any, info) -> str:
        if value is None:
            return cls.model_fields[info.field_name].default
        return _to_text(value)

    @field_validator("line", mode="before")
    @classmethod
    def _coerce_line(cls, value: Any) -> Optional[int]:
        """行番号を整数に変換する。

        有限の小数は小数部を切り捨てる（12.7は12行目）。
        数値以外（文字列・真偽値・null）と非有限値は捨てる。
        """
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if isinstance(value, float):
            if not math.isfinite(value):
                return None
            return int(value)
        return value

    @field_validator("code_snippet", "fix", "source", mode="before")
    @classmethod
    def _coerce_optional_text(cls, value: Any) -> Optional[str]:
        if not value:
            return None
        return _to_text(value)

    def to_finding(self) -> Finding:
        """Findingに変換する。"""
        return Finding(
            severity=self.severity,
            category=self.category,
            title=self.title,
            file=self.file,
            line=self.line,
            description=self.description,
            code_snippet=self.code_snippet,
            fix=self.fix,
            source=self.source
        )


def decode_finding(value: Any) -> Finding:
    """任意のJSON値をFindingに変換する。

    オブジェクト以外の値は全フィールドが既定値のFindingになる。

    Args:
        value: JSON配列の要素

    Returns:
        Finding
    """
    if not isinstance(value, dict):
        value = {}

    try:
        return FindingPayload.model_validate(value).to_finding()
    except ValidationError as e:
        logger.debug(f"Finding payload rejected, using defaults: {e}")
        return FindingPayload().to_finding()


def extract_json_array(text: str) -> Optional[str]:
    """テキストから最初の'['から最後の']'までを取り出す。

    Args:
        text: LLMの出力テキスト

    Returns:
        配列部分の文字列、見つからない場合はNone
    """
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end < start:
        return None
    return text[start:end + 1]


class ResponseParser:
    """LLMレスポンスをFindingのリストにパースする。"""

    def parse(self, text: str) -> List[Finding]:
        """LLMの出力テキストを指摘リストにパースする。

        前後の説明文やコードフェンスは無視する。
        パースできない場合は例外を出さずに空リストを返す。

        Args:
            text: LLMの出力テキスト

        Returns:
            Findingのリスト
        """
        cleaned = (text or "").strip()
        if not cleaned:
            logger.warning("Empty completion, no findings parsed")
            return []

        payload = extract_json_array(cleaned)
        if payload is None:
            payload = cleaned

        try:
            parsed = json.loads(payload)
        except (ValueError, RecursionError) as e:
            logger.warning(f"Could not parse findings JSON: {e}")
            return []

        if not isinstance(parsed, list):
            logger.warning(
                f"Expected a JSON array of findings, got {type(parsed).__name__}"
            )
            return []

        findings = [decode_finding(item) for item in parsed]
        logger.debug(f"Parsed {len(findings)} findings")
        return findings


def parse_findings(text: str) -> List[Finding]:
    """ResponseParser().parseのショートカット。"""
    return ResponseParser().parse(text)
