"""LLMベースの監査モジュール。"""

from .completion_client import (
    CompletionClient,
    CompletionConfig,
    CompletionError,
    CredentialError,
    ErrorCategory,
)
from .prompt_builder import PromptBuilder
from .response_parser import ResponseParser, decode_finding, parse_findings

__all__ = [
    "CompletionClient",
    "CompletionConfig",
    "CompletionError",
    "CredentialError",
    "ErrorCategory",
    "PromptBuilder",
    "ResponseParser",
    "decode_finding",
    "parse_findings",
]
