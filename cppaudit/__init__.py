"""LLMによるC++安全性・性能監査パイプライン。"""

from .analyzer import Analyzer, AnalysisOptions, AnalysisError, create_analyzer
from .config import Config, ConfigError

__all__ = [
    "Analyzer",
    "AnalysisOptions",
    "AnalysisError",
    "create_analyzer",
    "Config",
    "ConfigError",
]
