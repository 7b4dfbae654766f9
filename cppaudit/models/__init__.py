"""Data models for the C++ audit pipeline."""

from .source import FileCategory, SourceFileRecord, DependencyRef, ProjectDescriptor
from .finding import Finding, Severity
from .report import AnalysisSummary, AnalysisReport, compute_summary

__all__ = [
    "FileCategory",
    "SourceFileRecord",
    "DependencyRef",
    "ProjectDescriptor",
    "Finding",
    "Severity",
    "AnalysisSummary",
    "AnalysisReport",
    "compute_summary",
]
