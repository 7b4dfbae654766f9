"""監査レポートとサマリーのモデル。"""

from dataclasses import dataclass, replace
from typing import Iterable, Tuple

from .finding import Finding, Severity
from .source import ProjectDescriptor, SourceFileRecord


# 重大度ごとの減点
SCORE_PENALTIES = {
    Severity.CRITICAL: 15,
    Severity.WARNING: 5,
    Severity.SUGGESTION: 1,
    Severity.GOOD: 0,
}

MAX_SCORE = 100


@dataclass(frozen=True)
class AnalysisSummary:
    """重大度別の件数とスコア。"""
    critical: int
    warning: int
    suggestion: int
    good: int
    files_analyzed: int
    score: int

    @property
    def total(self) -> int:
        """指摘の総数。"""
        return self.critical + self.warning + self.suggestion + self.good


def compute_summary(
    findings: Iterable[Finding],
    files_analyzed: int
) -> AnalysisSummary:
    """指摘一覧からサマリーを計算する。

    スコアは100から開始し、重大度ごとの減点を引いた後に[0, 100]へ丸める。

    Args:
        findings: 全バッチの指摘
        files_analyzed: 解析したファイル数

    Returns:
        AnalysisSummary
    """
    counts = {severity: 0 for severity in Severity}
    for finding in findings:
        counts[finding.severity] += 1

    score = MAX_SCORE
    for severity, count in counts.items():
        score -= SCORE_PENALTIES[severity] * count
    score = max(0, min(MAX_SCORE, score))

    return AnalysisSummary(
        critical=counts[Severity.CRITICAL],
        warning=counts[Severity.WARNING],
        suggestion=counts[Severity.SUGGESTION],
        good=counts[Severity.GOOD],
        files_analyzed=files_analyzed,
        score=score
    )


@dataclass(frozen=True)
class AnalysisReport:
    """1回の監査実行の結果。

    レンダラーはfindingsを確定済み・順序付きとして扱う。
    """
    project: ProjectDescriptor
    files: Tuple[SourceFileRecord, ...]
    findings: Tuple[Finding, ...]
    summary: AnalysisSummary
    timestamp: str
    duration: float  # 秒

    def filter_by_severity(self, min_severity: Severity) -> "AnalysisReport":
        """最小重大度で指摘を絞り込んだレポートを返す。

        GOODの指摘は閾値に関係なく常に残す。サマリーは再計算しない。

        Args:
            min_severity: 残す最小の重大度

        Returns:
            絞り込み済みのAnalysisReport
        """
        min_severity = Severity.parse(min_severity)
        kept = tuple(
            f for f in self.findings
            if f.severity.rank <= min_severity.rank
            or f.severity == Severity.GOOD
        )
        return replace(self, findings=kept)

    def has_critical(self) -> bool:
        """CRITICALの指摘が含まれるかを確認する。"""
        return self.summary.critical > 0
