"""C++監査パイプラインのメインクラス。

ファイルをバッチに分割し、バッチごとに補完サービスを順番に呼び出して
結果を1つのレポートにまとめる。
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence
import logging

from .config import Config, ConfigError
from .context.batcher import Batcher
from .llm.completion_client import (
    CompletionClient,
    CompletionConfig,
    CompletionError,
    CredentialError,
    TokenCallback,
)
from .llm.prompt_builder import PromptBuilder
from .llm.response_parser import ResponseParser
from .models.finding import Finding, Severity
from .models.report import AnalysisReport, compute_summary
from .models.source import ProjectDescriptor, SourceFileRecord
from .utils.logger import ProgressLogger, setup_logging

logger = logging.getLogger(__name__)

BatchStartCallback = Callable[[int, int], None]


@dataclass
class AnalysisOptions:
    """1回の実行の動作モード。"""
    stream: bool = False
    on_token: Optional[TokenCallback] = None
    on_batch_start: Optional[BatchStartCallback] = None  # (バッチ番号, 総数)
    min_severity: Optional[Severity] = None  # Noneなら絞り込まない

    @classmethod
    def from_config(
        cls,
        config: Config,
        on_token: Optional[TokenCallback] = None,
        on_batch_start: Optional[BatchStartCallback] = None
    ) -> "AnalysisOptions":
        """設定のstreamとmin_severityから動作モードを作成する。

        Args:
            config: アプリケーション設定
            on_token: ストリーミング時のトークンコールバック
            on_batch_start: バッチ開始時のコールバック

        Returns:
            AnalysisOptionsインスタンス
        """
        return cls(
            stream=config.stream,
            on_token=on_token,
            on_batch_start=on_batch_start,
            min_severity=Severity.parse(config.min_severity)
        )

    @property
    def streaming(self) -> bool:
        """ストリーミングで呼び出すかどうか。"""
        return self.stream and self.on_token is not None


class AnalysisError(Exception):
    """バッチの失敗により実行が中断された。

    それまでに集めた指摘は診断用にのみ保持する。
    """

    def __init__(
        self,
        batch_number: int,
        total_batches: int,
        partial_findings: List[Finding],
        error: CompletionError
    ):
        super().__init__(
            f"Analysis aborted at batch {batch_number}/{total_batches}: {error}"
        )
        self.batch_number = batch_number
        self.total_batches = total_batches
        self.partial_findings = partial_findings
        self.error = error


class Analyzer:
    """バッチ分割・補完・結果集約を行う監査器。"""

    def __init__(
        self,
        client: CompletionClient,
        batcher: Optional[Batcher] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        response_parser: Optional[ResponseParser] = None,
        options: Optional[AnalysisOptions] = None
    ):
        """監査器を初期化する。

        Args:
            client: 補完クライアント
            batcher: バッチ分割器（省略時は既定の予算）
            prompt_builder: プロンプトビルダー（省略時は既定のルール）
            response_parser: レスポンスパーサー
            options: analyzeに渡されなかった場合の動作モード
        """
        self.client = client
        self.batcher = batcher or Batcher()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.response_parser = response_parser or ResponseParser()
        self.default_options = options or AnalysisOptions()

    @classmethod
    def from_config(cls, config: Config) -> "Analyzer":
        """設定を検証し、全コンポーネントを構築する。

        Args:
            config: アプリケーション設定

        Returns:
            Analyzerインスタンス

        Raises:
            CredentialError: APIキーが設定されていない場合
            ConfigError: その他の設定値が不正な場合
        """
        if not config.api_key:
            raise CredentialError()

        errors = config.validate()
        if errors:
            for error in errors:
                logger.error(f"Configuration error: {error}")
            raise ConfigError(errors)

        client = CompletionClient(CompletionConfig(
            api_key=config.api_key,
            base_url=config.base_url,
            model=config.model,
            max_tokens=config.max_tokens,
            max_retries=config.max_retries,
            request_timeout=config.request_timeout
        ))

        batcher = Batcher(
            max_tokens=config.max_tokens_per_batch,
            chars_per_token=config.chars_per_token
        )

        if config.system_prompt_file:
            prompt_builder = PromptBuilder.from_file(config.system_prompt_file)
        else:
            prompt_builder = PromptBuilder()

        logger.info("All components initialized")
        return cls(
            client,
            batcher=batcher,
            prompt_builder=prompt_builder,
            options=AnalysisOptions.from_config(config)
        )

    async def analyze(
        self,
        project: ProjectDescriptor,
        files: Sequence[SourceFileRecord],
        options: Optional[AnalysisOptions] = None
    ) -> AnalysisReport:
        """プロジェクトのファイルを監査する。

        バッチは1つずつ順番に処理する。いずれかのバッチが失敗した時点で
        実行全体を中断し、部分的なレポートは返さない。

        Args:
            project: プロジェクト情報
            files: 優先度順のソースファイル
            options: 動作モード（省略時は初期化時の既定値）

        Returns:
            AnalysisReport（min_severity指定時は絞り込み済み、サマリーは全件）

        Raises:
            AnalysisError: バッチの補完呼び出しが失敗した場合
        """
        options = options or self.default_options
        started = time.monotonic()

        batches = self.batcher.create_batches(files)
        system_prompt = self.prompt_builder.build_system_prompt()
        dependency_names = project.dependency_names()

        logger.info(
            f"Analyzing {project.name}: {len(files)} files in "
            f"{len(batches)} batch(es)"
        )

        findings: List[Finding] = []
        progress = ProgressLogger(len(batches), logger)

        for number, batch in enumerate(batches, 1):
            if options.on_batch_start:
                options.on_batch_start(number, len(batches))
            progress.update(f"{len(batch)} file(s)")

            user_prompt = self.prompt_builder.build_analysis_prompt(
                batch, project.cpp_standard, dependency_names
            )
            logger.debug(
                f"Batch {number} prompt: ~"
                f"{self.batcher.estimate_tokens(user_prompt)} tokens"
            )

            try:
                if options.streaming:
                    text = await self.client.complete_stream(
                        system_prompt, user_prompt, options.on_token
                    )
                else:
                    text = await self.client.complete(system_prompt, user_prompt)
            except CompletionError as e:
                logger.error(f"Batch {number}/{len(batches)} failed: {e}")
                raise AnalysisError(
                    number, len(batches), list(findings), e
                ) from e

            batch_findings = self.response_parser.parse(text)
            logger.debug(f"Batch {number}: {len(batch_findings)} findings")
            findings.extend(batch_findings)

        progress.complete("Analysis complete")

        summary = compute_summary(findings, len(files))
        duration = time.monotonic() - started

        logger.info(
            f"Score {summary.score}/100 "
            f"(critical: {summary.critical}, warning: {summary.warning}, "
            f"suggestion: {summary.suggestion}, good: {summary.good})"
        )

        report = AnalysisReport(
            project=project,
            files=tuple(files),
            findings=tuple(findings),
            summary=summary,
            timestamp=datetime.now(timezone.utc).isoformat(),
            duration=duration
        )

        if options.min_severity is not None:
            report = report.filter_by_severity(options.min_severity)
        return report

    def run(
        self,
        project: ProjectDescriptor,
        files: Sequence[SourceFileRecord],
        options: Optional[AnalysisOptions] = None
    ) -> AnalysisReport:
        """analyzeを新しいイベントループで同期的に実行する。

        SDKの接続プールはループに紐づくため、終了時に必ず閉じる。
        """
        async def run_once() -> AnalysisReport:
            try:
                return await self.analyze(project, files, options)
            finally:
                await self.client.close()

        return asyncio.run(run_once())


def create_analyzer(config_path: Optional[str] = None) -> Analyzer:
    """設定を読み込み、ロギングをセットアップしてAnalyzerを作成する。

    Args:
        config_path: YAML設定ファイルのパス（省略時は環境変数のみ）

    Returns:
        Analyzerインスタンス

    Raises:
        CredentialError: APIキーが設定されていない場合
        ConfigError: その他の設定値が不正な場合
    """
    if config_path:
        config = Config.from_yaml(config_path)
    else:
        config = Config.from_env()

    setup_logging(level=config.log_level, log_file=config.log_file)

    return Analyzer.from_config(config)
