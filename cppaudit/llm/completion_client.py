"""コード監査用のLLMテキスト補完クライアント。

AnthropicのOpenAI互換エンドポイントにopenai SDKで接続する。
リトライはRETRYABLE_STATUS_CODESのみを対象とし、SDK側のリトライは無効化する。

ストリーミング時のトークンコールバックは試行ごとに呼ばれるため、
リトライが発生すると同じ内容が複数回通知される（少なくとも1回）。
戻り値のテキストは成功した試行の分だけを含む（正確に1回）。
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional
import logging

import httpx
import openai
from openai import AsyncOpenAI

from ..utils.retry import RetryExhaustedError, get_status_code, retry_async

logger = logging.getLogger(__name__)

API_KEY_ENV = "ANTHROPIC_API_KEY"

TokenCallback = Callable[[str], None]


class ErrorCategory(str, Enum):
    """ユーザー向けメッセージ用のエラー分類。"""
    INVALID_CREDENTIAL = "invalid-credential"
    ACCESS_DENIED = "access-denied"
    MODEL_UNAVAILABLE = "model-unavailable"
    MALFORMED_REQUEST = "malformed-request"
    RATE_LIMITED = "rate-limited"
    SERVER_ERROR = "server-error"
    CONNECTIVITY_ERROR = "connectivity-error"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


_HINTS = {
    ErrorCategory.INVALID_CREDENTIAL: (
        f"Check that {API_KEY_ENV} holds a valid API key."
    ),
    ErrorCategory.ACCESS_DENIED: (
        "The API key is not allowed to use this model or endpoint."
    ),
    ErrorCategory.MODEL_UNAVAILABLE: (
        "The configured model was not found. Check the model name."
    ),
    ErrorCategory.MALFORMED_REQUEST: (
        "The request was rejected. The batch may be too large for the model."
    ),
    ErrorCategory.RATE_LIMITED: (
        "The API rate limit was hit. Wait a moment and try again."
    ),
    ErrorCategory.SERVER_ERROR: (
        "The completion service is failing or overloaded. Try again later."
    ),
    ErrorCategory.CONNECTIVITY_ERROR: (
        "Could not reach the completion service. Check your network or proxy."
    ),
    ErrorCategory.TIMEOUT: (
        "The request timed out. Try again or raise request_timeout."
    ),
    ErrorCategory.UNKNOWN: "Unexpected error from the completion service.",
}


class CompletionError(Exception):
    """補完サービスの呼び出しに失敗した。"""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        status_code: Optional[int] = None,
        retries_exhausted: bool = False
    ):
        super().__init__(message)
        self.category = category
        self.status_code = status_code
        self.retries_exhausted = retries_exhausted

    @property
    def hint(self) -> str:
        """対処方法のヒント。"""
        return _HINTS[self.category]

    def __str__(self) -> str:
        return f"{self.args[0]}\n{self.hint}"


class CredentialError(CompletionError):
    """APIキーが設定されていない（設定エラー、リトライしない）。"""

    def __init__(self):
        super().__init__(
            f"{API_KEY_ENV} environment variable is required.",
            category=ErrorCategory.INVALID_CREDENTIAL
        )

    @property
    def hint(self) -> str:
        return f"Set it with: export {API_KEY_ENV}=your-key-here"


def classify_error(error: BaseException) -> ErrorCategory:
    """SDKの例外をエラー分類に変換する。

    分類は表示用であり、リトライ可否には影響しない。

    Args:
        error: API呼び出しで発生した例外

    Returns:
        ErrorCategory
    """
    status = get_status_code(error)
    if status is not None:
        if status == 401:
            return ErrorCategory.INVALID_CREDENTIAL
        if status == 403:
            return ErrorCategory.ACCESS_DENIED
        if status == 404:
            return ErrorCategory.MODEL_UNAVAILABLE
        if status in (400, 413, 422):
            return ErrorCategory.MALFORMED_REQUEST
        if status == 429:
            return ErrorCategory.RATE_LIMITED
        if status >= 500:
            return ErrorCategory.SERVER_ERROR
        return ErrorCategory.UNKNOWN

    # タイムアウト系は接続エラーのサブクラスなので先に判定する
    if isinstance(error, _TIMEOUT_ERRORS):
        return ErrorCategory.TIMEOUT
    if isinstance(error, _CONNECTION_ERRORS):
        return ErrorCategory.CONNECTIVITY_ERROR
    return ErrorCategory.UNKNOWN


_TIMEOUT_ERRORS = (
    openai.APITimeoutError,
    httpx.TimeoutException,
    asyncio.TimeoutError,
    TimeoutError,
)

_CONNECTION_ERRORS = (
    openai.APIConnectionError,
    httpx.TransportError,
    ConnectionError,
)

# ストリーム途中の通信断はSDKで変換されずhttpxの例外のまま届く
_SERVICE_ERRORS = (openai.OpenAIError,) + _TIMEOUT_ERRORS + _CONNECTION_ERRORS


@dataclass
class CompletionConfig:
    """補完クライアントの設定。"""
    api_key: str
    base_url: str = "https://api.anthropic.com/v1/"
    model: str = "claude-sonnet-4-6"
    max_tokens: int = 8192
    max_retries: int = 3  # 初回を含む試行回数
    request_timeout: float = 600.0

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError(
                f"max_retries must be at least 1: {self.max_retries}"
            )


class CompletionClient:
    """LLM補完サービスの非同期クライアント。"""

    def __init__(
        self,
        config: CompletionConfig,
        client: Optional[Any] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """補完クライアントを初期化する。

        ネットワーク呼び出しの前にAPIキーを検証する。

        Args:
            config: クライアント設定
            client: 事前に構築したSDKクライアント（テスト用、省略可）
            sleep: バックオフ待機用のコルーチン関数

        Raises:
            CredentialError: APIキーが空の場合
        """
        if not config.api_key:
            raise CredentialError()

        self.config = config
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep

        logger.info(f"CompletionClient initialized with model: {config.model}")

    async def __aenter__(self) -> "CompletionClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """自分で生成したSDKクライアントの接続プールを閉じる。

        次回の呼び出し時には新しいSDKクライアントを生成する。
        外部から渡されたクライアントは閉じない。
        """
        if self._owns_client and self._client is not None:
            client, self._client = self._client, None
            await client.close()
            logger.debug("CompletionClient connection pool closed")

    def _get_client(self) -> Any:
        """SDKクライアントを取得する（初回使用時に生成）。"""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.request_timeout,
                max_retries=0
            )
        return self._client

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """補完結果を一括で取得する。

        Args:
            system_prompt: 監査ルールを定義するシステムプロンプト
            user_prompt: ソースコードを含むユーザープロンプト

        Returns:
            補完テキスト

        Raises:
            CompletionError: リトライ対象外のエラー、またはリトライ上限到達
        """
        async def attempt() -> str:
            response = await self._get_client().chat.completions.create(
                **self._request_args(system_prompt, user_prompt)
            )
            if not response.choices:
                logger.warning("Empty response from LLM")
                return ""
            return response.choices[0].message.content or ""

        return await self._with_retry(attempt)

    async def complete_stream(
        self,
        system_prompt: str,
        user_prompt: str,
        on_token: TokenCallback
    ) -> str:
        """補完結果をストリーミングで取得する。

        途中で失敗したストリームは最初からやり直すため、
        on_tokenは進捗表示にのみ使うこと。

        Args:
            system_prompt: 監査ルールを定義するシステムプロンプト
            user_prompt: ソースコードを含むユーザープロンプト
            on_token: テキスト差分ごとに同期的に呼ばれるコールバック

        Returns:
            成功した試行で受信したテキスト全体

        Raises:
            CompletionError: リトライ対象外のエラー、またはリトライ上限到達
        """
        async def attempt() -> str:
            stream = await self._get_client().chat.completions.create(
                stream=True,
                **self._request_args(system_prompt, user_prompt)
            )
            parts = []
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    parts.append(delta)
                    on_token(delta)
            return "".join(parts)

        return await self._with_retry(attempt)

    def _request_args(self, system_prompt: str, user_prompt: str) -> dict:
        return {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt}
            ],
        }

    async def _with_retry(self, attempt: Callable[[], Awaitable[str]]) -> str:
        """リトライポリシーを適用し、失敗を分類済みの例外に変換する。"""
        try:
            text = await retry_async(
                attempt,
                max_attempts=self.config.max_retries,
                sleep=self._sleep
            )
        except RetryExhaustedError as e:
            last_error = e.last_error
            raise CompletionError(
                f"Completion failed after {e.attempts} attempts, "
                f"retries exhausted: {last_error}",
                category=classify_error(last_error),
                status_code=get_status_code(last_error),
                retries_exhausted=True
            ) from last_error
        except _SERVICE_ERRORS as e:
            category = classify_error(e)
            logger.error(f"Completion failed ({category.value}): {e}")
            raise CompletionError(
                f"Completion failed ({category.value}): {e}",
                category=category,
                status_code=get_status_code(e)
            ) from e

        logger.debug(f"Received {len(text)} chars from {self.config.model}")
        return text
