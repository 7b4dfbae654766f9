"""指数バックオフ付きリトライユーティリティ。"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")

# レート制限(429)と過負荷(529)のみリトライ対象
RETRYABLE_STATUS_CODES = frozenset({429, 529})


def get_status_code(error: BaseException) -> Optional[int]:
    """例外からHTTPステータスコードを取得する。

    Args:
        error: API呼び出しで発生した例外

    Returns:
        ステータスコード、無い場合はNone
    """
    status = getattr(error, "status_code", None)
    if status is None:
        status = getattr(error, "status", None)
    return status if isinstance(status, int) else None


def is_retryable(error: BaseException) -> bool:
    """リトライ対象のエラーかを判定する。

    判定はステータスコードのみに基づく。

    Args:
        error: 判定する例外

    Returns:
        429または529の場合True
    """
    return get_status_code(error) in RETRYABLE_STATUS_CODES


def backoff_delay(attempt: int, base: float = 2.0) -> float:
    """リトライ前の待機時間を計算する。

    Args:
        attempt: 0始まりの試行番号

    Returns:
        待機秒数（2, 4, 8, ...）
    """
    return base ** (attempt + 1)


class RetryExhaustedError(Exception):
    """最大試行回数までリトライ対象のエラーが続いた。"""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(
            f"Gave up after {attempts} attempts: {last_error}"
        )
        self.attempts = attempts
        self.last_error = last_error


class RetryState:
    """リトライ操作の状態トラッカー。"""

    def __init__(self, max_attempts: int = 3):
        """リトライ状態を初期化する。

        Args:
            max_attempts: 最大試行回数（初回を含む）
        """
        self.max_attempts = max_attempts
        self.attempt = 0
        self.last_error: Optional[BaseException] = None

    def should_retry(self) -> bool:
        """さらに試行できるかを確認する。"""
        return self.attempt < self.max_attempts

    def record_attempt(self, error: Optional[BaseException] = None) -> None:
        """試行を記録する。

        Args:
            error: 試行中のエラー（もしあれば）
        """
        self.attempt += 1
        if error:
            self.last_error = error

    def get_delay(self) -> float:
        """直前の失敗に続く待機時間を取得する。"""
        return backoff_delay(self.attempt - 1)


async def retry_async(
    func: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_retry: Optional[Callable[[BaseException, int], None]] = None
) -> T:
    """非同期関数をバックオフ付きでリトライする。

    リトライ対象外のエラーは待機せずにそのまま送出する。
    最後の試行の後は待機しない。

    Args:
        func: 引数なしで呼び出すコルーチン関数（試行ごとに新しく呼ぶ）
        max_attempts: 最大試行回数（初回を含む）
        sleep: 待機用のコルーチン関数
        on_retry: 各リトライ前に呼び出されるコールバック（省略可）

    Returns:
        funcの戻り値

    Raises:
        RetryExhaustedError: 全試行がリトライ対象のエラーで失敗した場合
        ValueError: max_attemptsが1未満の場合
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1: {max_attempts}")

    state = RetryState(max_attempts)

    while state.should_retry():
        try:
            return await func()
        except Exception as e:
            if not is_retryable(e):
                raise

            state.record_attempt(e)
            if not state.should_retry():
                break

            delay = state.get_delay()
            logger.warning(
                f"Attempt {state.attempt}/{max_attempts} failed with status "
                f"{get_status_code(e)}. Retrying in {delay:.1f}s..."
            )
            if on_retry:
                on_retry(e, state.attempt)

            await sleep(delay)

    logger.error(f"Max attempts ({max_attempts}) exceeded")
    raise RetryExhaustedError(state.attempt, state.last_error)
