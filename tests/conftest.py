"""テスト共通のフィクスチャとフェイクSDK。"""

from types import SimpleNamespace

import httpx
import openai
import pytest

from cppaudit.models import (
    DependencyRef,
    FileCategory,
    ProjectDescriptor,
    SourceFileRecord,
)

API_URL = "https://api.anthropic.com/v1/chat/completions"


def make_record(name, size=10, category=FileCategory.IMPLEMENTATION, content=None):
    """テスト用のSourceFileRecordを作成する。"""
    if content is None:
        content = "x" * size
    return SourceFileRecord(
        path=f"/project/{name}",
        relative_path=name,
        category=category,
        content=content,
        line_count=content.count("\n") + 1,
    )


def status_error(status):
    """指定ステータスのAPIStatusErrorを作成する。"""
    request = httpx.Request("POST", API_URL)
    response = httpx.Response(status, request=request)
    return openai.APIStatusError(
        f"Error code: {status}", response=response, body=None
    )


def connection_error():
    return openai.APIConnectionError(request=httpx.Request("POST", API_URL))


def timeout_error():
    return openai.APITimeoutError(request=httpx.Request("POST", API_URL))


class FakeStream:
    """チャンクを返す非同期イテレーター。

    要素が例外の場合はその時点で送出する（ストリーム途中の失敗）。
    """

    def __init__(self, items):
        self._items = list(items)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._items:
            raise StopAsyncIteration
        item = self._items.pop(0)
        if isinstance(item, BaseException):
            raise item
        delta = SimpleNamespace(content=item)
        return SimpleNamespace(choices=[SimpleNamespace(delta=delta)])


class FakeCompletions:
    """chat.completions.createの呼び出しを記録するフェイク。

    outcomesの各要素は、文字列（一括応答）、リスト（ストリーム）、
    例外（送出）のいずれか。
    """

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        if kwargs.get("stream"):
            return FakeStream(outcome)
        message = SimpleNamespace(content=outcome)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_sdk(outcomes):
    completions = FakeCompletions(outcomes)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


class SleepRecorder:
    """待機時間を記録するだけのsleep置き換え。"""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def project():
    return ProjectDescriptor(
        name="demo",
        path="/project",
        cpp_standard="C++17",
        build_system="cmake",
        dependencies=(DependencyRef("Boost", "1.83"), DependencyRef("Threads")),
        project_files=("CMakeLists.txt",),
    )
