"""解析対象のプロジェクト・ソースファイルモデル。"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from enum import Enum


class FileCategory(str, Enum):
    """ファイル分類器が付与するカテゴリ。"""
    HEADER = "header"
    IMPLEMENTATION = "implementation"
    MAIN = "main"                # エントリーポイント
    TEST = "test"
    CONCURRENCY = "concurrency"  # スレッド・同期処理
    ALLOCATOR = "allocator"      # メモリ管理
    TEMPLATE = "template"
    UTILITY = "utility"
    OTHER = "other"


@dataclass(frozen=True)
class SourceFileRecord:
    """分類済みのソースファイル。

    ファイル探索時に一度だけ生成され、以降は読み取り専用。
    """
    path: str
    relative_path: str
    category: FileCategory
    content: str
    line_count: int

    @property
    def size(self) -> int:
        """バッチ予算の計算に使う内容の文字数。"""
        return len(self.content)

    def __str__(self) -> str:
        return f"{self.relative_path} ({self.category.value}, {self.line_count} lines)"


@dataclass(frozen=True)
class DependencyRef:
    """ビルドシステムから検出された依存ライブラリ。"""
    name: str
    version: Optional[str] = None

    def __str__(self) -> str:
        if self.version:
            return f"{self.name} {self.version}"
        return self.name


@dataclass(frozen=True)
class ProjectDescriptor:
    """プロジェクトロケーターが生成するプロジェクト情報のスナップショット。"""
    name: str
    path: str
    cpp_standard: str = "unknown"
    build_system: str = "unknown"  # cmake, meson, bazel, makefile, vcxproj, unknown
    dependencies: Tuple[DependencyRef, ...] = field(default_factory=tuple)
    project_files: Tuple[str, ...] = field(default_factory=tuple)

    def dependency_names(self) -> List[str]:
        """依存ライブラリ名の一覧を取得する。

        Returns:
            検出順の依存ライブラリ名
        """
        return [dep.name for dep in self.dependencies]

    def __str__(self) -> str:
        return f"{self.name} ({self.cpp_standard}, {self.build_system})"
