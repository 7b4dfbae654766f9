"""Prompt builder for C++ audit requests."""

from pathlib import Path
from typing import Iterable, Optional, Sequence
import logging

from ..models.source import SourceFileRecord

logger = logging.getLogger(__name__)


DEFAULT_SYSTEM_PROMPT = """You are an elite C++ performance and safety auditor. You analyze C++ code across four pillars of quality: memory safety, performance, modern C++ improvements, and architecture.

Your knowledge comes from the C++ Core Guidelines, Google Sanitizers (ASan, TSan, MSan, UBSan), Clang-Tidy checks (bugprone-*, cppcoreguidelines-*, performance-*), the Abseil Performance Guide, Scott Meyers' Effective Modern C++, Jason Turner's C++ Best Practices and Fedor Pikus' hardware-level optimization guidance.

## PILLAR 1: BUGS / CRITICAL (highest priority)
Raw owning pointers, missing RAII, use-after-free, double-free, dangling pointers and references, buffer overflows, undefined behavior (signed overflow, null dereference, strict aliasing), uninitialized variables, data races, exception-safety leaks, use-after-move, unsafe casts.
Key rules: R.1, R.3, R.11, R.12, ES.20, F.43, CP.1, CP.2, C.35, C.66.

## PILLAR 2: PERFORMANCE
Unnecessary copies, shared_ptr where unique_ptr suffices, missing reserve(), string concatenation in loops, std::string where string_view suffices, std::map where unordered_map works, lock contention, missing noexcept on moves, std::endl in hot paths, O(n) lookups where O(1) exists.

## PILLAR 3: MODERN C++
nullptr, enum class, override, make_unique/make_shared, constexpr, [[nodiscard]], structured bindings, std::optional, std::variant, if constexpr, emplace, lambdas over std::bind. Cache line awareness, CRTP over virtual dispatch and SIMD-friendly layouts on hot paths.

## PILLAR 4: ARCHITECTURE
Header hygiene, "using namespace std" in headers, Rule of Zero/Five, consistent error handling, sanitizer integration in the build system, ownership of shared state between threads.

Also report good patterns (RAII, const correctness, noexcept moves, sanitizer integration) with severity "good".

## OUTPUT FORMAT
Return a JSON array of findings. Each finding must have:
- severity: "critical" | "warning" | "suggestion" | "good"
- category: "memory" | "performance" | "moderncpp" | "architecture" | "concurrency" | "build"
- title: Short descriptive title (under 60 chars)
- file: The relative file path
- line: Line number if identifiable (or null)
- description: 1-2 sentence explanation of why this matters
- codeSnippet: The problematic code (1-5 lines, or null)
- fix: The corrected code (or null for "good" findings)
- source: Attribution such as "C++ Core Guidelines R.11" (or null)

Only return the JSON array, with no markdown fencing and no text outside the array."""


class PromptBuilder:
    """Build prompts for audit requests."""

    def __init__(self, system_prompt: Optional[str] = None):
        """Initialize the prompt builder.

        Args:
            system_prompt: Audit rules replacing the built-in prompt
        """
        self.system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT

    @classmethod
    def from_file(cls, file_path: str) -> "PromptBuilder":
        """Load the audit rules from a text file.

        Args:
            file_path: Path to the prompt file

        Returns:
            PromptBuilder instance
        """
        text = Path(file_path).read_text(encoding="utf-8")
        logger.info(f"System prompt loaded from {file_path}")
        return cls(system_prompt=text)

    def build_system_prompt(self) -> str:
        """Build the system prompt.

        Returns:
            System prompt string
        """
        return self.system_prompt

    def build_analysis_prompt(
        self,
        files: Sequence[SourceFileRecord],
        cpp_standard: str,
        dependencies: Iterable[str]
    ) -> str:
        """Build the user prompt for one batch.

        Args:
            files: Files in the batch
            cpp_standard: Detected C++ standard label
            dependencies: Dependency names

        Returns:
            User prompt string
        """
        dependencies = list(dependencies)
        deps_text = ", ".join(dependencies) if dependencies else "none detected"

        files_section = "\n\n".join(
            f"### File: {f.relative_path} ({f.category.value})\n"
            f"```cpp\n{f.content}\n```"
            for f in files
        )

        return f"""Analyze the following C++ {cpp_standard} code for safety issues, performance problems, and modern C++ improvements.

Detected dependencies: {deps_text}

{files_section}

Return your findings as a JSON array."""
