"""レスポンスパーサーのテスト。"""

import json
import random

import pytest

from cppaudit.llm.response_parser import (
    ResponseParser,
    decode_finding,
    extract_json_array,
    parse_findings,
)
from cppaudit.models import Finding, Severity


class TestExtractJsonArray:
    """配列部分の抽出のテスト。"""

    def test_leftmost_to_rightmost(self):
        text = 'note [1] then [{"a": [2]}] end'
        assert extract_json_array(text) == '[1] then [{"a": [2]}]'

    def test_no_brackets(self):
        assert extract_json_array("no array here") is None

    def test_reversed_brackets(self):
        assert extract_json_array("] before [") is None


class TestParseFindings:
    """parse_findingsのテスト。"""

    def test_fenced_json_with_prose(self):
        """説明文とコードフェンスに囲まれた配列をパースできる。"""
        text = (
            "Sure, here are the findings:\n```json\n"
            '[{"severity":"critical","title":"X","file":"a.cpp"}]\n```'
        )
        findings = parse_findings(text)

        assert len(findings) == 1
        finding = findings[0]
        assert finding.severity == Severity.CRITICAL
        assert finding.title == "X"
        assert finding.file == "a.cpp"
        assert finding.description == ""
        assert finding.category == "other"
        assert finding.line is None

    def test_unknown_severity_defaults(self):
        """不明な重大度はsuggestion、タイトルは既定値になる。"""
        findings = parse_findings('[{"severity":"bogus"}]')
        assert findings == [Finding(
            severity=Severity.SUGGESTION,
            category="other",
            title="Untitled finding",
            file="",
            description="",
        )]

    def test_prose_only(self):
        """配列を含まない文章は空リストになる。"""
        assert parse_findings("I could not find any issues in this code.") == []

    def test_invalid_json(self):
        assert parse_findings("[{severity: critical,}]") == []

    def test_non_array_json(self):
        assert parse_findings('{"severity": "critical"}') == []

    def test_empty_text(self):
        assert parse_findings("") == []
        assert parse_findings(None) == []

    def test_empty_array(self):
        assert parse_findings("[]") == []

    def test_full_finding(self):
        """全フィールドが揃った指摘をそのまま変換する。"""
        payload = [{
            "severity": "warning",
            "category": "performance",
            "title": "Copy in range-for",
            "file": "src/server.cpp",
            "line": 42,
            "description": "Each element is copied.",
            "codeSnippet": "for (auto x : items)",
            "fix": "for (const auto& x : items)",
            "source": "C++ Core Guidelines F.16",
        }]
        finding = parse_findings(json.dumps(payload))[0]

        assert finding.severity == Severity.WARNING
        assert finding.line == 42
        assert finding.code_snippet == "for (auto x : items)"
        assert finding.fix == "for (const auto& x : items)"
        assert finding.source == "C++ Core Guidelines F.16"
        assert finding.location == "src/server.cpp:42"

    def test_model_order_preserved(self):
        payload = [{"title": str(i)} for i in range(5)]
        titles = [f.title for f in parse_findings(json.dumps(payload))]
        assert titles == ["0", "1", "2", "3", "4"]

    def test_malformed_entry_does_not_drop_others(self):
        """不正な要素があっても他の要素は残る。"""
        text = '[{"severity":"critical","title":"ok"}, "junk", null, 7]'
        findings = parse_findings(text)
        assert len(findings) == 4
        assert findings[0].title == "ok"
        assert all(f.title == "Untitled finding" for f in findings[1:])

    def test_parser_instance(self):
        assert ResponseParser().parse('[{"severity":"good"}]')[0].severity == Severity.GOOD


class TestDecodeFinding:
    """decode_findingの強制変換のテスト。"""

    def test_severity_case_insensitive(self):
        assert decode_finding({"severity": " Critical "}).severity == Severity.CRITICAL

    def test_non_string_severity(self):
        assert decode_finding({"severity": 1}).severity == Severity.SUGGESTION

    @pytest.mark.parametrize("value", ["12", True, None, [3], {"n": 3}])
    def test_non_numeric_line_omitted(self, value):
        assert decode_finding({"line": value}).line is None

    @pytest.mark.parametrize("value", [12.0, 12.7, 12.2])
    def test_float_line_truncated(self, value):
        """小数の行番号は小数部を切り捨てる。"""
        assert decode_finding({"line": value}).line == 12

    def test_nan_line_omitted(self):
        assert decode_finding({"line": float("nan")}).line is None

    def test_null_fields_use_defaults(self):
        finding = decode_finding({
            "category": None, "title": None, "file": None, "description": None
        })
        assert finding.category == "other"
        assert finding.title == "Untitled finding"
        assert finding.file == ""
        assert finding.description == ""

    def test_wrong_types_become_text(self):
        finding = decode_finding({"title": 5, "file": ["a", "b"], "description": False})
        assert finding.title == "5"
        assert finding.file == '["a", "b"]'
        assert finding.description == "false"

    @pytest.mark.parametrize("value", ["", 0, False, None, []])
    def test_falsy_optional_fields_omitted(self, value):
        finding = decode_finding({"codeSnippet": value, "fix": value, "source": value})
        assert finding.code_snippet is None
        assert finding.fix is None
        assert finding.source is None

    def test_extra_fields_ignored(self):
        assert decode_finding({"title": "t", "confidence": 0.9}).title == "t"

    @pytest.mark.parametrize("value", [None, 3, "text", [1, 2], [[{"a": None}]], 1.5])
    def test_non_object_values(self, value):
        finding = decode_finding(value)
        assert finding.severity == Severity.SUGGESTION
        assert finding.title == "Untitled finding"

    @pytest.mark.parametrize("seed", range(30))
    def test_arbitrary_json_never_raises(self, seed):
        """任意のJSON値から常に整形式のFindingを返す。"""
        rng = random.Random(seed)

        def value(depth=0):
            kind = rng.randint(0, 6 if depth < 3 else 4)
            if kind == 0:
                return None
            if kind == 1:
                return rng.choice([True, False])
            if kind == 2:
                return rng.randint(-10**6, 10**6)
            if kind == 3:
                return rng.uniform(-1e6, 1e6)
            if kind == 4:
                return rng.choice(["", "critical", "good", "x" * rng.randint(1, 20)])
            if kind == 5:
                return [value(depth + 1) for _ in range(rng.randint(0, 3))]
            keys = ["severity", "category", "title", "file", "line",
                    "description", "codeSnippet", "fix", "source", "other"]
            return {k: value(depth + 1) for k in rng.sample(keys, rng.randint(0, len(keys)))}

        finding = decode_finding(value())

        assert isinstance(finding.severity, Severity)
        for text in (finding.category, finding.title, finding.file, finding.description):
            assert isinstance(text, str)
        assert finding.line is None or isinstance(finding.line, int)
        for optional in (finding.code_snippet, finding.fix, finding.source):
            assert optional is None or (isinstance(optional, str) and optional)
