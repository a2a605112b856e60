from __future__ import annotations

from ai_reviewer.review.interpreter import FALLBACK_MESSAGE
from ai_reviewer.review.interpreter import extract_fenced_findings
from ai_reviewer.review.interpreter import extract_summary
from ai_reviewer.review.interpreter import interpret_review_response
from ai_reviewer.review.interpreter import scan_line
from ai_reviewer.review.models import Severity


def test_plain_text_becomes_single_info_finding() -> None:
    outcome = interpret_review_response("it looks fine", file_path="a.py")
    assert outcome.file == "a.py"
    assert len(outcome.findings) == 1
    finding = outcome.findings[0]
    assert finding.severity == Severity.INFO
    assert finding.message == FALLBACK_MESSAGE
    assert finding.suggestion == "it looks fine"
    assert finding.line is None


def test_empty_text_has_no_findings() -> None:
    outcome = interpret_review_response("   \n", file_path="a.py")
    assert outcome.findings == []
    assert outcome.summary == ""


def test_fenced_json_findings_are_used() -> None:
    raw = 'Here you go:\n```json\n{"findings":[{"severity":"error","message":"X"}],"summary":"S"}\n```\n'
    outcome = interpret_review_response(raw, file_path="a.py")
    assert len(outcome.findings) == 1
    assert outcome.findings[0].severity == Severity.ERROR
    assert outcome.findings[0].message == "X"
    assert outcome.findings[0].line is None
    assert outcome.summary == "S"


def test_fenced_json_maps_code_and_skips_invalid_items() -> None:
    raw = (
        "```\n"
        '{"findings":[{"line":"12","severity":"WARNING","message":"m","suggestion":"s","code":"x = 1"},'
        '{"severity":"error"}, "junk", {"line":-3,"severity":"fatal","message":"n"}]}\n'
        "```"
    )
    findings, summary = extract_fenced_findings(raw)
    assert summary == ""
    assert [f.message for f in findings] == ["m", "n"]
    assert findings[0].line == 12
    assert findings[0].severity == Severity.WARNING
    assert findings[0].example_code == "x = 1"
    assert findings[1].line is None
    assert findings[1].severity == Severity.INFO


def test_legacy_issues_key_is_accepted() -> None:
    raw = '```json\n{"issues":[{"line":3,"severity":"error","message":"boom"}]}\n```'
    outcome = interpret_review_response(raw, file_path="a.py")
    assert [(f.line, f.message) for f in outcome.findings] == [(3, "boom")]


def test_unparseable_block_falls_back_to_line_scan() -> None:
    raw = "```json\n{not json}\n```\n10: [warning] unused import\n"
    outcome = interpret_review_response(raw, file_path="a.py")
    assert [(f.line, f.severity, f.message) for f in outcome.findings] == [
        (10, Severity.WARNING, "unused import")
    ]


def test_severity_tag_is_case_insensitive() -> None:
    upper = scan_line("3: [ERROR] null dereference")
    lower = scan_line("3: [error] null dereference")
    assert upper == lower
    assert upper.severity == Severity.ERROR
    assert upper.line == 3


def test_scan_line_variants() -> None:
    assert scan_line("- 42：[Warning] 全角冒号").line == 42
    assert scan_line("- 42：[Warning] 全角冒号").message == "全角冒号"
    assert scan_line(": [info] file level").line is None
    assert scan_line("7: plain message").severity == Severity.INFO


def test_scan_line_unknown_tag_stays_in_message() -> None:
    finding = scan_line("5: [perf] slow loop")
    assert finding.severity == Severity.INFO
    assert finding.message == "[perf] slow loop"


def test_scan_line_rejects_non_matching_lines() -> None:
    assert scan_line("no colon here") is None
    assert scan_line("12: ") is None
    assert scan_line("") is None


def test_pathological_input_is_handled() -> None:
    raw = "1" * 50_000 + ":" + "[" * 50_000
    outcome = interpret_review_response(raw, file_path="a.py")
    assert len(outcome.findings) == 1


def test_interpretation_is_deterministic() -> None:
    raw = "1: [error] a\n2: [warning] b\n\n总结: 还行"
    assert interpret_review_response(raw, "a.py") == interpret_review_response(raw, "a.py")


def test_extract_summary_marker_and_next_line() -> None:
    assert extract_summary("1: x\nSummary: all good") == "all good"
    assert extract_summary("1: x\n总结：\n\n需要补充测试") == "需要补充测试"


def test_extract_summary_falls_back_to_last_paragraph() -> None:
    assert extract_summary("first para\n\nsecond\npara\n\n") == "second\npara"
