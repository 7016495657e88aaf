import json

import pytest

from friction_intel.errors import ParseError
from friction_intel.friction.prompts import MAX_CASE_CHARS, TRUNCATION_NOTE, build_classification_prompt, prepare_case_text
from friction_intel.friction.verdict import (
    FIXED_CONFIDENCE,
    NORMAL_SUPPORT_THEME,
    clamp_severity,
    decode_verdict,
    extract_json_object,
    parse_verdict,
)


def _friction(**overrides) -> dict:
    payload = {
        "is_friction": True,
        "summary": "Export returns 500",
        "theme_key": "integration_failures",
        "severity": 4,
        "sentiment": "frustrated",
        "root_cause": "Export worker crashing",
        "evidence": ["throwing a 500 error", "blocking our monthly report"],
    }
    payload.update(overrides)
    return payload


def test_extracts_object_wrapped_in_prose_and_fences():
    text = "Here is my analysis:\n```json\n" + json.dumps(_friction()) + "\n```\nLet me know!"
    assert extract_json_object(text)["theme_key"] == "integration_failures"


def test_extract_skips_braces_inside_strings():
    payload = _friction(summary="User typed {oops} into the } field")
    text = "noise { not json " + json.dumps(payload)
    assert extract_json_object(text)["summary"] == "User typed {oops} into the } field"


def test_extract_returns_first_top_level_object():
    text = json.dumps({"is_friction": False, "reason": "first"}) + " " + json.dumps({"reason": "second"})
    assert extract_json_object(text)["reason"] == "first"


def test_extract_does_not_fall_back_to_object_nested_in_malformed_one():
    text = '{"wrapper": oops, "inner": {"is_friction": false, "reason": "nested"}}'
    with pytest.raises(ParseError):
        extract_json_object(text)


@pytest.mark.parametrize("text", ["", "no json at all", "{broken: json", "[1, 2, 3]"])
def test_extract_without_object_is_parse_error(text):
    with pytest.raises(ParseError):
        extract_json_object(text)


@pytest.mark.parametrize("raw, expected", [(0, 1), (-3, 1), (1, 1), (3, 3), (5, 5), (9, 5), (42.0, 5), ("4", 4), (2.5, 3), (None, 1)])
def test_severity_is_clamped(raw, expected):
    assert clamp_severity(raw) == expected


@pytest.mark.parametrize("raw", ["high", True, float("nan"), [3]])
def test_non_numeric_severity_is_parse_error(raw):
    with pytest.raises(ParseError):
        clamp_severity(raw)


def test_out_of_range_severity_from_classifier_is_clamped():
    assert parse_verdict(json.dumps(_friction(severity=11))).severity == 5
    assert parse_verdict(json.dumps(_friction(severity=-2))).severity == 1


def test_non_friction_forces_normal_support_and_severity_one():
    verdict = decode_verdict({
        "is_friction": False,
        "summary": "Billing email change",
        "reason": "Contact info update",
        "theme_key": "billing_confusion",
        "severity": 5,
    })
    assert verdict.is_friction is False
    assert verdict.theme_key == NORMAL_SUPPORT_THEME
    assert verdict.severity == 1
    assert verdict.root_cause == "Contact info update"
    assert verdict.reasoning == "Non-friction: Contact info update"


def test_non_friction_without_reason_gets_default_root_cause():
    verdict = decode_verdict({"is_friction": False, "summary": "Thanks!"})
    assert verdict.root_cause == "Normal support request"
    assert verdict.reasoning == "Non-friction: Normal support"


def test_friction_verdict_fields():
    verdict = decode_verdict(_friction(evidence=["a", "b", "c"], sentiment="ANGRY"))
    assert verdict.theme_key == "integration_failures"
    assert verdict.evidence == ["a", "b"]
    assert verdict.sentiment == "angry"
    assert verdict.confidence_score == FIXED_CONFIDENCE


def test_missing_theme_falls_back_to_other():
    payload = _friction()
    del payload["theme_key"]
    assert decode_verdict(payload).theme_key == "other"


def test_unknown_theme_is_parse_error():
    with pytest.raises(ParseError):
        decode_verdict(_friction(theme_key="cosmic_rays"))


def test_invalid_sentiment_becomes_neutral():
    assert decode_verdict(_friction(sentiment="ecstatic")).sentiment == "neutral"


def test_non_boolean_is_friction_is_parse_error():
    with pytest.raises(ParseError):
        decode_verdict(_friction(is_friction="maybe"))


def test_short_case_text_is_untouched():
    assert prepare_case_text("hello") == "hello"


def test_long_case_text_is_truncated_with_note():
    text = "x" * (MAX_CASE_CHARS + 500)
    prepared = prepare_case_text(text)
    assert prepared == "x" * MAX_CASE_CHARS + TRUNCATION_NOTE


def test_prompt_contains_rubric_and_case_text():
    prompt = build_classification_prompt("The export button has been throwing a 500 error")
    assert "The export button has been throwing a 500 error" in prompt
    assert "integration_failures" in prompt
    assert "BE STRICT" in prompt
    assert "\"is_friction\": false" in prompt
