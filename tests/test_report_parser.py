"""
Tests for the model reply parser
"""

import json

from bloodlens.services.report_parser import FAILED_SUMMARY, parse_analysis, strip_code_fences
from tests.conftest import SAMPLE_ANALYSIS


def test_valid_reply_is_parsed():
    analysis = parse_analysis(json.dumps(SAMPLE_ANALYSIS))

    assert analysis.summary == SAMPLE_ANALYSIS["summary"]
    assert analysis.overall_score == 8
    assert analysis.risk_level == "low"
    assert [t["test"] for t in analysis.tests] == ["Vitamin D", "Hemoglobin"]
    assert analysis.tests[0]["flag"] == "low"
    assert analysis.supplements[0] == {
        "name": "Vitamin D3", "reason": "Deficiency", "dose": "1000 IU", "duration": "3 months",
    }
    assert analysis.nutrition["focus"] == "Vitamin D rich foods"
    assert analysis.lifestyle["sleep"] == "7-8 hours"


def test_fenced_reply_is_parsed():
    raw = "```json\n" + json.dumps(SAMPLE_ANALYSIS) + "\n```"

    analysis = parse_analysis(raw)

    assert analysis.summary == SAMPLE_ANALYSIS["summary"]
    assert len(analysis.tests) == 2


def test_strip_code_fences():
    assert strip_code_fences("```json\n{}\n```") == "{}"
    assert strip_code_fences("```\n[1]\n```") == "[1]"
    assert strip_code_fences(None) == ""


def test_unparseable_reply_yields_default_record():
    for raw in ("I could not read this report, sorry.", "", None, "[1, 2, 3]", "{\"summary\": "):
        analysis = parse_analysis(raw)

        assert analysis.summary == FAILED_SUMMARY
        assert analysis.overall_score == 5
        assert analysis.risk_level == "moderate"
        assert analysis.tests == []
        assert analysis.supplements == []
        assert set(analysis.nutrition) == {"focus", "breakfast", "lunch", "dinner", "snacks", "avoid"}
        assert set(analysis.lifestyle) == {"exercise", "sleep", "stress"}


def test_missing_keys_are_filled():
    analysis = parse_analysis('{"summary": "Looks fine"}')

    assert analysis.summary == "Looks fine"
    assert analysis.recommendation == ""
    assert analysis.overall_score == 5
    assert analysis.risk_level == "moderate"
    assert analysis.health_goals == []
    assert analysis.nutrition["breakfast"] == []
    assert analysis.lifestyle == {"exercise": "", "sleep": "", "stress": ""}
    assert analysis.future_predictions == []
    assert analysis.medication_alerts == []


def test_partial_nutrition_is_completed():
    analysis = parse_analysis('{"nutrition": {"focus": "Iron", "lunch": ["Spinach"]}}')

    assert analysis.nutrition == {
        "focus": "Iron", "breakfast": [], "lunch": ["Spinach"], "dinner": [], "snacks": [], "avoid": [],
    }


def test_overall_score_is_coerced_and_clamped():
    cases = {
        '"7.5"': 7.5,
        '"high"': 5,
        "42": 10,
        "-3": 1,
        "0": 1,
        "true": 5,
        "null": 5,
        "[8]": 5,
    }
    for raw_score, expected in cases.items():
        analysis = parse_analysis('{"overallScore": %s}' % raw_score)
        assert analysis.overall_score == expected, raw_score


def test_unknown_flags_and_risk_levels_fall_back():
    raw = json.dumps({
        "riskLevel": "apocalyptic",
        "tests": [
            {"test": "LDL", "value": 190, "flag": "HIGH"},
            {"test": "TSH", "value": 2.1, "flag": "borderline"},
            "not a test",
        ],
    })

    analysis = parse_analysis(raw)

    assert analysis.risk_level == "moderate"
    assert [t["flag"] for t in analysis.tests] == ["high", "normal"]
    assert analysis.tests[0]["unit"] == ""


def test_string_supplements_become_objects():
    analysis = parse_analysis('{"supplements": ["Iron", {"name": "B12", "reason": "Low B12"}, 3]}')

    assert analysis.supplements == [
        {"name": "Iron", "reason": ""},
        {"name": "B12", "reason": "Low B12"},
    ]


def test_empty_summary_is_kept_when_reply_parses():
    analysis = parse_analysis('{"summary": "", "tests": [{"test": "ALT", "value": 30, "flag": "normal"}]}')

    assert analysis.summary == ""
    assert len(analysis.tests) == 1
