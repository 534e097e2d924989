import math

import pytest

from telecare.schemas.assessment import AIHealthAnalysis
from telecare.services.symptom_engine import sanitize_analysis

VALID = {
    "diagnosis": ["Tension headache"],
    "recommendations": ["Rest", "Hydrate"],
    "urgencyLevel": "low",
    "referralNeeded": False,
    "riskScore": 20,
    "followUpDays": 5,
}


def test_valid_verdict_passes_through_unchanged():
    out = sanitize_analysis(VALID)
    assert out.model_dump(by_alias=True, exclude_none=True) == VALID


def test_sanitize_is_idempotent():
    for raw in (VALID, {}, {"urgencyLevel": "bogus", "riskScore": 140, "emergencyWarning": "x"}):
        once = sanitize_analysis(raw)
        assert sanitize_analysis(once) == once
        assert sanitize_analysis(once.model_dump(by_alias=True)) == once


def test_empty_payload_gets_cautious_defaults():
    out = sanitize_analysis({})
    assert out.diagnosis == ["Requires medical evaluation"]
    assert out.recommendations == ["Consult healthcare provider"]
    assert out.urgency_level == "medium"
    assert out.referral_needed is True
    assert out.risk_score == 50
    assert out.follow_up_days is None
    assert out.emergency_warning is None


@pytest.mark.parametrize("raw", [None, "text", 42, ["a"]])
def test_non_mapping_input(raw):
    assert sanitize_analysis(raw) == sanitize_analysis({})


@pytest.mark.parametrize(
    "diagnosis,expected",
    [
        ("flu", ["Requires medical evaluation"]),
        ([], ["Requires medical evaluation"]),
        (["  ", None, 3], ["Requires medical evaluation"]),
        (["  Flu ", ""], ["Flu"]),
    ],
)
def test_diagnosis_coercion(diagnosis, expected):
    assert sanitize_analysis({"diagnosis": diagnosis}).diagnosis == expected


@pytest.mark.parametrize("urgency", ["LOW", "critical", None, 3])
def test_invalid_urgency_becomes_medium(urgency):
    assert sanitize_analysis({"urgencyLevel": urgency}).urgency_level == "medium"


@pytest.mark.parametrize("referral", ["true", 1, None])
def test_non_boolean_referral_becomes_true(referral):
    assert sanitize_analysis({"referralNeeded": referral}).referral_needed is True


@pytest.mark.parametrize(
    "score,expected",
    [
        (0, 0),
        (100, 100),
        (42.6, 43),
        (-1, 50),
        (101, 50),
        ("80", 50),
        (True, 50),
        (math.nan, 50),
        (math.inf, 50),
        (None, 50),
    ],
)
def test_risk_score_coercion(score, expected):
    assert sanitize_analysis({"riskScore": score}).risk_score == expected


@pytest.mark.parametrize(
    "days,expected",
    [(1, 1), (14.0, 14), (0, None), (-3, None), (2.5, None), ("3", None), (True, None), (math.inf, None)],
)
def test_follow_up_days_coercion(days, expected):
    assert sanitize_analysis({"followUpDays": days}).follow_up_days == expected


def test_emergency_warning_only_for_high_or_emergency():
    assert sanitize_analysis({"urgencyLevel": "low", "emergencyWarning": "Go now"}).emergency_warning is None
    assert sanitize_analysis({"urgencyLevel": "high", "emergencyWarning": " Go now "}).emergency_warning == "Go now"
    assert sanitize_analysis({"urgencyLevel": "emergency", "emergencyWarning": "   "}).emergency_warning is None


def test_snake_case_keys_are_accepted():
    out = sanitize_analysis({"urgency_level": "high", "risk_score": 70, "referral_needed": False})
    assert (out.urgency_level, out.risk_score, out.referral_needed) == ("high", 70, False)


def test_accepts_model_instance():
    model = sanitize_analysis(VALID)
    assert isinstance(sanitize_analysis(model), AIHealthAnalysis)
