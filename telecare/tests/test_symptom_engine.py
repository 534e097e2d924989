import asyncio
import json

import httpx
import pytest

from telecare.schemas.assessment import AssessmentRequest, PatientContext
from telecare.services.symptom_engine import (
    SYSTEM_PROMPT,
    BackendFailure,
    BackendVerdict,
    SymptomAnalysisEngine,
    build_prompt,
)
from telecare.services.validation import validate_assessment_request
from telecare.utils.exceptions import BackendUnavailable

from fakes import FakeBackend


def _request(symptoms, **extra):
    return AssessmentRequest(patient_id="p-1", symptoms=symptoms, **extra)


def _analyze(engine, request):
    return asyncio.run(engine.analyze(request))


def test_fallback_is_deterministic_for_common_symptoms():
    out = _analyze(SymptomAnalysisEngine(backend=None), _request(["Headache", "Fatigue"]))
    assert out.urgency_level == "low"
    assert out.referral_needed is False
    assert out.risk_score == 25
    assert out.follow_up_days == 7
    assert out.diagnosis == ["Possible viral infection", "Common cold or flu", "Stress-related symptoms"]
    assert len(out.recommendations) == 4
    assert out.emergency_warning is None


def test_high_urgency_keywords_win_tie_break():
    out = _analyze(SymptomAnalysisEngine(backend=None), _request(["Headache", "Chest pain"]))
    assert out.urgency_level == "high"
    assert out.risk_score == 75
    assert out.follow_up_days == 1
    assert out.referral_needed is True
    assert out.emergency_warning == "These symptoms may require immediate medical attention"
    assert out.diagnosis == ["Requires immediate medical evaluation", "Possible cardiac or respiratory concern"]


def test_emergency_list_phrase_triggers_high_tier():
    out = _analyze(SymptomAnalysisEngine(backend=None), _request(["Thoughts of self-harm"]))
    assert out.urgency_level == "high"


def test_unmatched_symptoms_get_medium_verdict():
    out = _analyze(SymptomAnalysisEngine(backend=None), _request(["Itchy elbow"]))
    assert out.urgency_level == "medium"
    assert out.risk_score == 40
    assert out.follow_up_days == 3
    assert out.referral_needed is True
    assert out.diagnosis == ["General health concern", "Requires further evaluation"]


def test_backend_verdict_is_used_and_sanitized():
    reply = json.dumps({
        "diagnosis": ["Migraine"],
        "recommendations": ["Dark room rest"],
        "urgencyLevel": "low",
        "referralNeeded": "no",
        "riskScore": 130,
        "followUpDays": 2,
    })
    backend = FakeBackend(reply=reply)
    out = _analyze(SymptomAnalysisEngine(backend=backend), _request(["Headache"]))
    assert out.diagnosis == ["Migraine"]
    assert out.referral_needed is True
    assert out.risk_score == 50
    assert out.follow_up_days == 2
    assert len(backend.calls) == 1
    system, prompt = backend.calls[0]
    assert system == SYSTEM_PROMPT
    assert "- Headache" in prompt


def test_backend_reply_inside_code_fence_is_parsed():
    backend = FakeBackend(reply='```json\n{"diagnosis": ["Cold"], "urgencyLevel": "low"}\n```')
    out = _analyze(SymptomAnalysisEngine(backend=backend), _request(["Cough"]))
    assert out.diagnosis == ["Cold"]


@pytest.mark.parametrize(
    "backend,reason",
    [
        (None, "not_configured"),
        (FakeBackend(reply="not json at all"), "malformed"),
        (FakeBackend(reply="[1, 2, 3]"), "malformed"),
        (FakeBackend(error=BackendUnavailable("empty")), "malformed"),
        (FakeBackend(error=httpx.ConnectError("refused")), "transport"),
        (FakeBackend(error=httpx.ReadTimeout("slow")), "timeout"),
        (FakeBackend(error=RuntimeError("boom")), "unexpected"),
    ],
)
def test_consult_backend_reports_failure_reason(backend, reason):
    engine = SymptomAnalysisEngine(backend=backend)
    outcome = asyncio.run(engine._consult_backend(_request(["Cough"])))
    assert isinstance(outcome, BackendFailure)
    assert outcome.reason == reason


def test_consult_backend_returns_verdict_on_success():
    engine = SymptomAnalysisEngine(backend=FakeBackend(reply='{"urgencyLevel": "high"}'))
    outcome = asyncio.run(engine._consult_backend(_request(["Cough"])))
    assert outcome == BackendVerdict({"urgencyLevel": "high"})


def test_slow_backend_times_out_and_falls_back():
    backend = FakeBackend(reply='{"urgencyLevel": "emergency"}', delay=1.0)
    engine = SymptomAnalysisEngine(backend=backend, timeout_s=0.01)
    outcome = asyncio.run(engine._consult_backend(_request(["Cough"])))
    assert outcome.reason == "timeout"
    out = _analyze(engine, _request(["Cough"]))
    assert out.urgency_level == "low"


def test_backend_failure_falls_back_to_heuristic():
    engine = SymptomAnalysisEngine(backend=FakeBackend(error=httpx.ConnectError("refused")))
    out = _analyze(engine, _request(["Chest pain"]))
    assert out.urgency_level == "high"
    assert out.risk_score == 75


def test_cancellation_is_not_absorbed():
    async def scenario():
        engine = SymptomAnalysisEngine(backend=FakeBackend(reply="{}", delay=5.0), timeout_s=10)
        task = asyncio.create_task(engine.analyze(_request(["Cough"])))
        await asyncio.sleep(0.01)
        task.cancel()
        await task

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(scenario())


def test_every_verdict_satisfies_invariants():
    inputs = [["Chest pain"], ["Cough"], ["Rash"], ["severe"], ["x" * 200]]
    replies = ['{"riskScore": -5}', '{"urgencyLevel": null, "diagnosis": []}', "garbage", None]
    for symptoms in inputs:
        for reply in replies:
            out = _analyze(SymptomAnalysisEngine(backend=FakeBackend(reply=reply)), _request(symptoms))
            assert isinstance(out.risk_score, int) and 0 <= out.risk_score <= 100
            assert out.urgency_level in ("low", "medium", "high", "emergency")
            assert out.diagnosis and out.recommendations


def test_prompt_includes_annotations_and_context_defaults():
    request = _request(
        ["Headache", "Cough"],
        severity={"Headache": 7},
        duration={"Cough": "3 days"},
        patient_context=PatientContext(age=34, allergies=["latex"]),
    )
    prompt = build_prompt(request)
    assert "- Headache (severity: 7/10)" in prompt
    assert "- Cough (duration: 3 days)" in prompt
    assert "Additional information: None provided" in prompt
    assert "- Age: 34" in prompt
    assert "- Gender: Not specified" in prompt
    assert "- Medical history: None reported" in prompt
    assert "- Known allergies: latex" in prompt


def test_prompt_omits_context_block_without_context():
    prompt = build_prompt(_request(["Cough"], additional_info="worse at night"))
    assert "Patient context" not in prompt
    assert "Additional information: worse at night" in prompt


def test_prompt_keeps_annotations_for_padded_labels():
    request = validate_assessment_request({
        "patientId": "p-1",
        "symptoms": [" Headache "],
        "severity": {" Headache ": 5},
        "duration": {" Headache": "1 day"},
    })
    assert "- Headache (severity: 5/10) (duration: 1 day)" in build_prompt(request)
