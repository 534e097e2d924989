"""
Symptom analysis engine: turns an AssessmentRequest into an AIHealthAnalysis.

Behavior:
- With a backend configured, send a structured prompt and ask for a strict
  JSON verdict. One attempt, bounded by a timeout; no retry.
- Without a backend, or when the backend call fails in any way, use the
  keyword triage tiers from config/triage_rules.yaml.
- Every verdict, model or heuristic, goes through sanitize_analysis() before
  it leaves this module.
"""
from __future__ import annotations

import asyncio
import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

import httpx

from telecare.schemas.assessment import URGENCY_LEVELS, AIHealthAnalysis, AssessmentRequest
from telecare.services.openai_client import AnalysisBackend, build_backend
from telecare.services.triage_rules import TriageRules, default_rules
from telecare.utils.config import settings
from telecare.utils.exceptions import BackendUnavailable

logger = logging.getLogger("telecare")

DEFAULT_DIAGNOSIS = ["Requires medical evaluation"]
DEFAULT_RECOMMENDATIONS = ["Consult healthcare provider"]
DEFAULT_URGENCY = "medium"
DEFAULT_RISK_SCORE = 50
WARNING_URGENCIES = ("high", "emergency")

SYSTEM_PROMPT = """You are a medical AI assistant helping with preliminary health assessment.

IMPORTANT DISCLAIMERS:
- This is NOT a medical diagnosis and should not replace professional medical advice
- Always recommend consulting with healthcare professionals for proper diagnosis
- In case of emergency symptoms, always recommend immediate medical attention

Your role is to:
1. Analyze reported symptoms and provide possible explanations
2. Assess urgency level and risk factors
3. Provide general health recommendations
4. Determine if professional medical consultation is needed

Respond with a single JSON object and nothing else. Use exactly these field
names and never omit a required field:
{
  "diagnosis": ["possible condition 1", "possible condition 2"],
  "recommendations": ["recommendation 1", "recommendation 2"],
  "urgencyLevel": "low" | "medium" | "high" | "emergency",
  "referralNeeded": true | false,
  "riskScore": integer from 0 to 100,
  "followUpDays": positive integer (optional),
  "emergencyWarning": "string, only when urgencyLevel is high or emergency"
}
diagnosis and recommendations must each contain at least one entry."""

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


# ---------------- Backend outcome ----------------

@dataclass(frozen=True)
class BackendVerdict:
    payload: Dict[str, Any]


@dataclass(frozen=True)
class BackendFailure:
    reason: str  # not_configured | timeout | transport | malformed | unexpected
    detail: str = ""


BackendOutcome = Union[BackendVerdict, BackendFailure]


# ---------------- Prompt ----------------

def _joined(values: Optional[List[str]], default: str) -> str:
    items = [v for v in (values or []) if v]
    return ", ".join(items) if items else default


def build_prompt(request: AssessmentRequest) -> str:
    lines = ["Health Assessment Request:", "", "Symptoms reported:"]
    for symptom in request.symptoms:
        entry = f"- {symptom}"
        sev = request.severity.get(symptom)
        if sev:
            entry += f" (severity: {sev}/10)"
        dur = request.duration.get(symptom)
        if dur:
            entry += f" (duration: {dur})"
        lines.append(entry)
    lines.append("")
    lines.append(f"Additional information: {request.additional_info or 'None provided'}")

    ctx = request.patient_context
    if ctx is not None:
        lines.extend([
            "",
            "Patient context:",
            f"- Age: {ctx.age if ctx.age is not None else 'Not specified'}",
            f"- Gender: {ctx.gender or 'Not specified'}",
            f"- Medical history: {_joined(ctx.medical_history, 'None reported')}",
            f"- Current medications: {_joined(ctx.current_medications, 'None reported')}",
            f"- Known allergies: {_joined(ctx.allergies, 'None reported')}",
        ])

    if request.responses:
        lines.extend(["", "Questionnaire answers:", json.dumps(request.responses, ensure_ascii=False, default=str)])

    lines.extend([
        "",
        "Please provide a comprehensive health assessment including possible explanations for these "
        "symptoms, urgency level, and recommendations. Remember this is for preliminary assessment only "
        "and not a substitute for professional medical care.",
    ])
    return "\n".join(lines)


def _parse_verdict(text: str) -> Optional[Dict[str, Any]]:
    cleaned = _FENCE_RE.sub("", (text or "").strip())
    try:
        payload = json.loads(cleaned)
    except (ValueError, TypeError):
        return None
    return payload if isinstance(payload, dict) else None


# ---------------- Sanitization ----------------

def _pick(raw: Mapping[str, Any], camel: str, snake: str) -> Any:
    if camel in raw:
        return raw[camel]
    return raw.get(snake)


def _text_list(value: Any, default: List[str]) -> List[str]:
    if not isinstance(value, list):
        return list(default)
    items = [v.strip() for v in value if isinstance(v, str) and v.strip()]
    return items or list(default)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _risk_score(value: Any) -> int:
    if not _is_number(value) or math.isnan(value) or value < 0 or value > 100:
        return DEFAULT_RISK_SCORE
    return int(round(value))


def _follow_up_days(value: Any) -> Optional[int]:
    if not _is_number(value) or math.isnan(value) or math.isinf(value):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    days = int(value)
    return days if days > 0 else None


def sanitize_analysis(raw: Any) -> AIHealthAnalysis:
    """Coerce an untrusted verdict into a valid AIHealthAnalysis.

    Unknown or wrong-typed values fall back toward caution rather than being
    rejected: urgency becomes medium, referral becomes true, risk becomes 50.
    Applying this to its own output returns an equal object.
    """
    if isinstance(raw, AIHealthAnalysis):
        raw = raw.model_dump(by_alias=True)
    if not isinstance(raw, Mapping):
        raw = {}

    urgency = _pick(raw, "urgencyLevel", "urgency_level")
    if urgency not in URGENCY_LEVELS:
        urgency = DEFAULT_URGENCY

    referral = _pick(raw, "referralNeeded", "referral_needed")
    if not isinstance(referral, bool):
        referral = True

    warning = _pick(raw, "emergencyWarning", "emergency_warning")
    if not isinstance(warning, str) or not warning.strip() or urgency not in WARNING_URGENCIES:
        warning = None
    else:
        warning = warning.strip()

    return AIHealthAnalysis(
        diagnosis=_text_list(raw.get("diagnosis"), DEFAULT_DIAGNOSIS),
        recommendations=_text_list(raw.get("recommendations"), DEFAULT_RECOMMENDATIONS),
        urgency_level=urgency,
        referral_needed=referral,
        risk_score=_risk_score(_pick(raw, "riskScore", "risk_score")),
        follow_up_days=_follow_up_days(_pick(raw, "followUpDays", "follow_up_days")),
        emergency_warning=warning,
    )


# ---------------- Engine ----------------

class SymptomAnalysisEngine:
    def __init__(
        self,
        backend: Optional[AnalysisBackend] = None,
        rules: Optional[TriageRules] = None,
        timeout_s: float = 20.0,
    ):
        self.backend = backend
        self.rules = rules or default_rules()
        self.timeout_s = timeout_s

    @property
    def demo_mode(self) -> bool:
        return self.backend is None

    def fallback_verdict(self, request: AssessmentRequest) -> Dict[str, Any]:
        return self.rules.verdict_for(request.symptoms)

    async def _consult_backend(self, request: AssessmentRequest) -> BackendOutcome:
        if self.backend is None:
            return BackendFailure("not_configured", "no analysis backend configured")

        prompt = build_prompt(request)
        try:
            text = await asyncio.wait_for(self.backend.complete(SYSTEM_PROMPT, prompt), timeout=self.timeout_s)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return BackendFailure("timeout", f"no verdict within {self.timeout_s}s")
        except httpx.HTTPError as exc:
            return BackendFailure("transport", f"{type(exc).__name__}: {exc}")
        except BackendUnavailable as exc:
            return BackendFailure("malformed", exc.message)
        except Exception as exc:
            logger.warning({"function": "consult_backend", "error": type(exc).__name__}, exc_info=True)
            return BackendFailure("unexpected", f"{type(exc).__name__}: {exc}")

        payload = _parse_verdict(text)
        if payload is None:
            return BackendFailure("malformed", "response was not a JSON object")
        return BackendVerdict(payload)

    async def analyze(self, request: AssessmentRequest) -> AIHealthAnalysis:
        outcome = await self._consult_backend(request)

        if isinstance(outcome, BackendVerdict):
            analysis = sanitize_analysis(outcome.payload)
            logger.info({
                "function": "analyze_symptoms",
                "source": "model",
                "urgency": analysis.urgency_level,
                "symptom_count": len(request.symptoms),
            })
            return analysis

        analysis = sanitize_analysis(self.fallback_verdict(request))
        event = {
            "function": "analyze_symptoms",
            "source": "fallback",
            "reason": outcome.reason,
            "detail": outcome.detail,
            "urgency": analysis.urgency_level,
            "symptom_count": len(request.symptoms),
        }
        if outcome.reason == "not_configured":
            logger.info(event)
        else:
            logger.warning(event)
        return analysis


def build_engine() -> SymptomAnalysisEngine:
    return SymptomAnalysisEngine(backend=build_backend(), timeout_s=settings.ai_timeout_seconds)
