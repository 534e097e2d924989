# telecare/schemas/assessment.py
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel


UrgencyLevel = Literal["low", "medium", "high", "emergency"]
URGENCY_LEVELS = ("low", "medium", "high", "emergency")

SymptomLabel = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
SeverityScore = Annotated[int, Field(strict=True, ge=1, le=10)]


class CamelModel(BaseModel):
    """Assessment payloads travel in camelCase; snake_case is accepted on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AssessmentType(str, Enum):
    SYMPTOM_CHECK = "symptom_check"
    WELLNESS_CHECK = "wellness_check"
    RISK_ASSESSMENT = "risk_assessment"


class PatientContext(CamelModel):
    """Context derived server-side from the patient record."""

    age: Optional[int] = Field(default=None, ge=0, le=150)
    gender: Optional[str] = None
    medical_history: List[str] = Field(default_factory=list)
    current_medications: List[str] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)


class AssessmentRequest(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    patient_id: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]
    assessment_type: AssessmentType = AssessmentType.SYMPTOM_CHECK
    symptoms: List[SymptomLabel] = Field(..., min_length=1)
    # keys are symptom labels, normalised like the entries of `symptoms`
    severity: Dict[SymptomLabel, SeverityScore] = Field(default_factory=dict)
    duration: Dict[SymptomLabel, str] = Field(default_factory=dict)
    responses: Dict[str, Any] = Field(default_factory=dict)
    additional_info: str = Field(default="", max_length=5000)
    patient_context: Optional[PatientContext] = None

    @field_validator("severity", "duration", "responses", mode="before")
    @classmethod
    def _null_mapping(cls, v):
        return {} if v is None else v

    @field_validator("additional_info", mode="before")
    @classmethod
    def _null_text(cls, v):
        return "" if v is None else v

    @field_validator("assessment_type", mode="before")
    @classmethod
    def _null_type(cls, v):
        return AssessmentType.SYMPTOM_CHECK if v is None else v


class AIHealthAnalysis(CamelModel):
    """The verdict. Instances only come out of sanitize_analysis()."""

    diagnosis: List[str] = Field(..., min_length=1)
    recommendations: List[str] = Field(..., min_length=1)
    urgency_level: UrgencyLevel
    referral_needed: bool
    risk_score: int = Field(..., ge=0, le=100)
    follow_up_days: Optional[int] = Field(default=None, gt=0)
    emergency_warning: Optional[str] = None


class HealthAssessmentOut(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    patient_id: str
    assessment_type: str
    symptoms: List[str]
    responses: Dict[str, Any]
    ai_analysis: AIHealthAnalysis
    follow_up_required: bool
    consultation_recommended: bool
    status: str
    created_at: datetime


class AssessmentSummary(CamelModel):
    count: int
    average_risk_score: Optional[int] = None
    consultations_recommended: int = 0
    follow_ups_required: int = 0
    latest_urgency: Optional[UrgencyLevel] = None


class EmergencyCheckIn(BaseModel):
    symptoms: List[str] = Field(default_factory=list, max_length=100)
