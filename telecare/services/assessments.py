"""
Assessment lifecycle: validate, enrich, analyze, derive flags, persist.

Also serves the history reads. Persistence goes through an
AssessmentRepository so the service can run against a fake in tests.
"""
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Callable, List, Optional, Protocol

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from telecare.auth.scope import AccessScope
from telecare.models.health_assessment import HealthAssessment
from telecare.models.user import Patient
from telecare.schemas.assessment import AIHealthAnalysis, AssessmentSummary, PatientContext
from telecare.services.symptom_engine import SymptomAnalysisEngine
from telecare.services.validation import validate_assessment_request, validate_pagination
from telecare.utils.exceptions import AccessDenied, AssessmentNotFound, PersistenceFailure

logger = logging.getLogger("telecare")

FOLLOW_UP_THRESHOLD_DAYS = 3

PatientLookup = Callable[[str], Optional[Any]]
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssessmentRepository(Protocol):
    def create(self, assessment: HealthAssessment) -> HealthAssessment:
        ...

    def get(self, assessment_id: str) -> Optional[HealthAssessment]:
        ...

    def list_for_patient(
        self,
        patient_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
        submitted_by: Optional[str] = None,
    ) -> List[HealthAssessment]:
        ...


class SqlAssessmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, assessment: HealthAssessment) -> HealthAssessment:
        try:
            self.db.add(assessment)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(
                {"function": "persist_assessment", "patient_id": assessment.patient_id},
                exc_info=True,
            )
            raise PersistenceFailure() from exc
        self.db.refresh(assessment)
        return assessment

    def get(self, assessment_id: str) -> Optional[HealthAssessment]:
        return self.db.get(HealthAssessment, assessment_id)

    def list_for_patient(
        self,
        patient_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
        submitted_by: Optional[str] = None,
    ) -> List[HealthAssessment]:
        q = self.db.query(HealthAssessment).filter(HealthAssessment.patient_id == patient_id)
        if submitted_by is not None:
            q = q.filter(HealthAssessment.submitted_by == submitted_by)
        q = q.order_by(HealthAssessment.created_at.desc(), HealthAssessment.id.desc())
        if offset:
            q = q.offset(offset)
        if limit is not None:
            q = q.limit(limit)
        return q.all()


def patient_lookup_for(db: Session) -> PatientLookup:
    def _lookup(patient_id: str) -> Optional[Patient]:
        return db.get(Patient, patient_id)

    return _lookup


def age_on(birth: Optional[date], today: date) -> Optional[int]:
    if birth is None:
        return None
    years = today.year - birth.year - ((today.month, today.day) < (birth.month, birth.day))
    return years if years >= 0 else None


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


class AssessmentService:
    def __init__(
        self,
        engine: SymptomAnalysisEngine,
        repository: AssessmentRepository,
        clock: Clock = utcnow,
    ):
        self.engine = engine
        self.repository = repository
        self.clock = clock

    def patient_context(self, patient: Any) -> PatientContext:
        return PatientContext(
            age=age_on(getattr(patient, "date_of_birth", None), self.clock().date()),
            gender=getattr(patient, "gender", None) or None,
            medical_history=_str_list(getattr(patient, "medical_history", None)),
            current_medications=_str_list(getattr(patient, "medications", None)),
            allergies=_str_list(getattr(patient, "allergies", None)),
        )

    @staticmethod
    def derive_flags(analysis: AIHealthAnalysis) -> dict:
        days = analysis.follow_up_days
        return {
            "follow_up_required": days is not None and days <= FOLLOW_UP_THRESHOLD_DAYS,
            "consultation_recommended": analysis.referral_needed,
        }

    async def submit(
        self,
        raw: Any,
        patient_lookup: PatientLookup,
        scope: Optional[AccessScope] = None,
    ) -> HealthAssessment:
        request = validate_assessment_request(raw)

        # lookup and write use a sync Session; keep them off the event loop
        patient = await run_in_threadpool(patient_lookup, request.patient_id)
        if patient is None:
            logger.info({
                "function": "submit_assessment",
                "patient_id": request.patient_id,
                "patient_found": False,
            })
            context = PatientContext()
        else:
            if scope is not None and not scope.allows_patient(str(patient.id)):
                raise AccessDenied()
            context = self.patient_context(patient)

        analysis = await self.engine.analyze(request.model_copy(update={"patient_context": context}))

        record = HealthAssessment(
            id=str(uuid.uuid4()),
            patient_id=request.patient_id,
            submitted_by=scope.user_id if scope is not None else None,
            assessment_type=request.assessment_type.value,
            symptoms=list(request.symptoms),
            responses=dict(request.responses),
            ai_analysis=analysis.model_dump(by_alias=True, exclude_none=True),
            status="completed",
            created_at=self.clock(),
            **self.derive_flags(analysis),
        )
        saved = await run_in_threadpool(self.repository.create, record)
        logger.info({
            "function": "submit_assessment",
            "assessment_id": saved.id,
            "patient_id": saved.patient_id,
            "urgency": analysis.urgency_level,
            "follow_up_required": saved.follow_up_required,
        })
        return saved

    def _submitter_filter(
        self,
        patient_id: str,
        scope: Optional[AccessScope],
        patient_lookup: Optional[PatientLookup],
    ) -> Optional[str]:
        """Return the submitter to filter on, or None for an unfiltered read."""
        if scope is None or scope.allows_patient(patient_id):
            return None
        if patient_lookup is not None and patient_lookup(patient_id) is not None:
            raise AccessDenied()
        return scope.user_id

    def history(
        self,
        patient_id: str,
        limit: int = 10,
        offset: int = 0,
        scope: Optional[AccessScope] = None,
        patient_lookup: Optional[PatientLookup] = None,
    ) -> List[HealthAssessment]:
        """Most-recent-first page of a patient's assessments."""
        limit, offset = validate_pagination(limit, offset)
        submitted_by = self._submitter_filter(patient_id, scope, patient_lookup)
        return self.repository.list_for_patient(patient_id, limit=limit, offset=offset, submitted_by=submitted_by)

    def get_by_id(self, assessment_id: str, scope: Optional[AccessScope] = None) -> HealthAssessment:
        record = self.repository.get(assessment_id)
        if record is None:
            raise AssessmentNotFound()
        if scope is not None and not scope.allows(record):
            logger.info({
                "function": "get_assessment",
                "assessment_id": assessment_id,
                "user_id": scope.user_id,
                "outcome": "access_denied",
            })
            raise AccessDenied()
        return record

    def summarize(
        self,
        patient_id: str,
        scope: Optional[AccessScope] = None,
        patient_lookup: Optional[PatientLookup] = None,
    ) -> AssessmentSummary:
        submitted_by = self._submitter_filter(patient_id, scope, patient_lookup)
        records = self.repository.list_for_patient(patient_id, submitted_by=submitted_by)
        if not records:
            return AssessmentSummary(count=0)

        scores = [
            r.ai_analysis.get("riskScore")
            for r in records
            if isinstance(r.ai_analysis, dict) and isinstance(r.ai_analysis.get("riskScore"), int)
        ]
        latest = records[0].ai_analysis if isinstance(records[0].ai_analysis, dict) else {}
        return AssessmentSummary(
            count=len(records),
            average_risk_score=round(sum(scores) / len(scores)) if scores else None,
            consultations_recommended=sum(1 for r in records if r.consultation_recommended),
            follow_ups_required=sum(1 for r in records if r.follow_up_required),
            latest_urgency=latest.get("urgencyLevel"),
        )
