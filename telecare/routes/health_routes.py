# telecare/routes/health_routes.py
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Query, Request, status
from sqlalchemy.orm import Session

from telecare.auth.scope import AccessScope, get_access_scope
from telecare.db.session import get_db
from telecare.schemas.assessment import EmergencyCheckIn, HealthAssessmentOut
from telecare.services.assessments import AssessmentService, SqlAssessmentRepository, patient_lookup_for
from telecare.services.questionnaires import (
    EMERGENCY_SYMPTOMS,
    EMERGENCY_WARNING,
    find_emergency_symptoms,
    get_questionnaires,
)
from telecare.services.symptom_engine import SymptomAnalysisEngine, build_engine
from telecare.utils.config import settings
from telecare.utils.rate_limit import limiter

router = APIRouter(prefix="/api/health", tags=["health-assessment"])


def get_analysis_engine() -> SymptomAnalysisEngine:
    return build_engine()


def get_assessment_service(
    db: Session = Depends(get_db),
    engine: SymptomAnalysisEngine = Depends(get_analysis_engine),
) -> AssessmentService:
    return AssessmentService(engine=engine, repository=SqlAssessmentRepository(db))


def _assessment_out(record) -> Dict[str, Any]:
    return HealthAssessmentOut.model_validate(record).model_dump(by_alias=True, mode="json", exclude_none=True)


@router.get("/questionnaires")
def list_questionnaires():
    return {"questionnaires": [q.model_dump(exclude_none=True) for q in get_questionnaires()]}


@router.get("/emergency-symptoms")
def emergency_symptoms():
    return {"emergencySymptoms": list(EMERGENCY_SYMPTOMS), "warning": EMERGENCY_WARNING}


@router.post("/emergency-check")
def emergency_check(payload: EmergencyCheckIn):
    matches = find_emergency_symptoms(payload.symptoms)
    return {
        "hasEmergencySymptoms": bool(matches),
        "matches": matches,
        "warning": EMERGENCY_WARNING if matches else None,
    }


@router.post("/assessment", status_code=status.HTTP_201_CREATED)
@limiter.limit(lambda: settings.assessment_rate_limit)
async def submit_assessment(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    scope: AccessScope = Depends(get_access_scope),
    service: AssessmentService = Depends(get_assessment_service),
):
    record = await service.submit(payload, patient_lookup_for(db), scope=scope)
    return {"assessment": _assessment_out(record)}


@router.get("/assessments/{patient_id}")
def assessment_history(
    patient_id: str,
    limit: int = Query(10),
    offset: int = Query(0),
    db: Session = Depends(get_db),
    scope: AccessScope = Depends(get_access_scope),
    service: AssessmentService = Depends(get_assessment_service),
):
    records = service.history(patient_id, limit=limit, offset=offset, scope=scope, patient_lookup=patient_lookup_for(db))
    return {"assessments": [_assessment_out(r) for r in records], "count": len(records)}


@router.get("/assessments/{patient_id}/summary")
def assessment_summary(
    patient_id: str,
    db: Session = Depends(get_db),
    scope: AccessScope = Depends(get_access_scope),
    service: AssessmentService = Depends(get_assessment_service),
):
    summary = service.summarize(patient_id, scope=scope, patient_lookup=patient_lookup_for(db))
    return {"summary": summary.model_dump(by_alias=True)}


@router.get("/assessment/{assessment_id}")
def get_assessment(
    assessment_id: str,
    scope: AccessScope = Depends(get_access_scope),
    service: AssessmentService = Depends(get_assessment_service),
):
    return {"assessment": _assessment_out(service.get_by_id(assessment_id, scope=scope))}
