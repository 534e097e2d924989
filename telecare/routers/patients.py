# telecare/routers/patients.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from telecare.auth.deps import get_current_user
from telecare.db.session import get_db
from telecare.models.user import Patient, User
from telecare.schemas.profile import PatientIn, PatientOut
from telecare.utils.exceptions import AccessDenied, PatientNotFound

router = APIRouter(prefix="/api/patients", tags=["patients"])


def _owned_patient(db: Session, user: User, patient_id: str) -> Patient:
    patient = db.get(Patient, patient_id)
    if not patient:
        raise PatientNotFound()
    if str(patient.user_id) != str(user.id):
        raise AccessDenied()
    return patient


@router.post("", response_model=PatientOut, status_code=status.HTTP_201_CREATED)
def create_patient(
    payload: PatientIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    data = payload.model_dump()
    # store lists as lists (EncryptedJSON columns)
    for key in ("allergies", "medications", "medical_history"):
        data[key] = data.get(key) or []
    if data.get("email") is not None:
        data["email"] = str(data["email"])
    patient = Patient(user_id=str(user.id), **data)
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return PatientOut.model_validate(patient, from_attributes=True)


@router.get("", response_model=List[PatientOut])
def list_patients(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    rows = (
        db.query(Patient)
        .filter(Patient.user_id == str(user.id))
        .order_by(Patient.created_at.desc())
        .all()
    )
    return [PatientOut.model_validate(p, from_attributes=True) for p in rows]


@router.get("/{patient_id}", response_model=PatientOut)
def get_patient(
    patient_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return PatientOut.model_validate(_owned_patient(db, user, patient_id), from_attributes=True)


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_patient(
    patient_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Delete the patient; the ORM cascade removes their assessments too."""
    patient = _owned_patient(db, user, patient_id)
    db.delete(patient)
    db.commit()
