"""Per-request authorization scope for patient and assessment reads."""
from dataclasses import dataclass, field
from typing import Any, FrozenSet

from fastapi import Depends
from sqlalchemy.orm import Session

from telecare.auth.deps import get_current_user
from telecare.db.session import get_db
from telecare.models.user import Patient


@dataclass(frozen=True)
class AccessScope:
    """The caller's user id plus the ids of the patients that user owns."""

    user_id: str
    patient_ids: FrozenSet[str] = field(default_factory=frozenset)

    def allows_patient(self, patient_id: str) -> bool:
        return patient_id in self.patient_ids

    def allows(self, assessment: Any) -> bool:
        # Unregistered (demo) patients have no owner, so fall back to the submitter.
        if self.allows_patient(getattr(assessment, "patient_id", None)):
            return True
        submitted_by = getattr(assessment, "submitted_by", None)
        return submitted_by is not None and str(submitted_by) == self.user_id


def scope_for_user(db: Session, user_id: str) -> AccessScope:
    rows = db.query(Patient.id).filter(Patient.user_id == user_id).all()
    return AccessScope(user_id=user_id, patient_ids=frozenset(str(r[0]) for r in rows))


def get_access_scope(
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
) -> AccessScope:
    return scope_for_user(db, str(user.id))
