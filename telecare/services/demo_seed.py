"""Best-effort demo data: one login and one patient to assess against."""
import copy
import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from telecare.auth.jwt import hash_password
from telecare.models.user import Patient, User
from telecare.utils.config import Settings, settings as default_settings

logger = logging.getLogger("telecare")

DEMO_PATIENT = {
    "first_name": "Demo",
    "last_name": "Patient",
    "date_of_birth": date(1985, 6, 15),
    "gender": "female",
    "allergies": ["penicillin"],
    "medications": [],
    "medical_history": ["seasonal allergies"],
}


def seed_demo(db: Session, config: Optional[Settings] = None) -> Optional[User]:
    """Create the demo user and demo patient if missing. Returns the demo user, or None when disabled."""
    cfg = config or default_settings
    email = cfg.demo_user_email
    password = cfg.demo_user_password
    if not email or not password:
        return None

    user = db.query(User).filter(User.email == email).first()
    if not user:
        user = User(email=email, hashed_password=hash_password(password), name="Demo User")
        db.add(user)
        db.flush()
        logger.info({"function": "seed_demo", "created": "user", "email": email})

    patient_id = cfg.demo_patient_id
    if db.get(Patient, patient_id) is None:
        db.add(Patient(id=patient_id, user_id=str(user.id), **copy.deepcopy(DEMO_PATIENT)))
        logger.info({"function": "seed_demo", "created": "patient", "patient_id": patient_id})

    db.commit()
    return user
