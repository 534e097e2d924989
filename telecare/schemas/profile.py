# telecare/schemas/profile.py
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# ---------- Patients ----------
class PatientIn(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=120)
    last_name: str = Field(..., min_length=1, max_length=120)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=40)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = Field(default=None, description="male|female|other")
    allergies: Optional[List[str]] = None
    medications: Optional[List[str]] = None
    medical_history: Optional[List[str]] = None


class PatientOut(PatientIn):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
