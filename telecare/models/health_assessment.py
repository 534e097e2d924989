"""HealthAssessment model: one submitted symptom check and its verdict."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from telecare.db.session import Base
from telecare.models.types import json_col_type, uuid_col_type

ASSESSMENT_STATUSES = ("in_progress", "completed", "reviewed")


class HealthAssessment(Base):
    __tablename__ = "health_assessments"

    id: Mapped[str] = mapped_column(uuid_col_type(), primary_key=True, default=lambda: str(uuid.uuid4()))
    patient_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    submitted_by: Mapped[Optional[str]] = mapped_column(uuid_col_type(), nullable=True, index=True)
    assessment_type: Mapped[str] = mapped_column(String(32), nullable=False, default="symptom_check")
    symptoms: Mapped[list] = mapped_column(json_col_type(), nullable=False)
    responses: Mapped[dict] = mapped_column(json_col_type(), nullable=False, default=dict)
    ai_analysis: Mapped[dict] = mapped_column(json_col_type(), nullable=False)
    follow_up_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    consultation_recommended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="completed")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    patient: Mapped[Optional["Patient"]] = relationship(
        "Patient",
        primaryjoin="foreign(HealthAssessment.patient_id) == Patient.id",
        viewonly=True,
    )
