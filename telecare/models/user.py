import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from telecare.db.session import Base
from telecare.models.types import uuid_col_type
from telecare.utils.encryption import EncryptedJSON


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
    )

    id: Mapped[str] = mapped_column(
        uuid_col_type(),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP")
    )

    patients: Mapped[List["Patient"]] = relationship(
        "Patient",
        back_populates="user",
        cascade="all, delete-orphan"
    )


class Patient(Base):
    """
    Patient record owned by a user account. The clinical lists feed the
    assessment prompt and are encrypted at rest.
    """
    __tablename__ = "patients"

    id: Mapped[str] = mapped_column(
        uuid_col_type(),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        uuid_col_type(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    allergies: Mapped[Optional[list]] = mapped_column(EncryptedJSON, nullable=True, default=None)
    medications: Mapped[Optional[list]] = mapped_column(EncryptedJSON, nullable=True, default=None)
    medical_history: Mapped[Optional[list]] = mapped_column(EncryptedJSON, nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        server_onupdate=text("CURRENT_TIMESTAMP")
    )

    user: Mapped[Optional["User"]] = relationship("User", back_populates="patients")

    # patient_id on assessments carries no FK (demo patients have no row), so
    # the join condition is spelled out for the ORM-level cascade
    assessments: Mapped[List["HealthAssessment"]] = relationship(
        "HealthAssessment",
        primaryjoin="Patient.id == foreign(HealthAssessment.patient_id)",
        cascade="all",
        order_by="[HealthAssessment.created_at.desc(), HealthAssessment.id.desc()]",
    )
