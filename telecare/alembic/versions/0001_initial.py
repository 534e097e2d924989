"""Initial database schema: users, patients, health assessments."""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _json_type():
    return postgresql.JSONB() if op.get_bind().dialect.name == "postgresql" else sa.JSON()


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, index=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=120)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    # allergies / medications / medical_history hold Fernet tokens (EncryptedJSON)
    op.create_table(
        "patients",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), index=True),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=255)),
        sa.Column("phone", sa.String(length=40)),
        sa.Column("date_of_birth", sa.Date),
        sa.Column("gender", sa.String(length=32)),
        sa.Column("allergies", sa.Text),
        sa.Column("medications", sa.Text),
        sa.Column("medical_history", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), server_onupdate=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )

    # patient_id has no FK: demo patients may be assessed without a patients row
    op.create_table(
        "health_assessments",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("patient_id", sa.String(length=64), nullable=False, index=True),
        sa.Column("submitted_by", sa.String(length=36), index=True),
        sa.Column("assessment_type", sa.String(length=32), nullable=False),
        sa.Column("symptoms", _json_type(), nullable=False),
        sa.Column("responses", _json_type(), nullable=False),
        sa.Column("ai_analysis", _json_type(), nullable=False),
        sa.Column("follow_up_required", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("consultation_recommended", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="completed"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, index=True),
    )


def downgrade():
    op.drop_table("health_assessments")
    op.drop_table("patients")
    op.drop_table("users")
