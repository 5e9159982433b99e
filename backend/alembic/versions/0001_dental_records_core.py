"""treatments, dental charts and appointment services

Revision ID: 0001_dental_records_core
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_dental_records_core"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    appointment_status = postgresql.ENUM(
        "pending",
        "confirmed",
        "completed",
        "cancelled",
        name="appointment_status",
        create_type=False,
    )
    appointment_status.create(bind, checkfirst=True)

    if not inspector.has_table("services"):
        op.create_table(
            "services",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
            sa.UniqueConstraint("name", name="uq_services_name"),
        )

    if not inspector.has_table("appointments"):
        op.create_table(
            "appointments",
            sa.Column("id", sa.String(length=64), primary_key=True),
            sa.Column("patient_id", sa.String(length=64), nullable=False),
            sa.Column("doctor_id", sa.String(length=64), nullable=True),
            sa.Column("appointment_date", sa.Date(), nullable=False),
            sa.Column("appointment_time", sa.String(length=8), nullable=False),
            sa.Column("branch", sa.String(length=120), nullable=False),
            sa.Column("status", appointment_status, nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            *_timestamps(),
        )
        op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
        op.create_index("ix_appointments_doctor_id", "appointments", ["doctor_id"])

    if not inspector.has_table("appointment_services"):
        op.create_table(
            "appointment_services",
            sa.Column("appointment_id", sa.String(length=64), nullable=False),
            sa.Column("service_id", sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(
                ["appointment_id"], ["appointments.id"], ondelete="CASCADE"
            ),
            sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("appointment_id", "service_id"),
        )

    if not inspector.has_table("treatments"):
        op.create_table(
            "treatments",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("patient_id", sa.String(length=64), nullable=False),
            sa.Column("doctor_id", sa.String(length=64), nullable=False),
            sa.Column("procedure", sa.Text(), nullable=False),
            sa.Column("tooth_number", sa.Integer(), nullable=False),
            sa.Column("diagnosis", sa.Text(), nullable=False, server_default=""),
            sa.Column("notes", sa.Text(), nullable=False, server_default=""),
            sa.Column("treatment_date", sa.Date(), nullable=False),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                server_default=sa.func.now(),
                nullable=False,
            ),
        )
        op.create_index("ix_treatments_patient_id", "treatments", ["patient_id"])
        op.create_index("ix_treatments_doctor_id", "treatments", ["doctor_id"])
        op.create_index(
            "ix_treatments_patient_date", "treatments", ["patient_id", "treatment_date"]
        )

    if not inspector.has_table("dental_charts"):
        op.create_table(
            "dental_charts",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("patient_id", sa.String(length=64), nullable=False),
            sa.Column(
                "chart_data",
                postgresql.JSONB(astext_type=sa.Text()),
                nullable=False,
                server_default=sa.text("'{}'::jsonb"),
            ),
            sa.Column("updated_by", sa.String(length=64), nullable=True),
            *_timestamps(),
            sa.UniqueConstraint("patient_id", name="uq_dental_charts_patient_id"),
        )

    if not inspector.has_table("audit_logs"):
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                server_default=sa.func.now(),
                nullable=False,
            ),
            sa.Column("actor_id", sa.String(length=64), nullable=True),
            sa.Column("action", sa.String(length=64), nullable=False),
            sa.Column("entity_type", sa.String(length=50), nullable=False),
            sa.Column("entity_id", sa.String(length=64), nullable=False),
            sa.Column("before_json", sa.JSON(), nullable=True),
            sa.Column("after_json", sa.JSON(), nullable=True),
        )
        op.create_index(
            "ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"]
        )


def downgrade() -> None:
    op.drop_index("ix_audit_logs_entity", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_table("dental_charts")
    op.drop_index("ix_treatments_patient_date", table_name="treatments")
    op.drop_index("ix_treatments_doctor_id", table_name="treatments")
    op.drop_index("ix_treatments_patient_id", table_name="treatments")
    op.drop_table("treatments")
    op.drop_table("appointment_services")
    op.drop_index("ix_appointments_doctor_id", table_name="appointments")
    op.drop_index("ix_appointments_patient_id", table_name="appointments")
    op.drop_table("appointments")
    op.drop_table("services")
    postgresql.ENUM(name="appointment_status").drop(op.get_bind(), checkfirst=True)
