from __future__ import annotations

import enum
from datetime import date
from uuid import uuid4

from sqlalchemy import Date, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dental_records.models.base import Base, TimestampMixin


class AppointmentStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"


class Appointment(Base, TimestampMixin):
    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: uuid4().hex)
    patient_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    doctor_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    appointment_time: Mapped[str] = mapped_column(String(8), nullable=False)
    branch: Mapped[str] = mapped_column(String(120), nullable=False)
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus, name="appointment_status"),
        default=AppointmentStatus.pending,
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    services = relationship(
        "Service", secondary="appointment_services", order_by="Service.id", lazy="selectin"
    )

    @property
    def service_names(self) -> list[str]:
        return [service.name for service in self.services]


class AppointmentService(Base):
    __tablename__ = "appointment_services"

    appointment_id: Mapped[str] = mapped_column(
        ForeignKey("appointments.id", ondelete="CASCADE"), primary_key=True
    )
    service_id: Mapped[int] = mapped_column(
        ForeignKey("services.id", ondelete="CASCADE"), primary_key=True
    )
