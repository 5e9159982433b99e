from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class AppointmentInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_id: str | None = None
    appointment_date: date
    appointment_time: str
    branch: str
    status: str | None = None
    doctor_id: str | None = None
    service_names: list[str] = Field(default_factory=list)


class TreatmentDraft(BaseModel):
    patient_id: str
    doctor_id: str
    procedure: str
    tooth_number: int
    diagnosis: str = ""
    notes: str = ""
    treatment_date: date


class StoredTreatment(TreatmentDraft):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime | None = None


class ServiceEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
