from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    appointment_date: date
    appointment_time: str
    branch: str
    status: Optional[str] = None
    service_names: list[str]


class AppointmentTreatmentCreate(BaseModel):
    doctor_id: str


class ServiceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
