from datetime import date, datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

ToothTokenIn = Union[int, str]


class ProcedureDetailIn(BaseModel):
    procedure: str
    tooth_number: Optional[ToothTokenIn] = None


class TreatmentSubmit(BaseModel):
    doctor_id: str
    mode: Literal["single", "multi_tooth", "multi_procedure"] = "single"
    procedure: Optional[str] = None
    tooth_number: Optional[ToothTokenIn] = None
    teeth: list[ToothTokenIn] = Field(default_factory=list)
    procedure_details: list[ProcedureDetailIn] = Field(default_factory=list)
    combine_procedures: bool = False
    treatment_plan: Optional[str] = None
    notes: Optional[str] = None
    treatment_date: Optional[date] = None
    appointment_id: Optional[str] = None


class TreatmentEdit(BaseModel):
    doctor_id: str
    procedure: Optional[str] = None
    tooth_number: Optional[ToothTokenIn] = None
    treatment_plan: Optional[str] = None
    notes: Optional[str] = None
    treatment_date: Optional[date] = None


class TreatmentOut(BaseModel):
    id: int
    patient_id: str
    doctor_id: str
    procedure: str
    tooth_number: int
    tooth_display: Union[int, str]
    diagnosis: str
    notes: str
    treatment_date: date
    created_at: Optional[datetime] = None
    suggested_appointment_id: Optional[str] = None


class RecordOutcomeOut(BaseModel):
    index: int
    tooth_number: int
    tooth_display: Union[int, str]
    procedure: str
    treatment_id: Optional[int] = None
    error: Optional[str] = None


class ChartWarningOut(BaseModel):
    tooth_number: int
    message: str


class SubmissionOut(BaseModel):
    treatment_ids: list[int]
    outcomes: list[RecordOutcomeOut]
    chart_warnings: list[ChartWarningOut]
    partial: bool
