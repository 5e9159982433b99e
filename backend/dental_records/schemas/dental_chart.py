from typing import Any, Optional, Union

from pydantic import BaseModel

from dental_records.schemas.treatment import TreatmentOut


class DentalChartOut(BaseModel):
    patient_id: str
    exists: bool
    chart_data: dict[str, Any]


class ToothFieldUpdate(BaseModel):
    field: str
    value: Any
    updated_by: Optional[str] = None


class AssessmentUpdate(BaseModel):
    field: str
    value: Union[bool, str]
    updated_by: Optional[str] = None


class ToothHistoryOut(BaseModel):
    tooth_number: int
    tooth_display: Union[int, str]
    chart_entry: Optional[dict[str, Any]] = None
    treatments: list[TreatmentOut]
