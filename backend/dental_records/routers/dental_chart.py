from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from dental_records.db.session import get_db
from dental_records.schemas.dental_chart import (
    AssessmentUpdate,
    DentalChartOut,
    ToothFieldUpdate,
    ToothHistoryOut,
)
from dental_records.services.chart_reconciliation import (
    ASSESSMENT_SECTIONS,
    SYMBOL_LEGEND,
    chart_entry_for,
    empty_chart,
    set_assessment,
    update_tooth_field,
)
from dental_records.services.repository import SqlClinicRepository
from dental_records.services.tooth_numbering import to_canonical, to_display
from dental_records.services.treatment_history import treatments_for_tooth
from dental_records.routers.treatments import treatment_out

patient_router = APIRouter(prefix="/patients/{patient_id}", tags=["dental-chart"])
router = APIRouter(prefix="/dental-chart", tags=["dental-chart"])


@router.get("/symbols")
def list_symbols():
    return {"symbols": SYMBOL_LEGEND, "assessments": ASSESSMENT_SECTIONS}


@patient_router.get("/dental-chart", response_model=DentalChartOut)
def get_dental_chart(patient_id: str, db: Session = Depends(get_db)):
    chart = SqlClinicRepository(db).load_patient_chart(patient_id)
    if chart is None:
        return DentalChartOut(patient_id=patient_id, exists=False, chart_data=empty_chart())
    return DentalChartOut(patient_id=patient_id, exists=True, chart_data=chart)


@patient_router.patch("/dental-chart/teeth/{tooth}", response_model=DentalChartOut)
def update_chart_tooth(
    patient_id: str,
    tooth: str,
    payload: ToothFieldUpdate,
    db: Session = Depends(get_db),
):
    repo = SqlClinicRepository(db)
    chart = update_tooth_field(repo.load_patient_chart(patient_id), tooth, payload.field, payload.value)
    repo.upsert_patient_chart(patient_id, chart, updated_by=payload.updated_by)
    db.commit()
    return DentalChartOut(patient_id=patient_id, exists=True, chart_data=chart)


@patient_router.patch("/dental-chart/assessments/{section}", response_model=DentalChartOut)
def update_chart_assessment(
    patient_id: str,
    section: str,
    payload: AssessmentUpdate,
    db: Session = Depends(get_db),
):
    repo = SqlClinicRepository(db)
    try:
        chart = set_assessment(
            repo.load_patient_chart(patient_id), section, payload.field, payload.value
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    repo.upsert_patient_chart(patient_id, chart, updated_by=payload.updated_by)
    db.commit()
    return DentalChartOut(patient_id=patient_id, exists=True, chart_data=chart)


@patient_router.get("/teeth/{tooth}/treatments", response_model=ToothHistoryOut)
def get_tooth_history(patient_id: str, tooth: str, db: Session = Depends(get_db)):
    repo = SqlClinicRepository(db)
    canonical = to_canonical(tooth)
    treatments = treatments_for_tooth(repo.list_treatments_for_patient(patient_id), tooth)
    return ToothHistoryOut(
        tooth_number=canonical,
        tooth_display=to_display(canonical),
        chart_entry=chart_entry_for(repo.load_patient_chart(patient_id), tooth),
        treatments=[treatment_out(treatment) for treatment in treatments],
    )
