from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from dental_records.core.settings import settings
from dental_records.db.session import get_db
from dental_records.schemas.treatment import (
    ChartWarningOut,
    RecordOutcomeOut,
    SubmissionOut,
    TreatmentEdit,
    TreatmentOut,
    TreatmentSubmit,
)
from dental_records.services.chart_reconciliation import suggest_appointment
from dental_records.services.repository import SqlClinicRepository
from dental_records.services.tooth_numbering import to_display
from dental_records.services.treatment_builder import (
    MultiProcedureMultiTooth,
    ProcedureDetail,
    SingleProcedureMultiTooth,
    SingleToothSingleProcedure,
    SubmissionMode,
    TreatmentForm,
)
from dental_records.services.treatment_history import (
    TreatmentFilter,
    display_notes,
    filter_treatments,
)
from dental_records.services.treatment_submission import (
    SubmissionResult,
    delete_treatment,
    edit_treatment,
    submit_treatment,
)
from dental_records.services.types import AppointmentInfo, StoredTreatment

patient_router = APIRouter(prefix="/patients/{patient_id}", tags=["treatments"])
router = APIRouter(prefix="/treatments", tags=["treatments"])


def treatment_out(
    treatment: StoredTreatment, suggested: AppointmentInfo | None = None
) -> TreatmentOut:
    return TreatmentOut(
        id=treatment.id,
        patient_id=treatment.patient_id,
        doctor_id=treatment.doctor_id,
        procedure=treatment.procedure,
        tooth_number=treatment.tooth_number,
        tooth_display=to_display(treatment.tooth_number),
        diagnosis=treatment.diagnosis,
        notes=display_notes(treatment.notes),
        treatment_date=treatment.treatment_date,
        created_at=treatment.created_at,
        suggested_appointment_id=suggested.id if suggested else None,
    )


def submission_out(result: SubmissionResult) -> SubmissionOut:
    return SubmissionOut(
        treatment_ids=result.treatment_ids,
        outcomes=[
            RecordOutcomeOut(
                index=outcome.index,
                tooth_number=outcome.tooth_number,
                tooth_display=to_display(outcome.tooth_number),
                procedure=outcome.procedure,
                treatment_id=outcome.treatment_id,
                error=str(outcome.error) if outcome.error else None,
            )
            for outcome in result.outcomes
        ],
        chart_warnings=[
            ChartWarningOut(tooth_number=warning.tooth_number, message=warning.message)
            for warning in result.chart_warnings
        ],
        partial=result.is_partial,
    )


def submission_mode(payload: TreatmentSubmit) -> SubmissionMode:
    if payload.mode == "multi_tooth":
        return SingleProcedureMultiTooth(teeth=payload.teeth, procedure=payload.procedure or "")
    if payload.mode == "multi_procedure":
        return MultiProcedureMultiTooth(
            details=[
                ProcedureDetail(procedure=detail.procedure, tooth=detail.tooth_number)
                for detail in payload.procedure_details
            ],
            combine=payload.combine_procedures,
        )
    return SingleToothSingleProcedure(tooth=payload.tooth_number, procedure=payload.procedure or "")


def submission_options(repo: SqlClinicRepository) -> dict:
    catalog = None
    if settings.enforce_service_catalog:
        catalog = [entry.name for entry in repo.list_service_catalog()]
    return {
        "catalog": catalog,
        "notes_max_length": settings.treatment_notes_max_length,
        "chart_auto_update": settings.chart_auto_update,
    }


@patient_router.get("/treatments", response_model=list[TreatmentOut])
def list_patient_treatments(
    patient_id: str,
    db: Session = Depends(get_db),
    doctor_id: str | None = Query(default=None),
    q: str | None = Query(default=None),
    procedure: str | None = Query(default=None),
    tooth: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
):
    repo = SqlClinicRepository(db)
    treatments = filter_treatments(
        repo.list_treatments_for_patient(patient_id, doctor_id),
        TreatmentFilter(
            query=q,
            procedure=procedure,
            tooth=tooth,
            start_date=start_date,
            end_date=end_date,
        ),
    )
    appointments = repo.list_completed_appointments(patient_id, doctor_id)
    return [
        treatment_out(treatment, suggest_appointment(treatment, appointments))
        for treatment in treatments
    ]


@patient_router.post(
    "/treatments", response_model=SubmissionOut, status_code=status.HTTP_201_CREATED
)
def create_patient_treatments(
    patient_id: str,
    payload: TreatmentSubmit,
    db: Session = Depends(get_db),
):
    repo = SqlClinicRepository(db)
    appointment = None
    if payload.appointment_id is not None:
        appointment = repo.get_appointment(payload.appointment_id)
        if appointment is None or appointment.patient_id != patient_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Appointment does not match patient",
            )
    form = TreatmentForm(
        patient_id=patient_id,
        doctor_id=payload.doctor_id,
        treatment_plan=payload.treatment_plan,
        treatment_date=payload.treatment_date,
        notes=payload.notes,
        appointment=appointment,
    )
    result = submit_treatment(repo, submission_mode(payload), form, **submission_options(repo))
    db.commit()
    body = submission_out(result)
    if not result.succeeded:
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=body.model_dump())
    return body


@router.put("/{treatment_id}", response_model=SubmissionOut)
def update_treatment(
    treatment_id: int,
    payload: TreatmentEdit,
    db: Session = Depends(get_db),
):
    repo = SqlClinicRepository(db)
    existing = repo.get_treatment(treatment_id)
    if existing is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Treatment not found")
    form = TreatmentForm(
        patient_id=existing.patient_id,
        doctor_id=payload.doctor_id,
        treatment_plan=payload.treatment_plan,
        treatment_date=payload.treatment_date,
        notes=payload.notes,
    )
    mode = SingleToothSingleProcedure(tooth=payload.tooth_number, procedure=payload.procedure or "")
    result = edit_treatment(repo, treatment_id, mode, form, **submission_options(repo))
    db.commit()
    return submission_out(result)


@router.delete("/{treatment_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_treatment(
    treatment_id: int,
    db: Session = Depends(get_db),
    actor_id: str | None = Query(default=None),
):
    delete_treatment(SqlClinicRepository(db), treatment_id, actor_id=actor_id)
    db.commit()
