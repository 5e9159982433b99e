from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from dental_records.db.session import get_db
from dental_records.models.appointment import AppointmentStatus
from dental_records.schemas.appointment import (
    AppointmentOut,
    AppointmentTreatmentCreate,
    ServiceOut,
)
from dental_records.schemas.treatment import ProcedureDetailIn, SubmissionOut
from dental_records.services.chart_reconciliation import available_appointments
from dental_records.services.repository import SqlClinicRepository
from dental_records.services.treatment_builder import procedure_details_for_appointment
from dental_records.services.treatment_history import suggest_services
from dental_records.services.treatment_submission import create_from_appointment
from dental_records.routers.treatments import submission_out

patient_router = APIRouter(prefix="/patients/{patient_id}", tags=["appointments"])
router = APIRouter(prefix="/services", tags=["services"])


@patient_router.get("/appointments/available", response_model=list[AppointmentOut])
def list_available_appointments(
    patient_id: str,
    db: Session = Depends(get_db),
    doctor_id: str | None = Query(default=None),
):
    repo = SqlClinicRepository(db)
    notes = [treatment.notes for treatment in repo.list_treatments_for_patient(patient_id)]
    return available_appointments(repo.list_completed_appointments(patient_id, doctor_id), notes)


@patient_router.get(
    "/appointments/{appointment_id}/procedure-details", response_model=list[ProcedureDetailIn]
)
def get_appointment_procedure_details(
    patient_id: str,
    appointment_id: str,
    db: Session = Depends(get_db),
):
    appointment = SqlClinicRepository(db).get_appointment(appointment_id)
    if appointment is None or appointment.patient_id != patient_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    return [
        ProcedureDetailIn(procedure=detail.procedure, tooth_number=detail.tooth)
        for detail in procedure_details_for_appointment(appointment)
    ]


@patient_router.post(
    "/appointments/{appointment_id}/treatment",
    response_model=SubmissionOut,
    status_code=status.HTTP_201_CREATED,
)
def create_treatment_from_appointment(
    patient_id: str,
    appointment_id: str,
    payload: AppointmentTreatmentCreate,
    db: Session = Depends(get_db),
):
    repo = SqlClinicRepository(db)
    appointment = repo.get_appointment(appointment_id)
    if appointment is None or appointment.patient_id != patient_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    if appointment.status != AppointmentStatus.completed.value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only completed appointments can be recorded",
        )
    result = create_from_appointment(
        repo, appointment, patient_id=patient_id, doctor_id=payload.doctor_id
    )
    db.commit()
    return submission_out(result)


@router.get("", response_model=list[ServiceOut])
def list_services(
    db: Session = Depends(get_db),
    q: str | None = Query(default=None),
    limit: int = Query(default=10, ge=1, le=100),
):
    return suggest_services(SqlClinicRepository(db).list_service_catalog(), q, limit=limit)
