from __future__ import annotations

from collections.abc import Collection, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Union

from dental_records.core.clock import clinic_today
from dental_records.services.appointment_ref import compose_notes, encode_appointment_ref
from dental_records.services.errors import ValidationError
from dental_records.services.tooth_numbering import to_canonical
from dental_records.services.types import AppointmentInfo, TreatmentDraft

DEFAULT_NOTES_MAX_LENGTH = 500
COMBINED_PROCEDURE_SEPARATOR = ", "


@dataclass(frozen=True)
class SingleToothSingleProcedure:
    tooth: object
    procedure: str


@dataclass(frozen=True)
class SingleProcedureMultiTooth:
    teeth: Sequence[object]
    procedure: str


@dataclass(frozen=True)
class ProcedureDetail:
    procedure: str
    tooth: object


@dataclass(frozen=True)
class MultiProcedureMultiTooth:
    details: Sequence[ProcedureDetail]
    # One record with a comma-joined procedure string; only the first
    # detail's tooth is kept on it.
    combine: bool = False


SubmissionMode = Union[SingleToothSingleProcedure, SingleProcedureMultiTooth, MultiProcedureMultiTooth]


@dataclass(frozen=True)
class EditingContext:
    treatment_id: int
    previous_notes: str | None = None


@dataclass(frozen=True)
class TreatmentForm:
    patient_id: str
    doctor_id: str
    treatment_plan: str | None
    treatment_date: date | None
    notes: str | None = None
    appointment: AppointmentInfo | None = None
    editing: EditingContext | None = None


@dataclass(frozen=True)
class ChartUpdate:
    tooth_number: int
    procedure: str


@dataclass(frozen=True)
class BuiltTreatment:
    record: TreatmentDraft
    chart_update: ChartUpdate


def _require_procedure(procedure: str | None, catalog: Collection[str] | None) -> str:
    cleaned = (procedure or "").strip()
    if not cleaned:
        raise ValidationError("procedure", "Procedure is required")
    if catalog is not None and cleaned.lower() not in {name.lower() for name in catalog}:
        raise ValidationError("procedure", f"Unknown procedure: {cleaned}")
    return cleaned


def _require_tooth(tooth: object) -> int:
    if tooth is None or tooth == "":
        raise ValidationError("tooth_number", "Tooth number is required")
    return to_canonical(tooth)


def validate_form(
    form: TreatmentForm,
    *,
    today: date | None = None,
    notes_max_length: int = DEFAULT_NOTES_MAX_LENGTH,
) -> None:
    if not (form.treatment_plan or "").strip():
        raise ValidationError("treatment_plan", "Treatment plan is required")
    if form.treatment_date is None:
        raise ValidationError("treatment_date", "Treatment date is required")
    today = today or clinic_today()
    if form.treatment_date > today:
        raise ValidationError("treatment_date", "Treatment date cannot be in the future")
    if form.notes and len(form.notes) > notes_max_length:
        raise ValidationError("notes", f"Notes must be less than {notes_max_length} characters")


def _selection_pairs(
    mode: SubmissionMode, catalog: Collection[str] | None
) -> list[tuple[str, int]]:
    """Validate the mode's own fields and return (procedure, canonical tooth) pairs."""
    if isinstance(mode, SingleToothSingleProcedure):
        procedure = _require_procedure(mode.procedure, catalog)
        return [(procedure, _require_tooth(mode.tooth))]

    if isinstance(mode, SingleProcedureMultiTooth):
        procedure = _require_procedure(mode.procedure, catalog)
        if not mode.teeth:
            raise ValidationError("teeth", "Please select at least one tooth")
        teeth: list[int] = []
        for token in mode.teeth:
            canonical = _require_tooth(token)
            if canonical not in teeth:
                teeth.append(canonical)
        return [(procedure, tooth) for tooth in teeth]

    if isinstance(mode, MultiProcedureMultiTooth):
        if not mode.details:
            raise ValidationError("procedure_details", "At least one procedure is required")
        pairs = [
            (_require_procedure(detail.procedure, catalog), _require_tooth(detail.tooth))
            for detail in mode.details
        ]
        if mode.combine:
            procedures = COMBINED_PROCEDURE_SEPARATOR.join(procedure for procedure, _ in pairs)
            return [(procedures, pairs[0][1])]
        return pairs

    raise TypeError(f"Unsupported submission mode: {type(mode).__name__}")


def build_treatments(
    mode: SubmissionMode,
    form: TreatmentForm,
    *,
    today: date | None = None,
    catalog: Collection[str] | None = None,
    notes_max_length: int = DEFAULT_NOTES_MAX_LENGTH,
) -> list[BuiltTreatment]:
    """Turn one form submission into ready-to-persist treatment records.

    Every check runs before anything is returned, so a single invalid field
    rejects the whole submission.
    """
    validate_form(form, today=today, notes_max_length=notes_max_length)
    pairs = _selection_pairs(mode, catalog)
    if form.editing is not None and len(pairs) != 1:
        raise ValidationError("teeth", "An existing treatment can only be edited as a single record")

    appointment_ref = None
    if form.appointment is not None and form.editing is None:
        appointment_ref = encode_appointment_ref(
            form.appointment.id, form.appointment.branch, form.appointment.appointment_time
        )
    notes = compose_notes(
        form.notes,
        previous_notes=form.editing.previous_notes if form.editing else None,
        editing=form.editing is not None,
        appointment_ref=appointment_ref,
    )

    built: list[BuiltTreatment] = []
    for procedure, tooth in pairs:
        record = TreatmentDraft(
            patient_id=form.patient_id,
            doctor_id=form.doctor_id,
            procedure=procedure,
            tooth_number=tooth,
            diagnosis=form.treatment_plan or "",
            notes=notes,
            treatment_date=form.treatment_date,
        )
        built.append(BuiltTreatment(record=record, chart_update=ChartUpdate(tooth, procedure)))
    return built


def build_combined_from_appointment(
    appointment: AppointmentInfo,
    *,
    patient_id: str,
    doctor_id: str,
    default_tooth: object = 1,
) -> BuiltTreatment:
    """One combined record for every service of a completed appointment.

    The diagnosis is left blank for the doctor to fill in later, and the
    record carries only the appointment marker as notes.
    """
    if not appointment.service_names:
        raise ValidationError("procedure", "Appointment has no services to record")
    procedure = COMBINED_PROCEDURE_SEPARATOR.join(appointment.service_names)
    tooth = to_canonical(default_tooth)
    record = TreatmentDraft(
        patient_id=patient_id,
        doctor_id=doctor_id,
        procedure=procedure,
        tooth_number=tooth,
        diagnosis="",
        notes=encode_appointment_ref(
            appointment.id, appointment.branch, appointment.appointment_time
        ),
        treatment_date=appointment.appointment_date,
    )
    return BuiltTreatment(record=record, chart_update=ChartUpdate(tooth, procedure))


def procedure_details_for_appointment(
    appointment: AppointmentInfo, default_tooth: object = 1
) -> list[ProcedureDetail]:
    """Pre-fill one detail per appointment service, all on the default tooth."""
    return [ProcedureDetail(procedure=name, tooth=default_tooth) for name in appointment.service_names]
