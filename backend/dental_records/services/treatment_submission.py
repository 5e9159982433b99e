from __future__ import annotations

import dataclasses
import logging
from collections.abc import Collection
from dataclasses import dataclass, field
from datetime import date

from dental_records.services.appointment_ref import references_appointment
from dental_records.services.chart_reconciliation import derive_symbol, merge_tooth
from dental_records.services.errors import (
    ChartUpdateWarning,
    PersistenceError,
    TreatmentNotFoundError,
    ValidationError,
)
from dental_records.services.repository import ClinicRepository
from dental_records.services.treatment_builder import (
    DEFAULT_NOTES_MAX_LENGTH,
    BuiltTreatment,
    ChartUpdate,
    EditingContext,
    SubmissionMode,
    TreatmentForm,
    build_combined_from_appointment,
    build_treatments,
)
from dental_records.services.types import AppointmentInfo

logger = logging.getLogger("dental_records.treatments")


@dataclass
class RecordOutcome:
    index: int
    tooth_number: int
    procedure: str
    treatment_id: int | None = None
    error: PersistenceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SubmissionResult:
    outcomes: list[RecordOutcome] = field(default_factory=list)
    chart_warnings: list[ChartUpdateWarning] = field(default_factory=list)

    @property
    def succeeded(self) -> list[RecordOutcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> list[RecordOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def is_partial(self) -> bool:
        return bool(self.succeeded) and bool(self.failed)

    @property
    def treatment_ids(self) -> list[int]:
        return [outcome.treatment_id for outcome in self.succeeded if outcome.treatment_id is not None]


def apply_chart_update(
    repo: ClinicRepository,
    patient_id: str,
    update: ChartUpdate,
    treatment_date: date,
    *,
    actor_id: str | None = None,
) -> ChartUpdateWarning | None:
    """Fold one saved treatment into the patient's chart.

    Procedures without a chart symbol leave the chart alone and make no
    write.  A failure is returned as a warning; the treatment stays saved.
    """
    symbol = derive_symbol(update.procedure)
    if symbol is None:
        return None
    try:
        chart = repo.load_patient_chart(patient_id)
        merged = merge_tooth(chart, update.tooth_number, symbol, update.procedure, treatment_date)
        repo.upsert_patient_chart(patient_id, merged, updated_by=actor_id)
    except Exception as exc:
        # Malformed stored charts fail in merge_tooth; the treatment still stands.
        logger.warning(
            "Treatment saved but dental chart update failed for patient %s tooth %s: %s",
            patient_id,
            update.tooth_number,
            exc,
            exc_info=not isinstance(exc, PersistenceError),
        )
        return ChartUpdateWarning(
            tooth_number=update.tooth_number,
            message="Treatment saved but dental chart update failed",
        )
    return None


def _persist(repo: ClinicRepository, built: list[BuiltTreatment], form: TreatmentForm) -> list[RecordOutcome]:
    if form.editing is not None:
        item = built[0]
        repo.update_treatment(form.editing.treatment_id, item.record)
        return [
            RecordOutcome(
                index=0,
                tooth_number=item.record.tooth_number,
                procedure=item.record.procedure,
                treatment_id=form.editing.treatment_id,
            )
        ]

    if len(built) == 1:
        item = built[0]
        treatment_id = repo.insert_treatment(item.record)
        return [
            RecordOutcome(
                index=0,
                tooth_number=item.record.tooth_number,
                procedure=item.record.procedure,
                treatment_id=treatment_id,
            )
        ]

    results = repo.insert_treatments([item.record for item in built])
    outcomes: list[RecordOutcome] = []
    for index, (item, result) in enumerate(zip(built, results)):
        outcome = RecordOutcome(
            index=index,
            tooth_number=item.record.tooth_number,
            procedure=item.record.procedure,
        )
        if isinstance(result, PersistenceError):
            outcome.error = result
            logger.warning(
                "Treatment for tooth %s not saved: %s", item.record.tooth_number, result
            )
        else:
            outcome.treatment_id = result
        outcomes.append(outcome)
    return outcomes


def submit_treatment(
    repo: ClinicRepository,
    mode: SubmissionMode,
    form: TreatmentForm,
    *,
    today: date | None = None,
    catalog: Collection[str] | None = None,
    notes_max_length: int = DEFAULT_NOTES_MAX_LENGTH,
    chart_auto_update: bool = True,
) -> SubmissionResult:
    """Validate, save and chart one treatment form submission.

    Validation failures raise before anything is written.  A single record
    that fails to save raises ``PersistenceError``; in a multi-record
    submission each failure is reported on its own outcome and the rest
    are still attempted.
    """
    built = build_treatments(
        mode, form, today=today, catalog=catalog, notes_max_length=notes_max_length
    )
    result = SubmissionResult(outcomes=_persist(repo, built, form))

    if result.failed:
        logger.warning(
            "Treatment submission for patient %s saved %s of %s records",
            form.patient_id,
            len(result.succeeded),
            len(result.outcomes),
        )

    if chart_auto_update:
        for outcome in result.succeeded:
            item = built[outcome.index]
            warning = apply_chart_update(
                repo,
                form.patient_id,
                item.chart_update,
                item.record.treatment_date,
                actor_id=form.doctor_id,
            )
            if warning is not None:
                result.chart_warnings.append(warning)
    return result


def edit_treatment(
    repo: ClinicRepository,
    treatment_id: int,
    mode: SubmissionMode,
    form: TreatmentForm,
    **options,
) -> SubmissionResult:
    existing = repo.get_treatment(treatment_id)
    if existing is None:
        raise TreatmentNotFoundError(treatment_id)
    form = dataclasses.replace(
        form,
        appointment=None,
        editing=EditingContext(treatment_id=treatment_id, previous_notes=existing.notes),
    )
    return submit_treatment(repo, mode, form, **options)


def create_from_appointment(
    repo: ClinicRepository,
    appointment: AppointmentInfo,
    *,
    patient_id: str,
    doctor_id: str,
) -> SubmissionResult:
    """Record a completed appointment as one combined treatment.

    The stored tooth is a placeholder until the doctor edits the record, so
    the chart is not touched here.
    """
    existing = repo.list_treatments_for_patient(patient_id)
    if any(references_appointment(treatment.notes, appointment.id) for treatment in existing):
        raise ValidationError("appointment_id", "Appointment already has a treatment record")
    built = build_combined_from_appointment(appointment, patient_id=patient_id, doctor_id=doctor_id)
    treatment_id = repo.insert_treatment(built.record)
    logger.info(
        "Combined treatment %s created from appointment %s with %s procedures",
        treatment_id,
        appointment.id,
        len(appointment.service_names),
    )
    return SubmissionResult(
        outcomes=[
            RecordOutcome(
                index=0,
                tooth_number=built.record.tooth_number,
                procedure=built.record.procedure,
                treatment_id=treatment_id,
            )
        ]
    )


def delete_treatment(repo: ClinicRepository, treatment_id: int, *, actor_id: str | None = None) -> None:
    # The chart keeps its symbol; removing a record does not undo the tooth's condition.
    repo.delete_treatment(treatment_id, actor_id=actor_id)
