"""Data-access boundary for the treatment and chart services.

Services receive a ``ClinicRepository`` explicitly; ``SqlClinicRepository``
is the SQLAlchemy implementation used by the API.  Each write runs inside
its own savepoint so a failed row never takes its siblings down with it.
The caller owns the outer transaction and commits it.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dental_records.models.appointment import Appointment, AppointmentStatus
from dental_records.models.dental_chart import DentalChart
from dental_records.models.service import Service
from dental_records.models.treatment import Treatment
from dental_records.services.audit import log_event, snapshot_model
from dental_records.services.errors import PersistenceError, TreatmentNotFoundError
from dental_records.services.types import (
    AppointmentInfo,
    ServiceEntry,
    StoredTreatment,
    TreatmentDraft,
)

logger = logging.getLogger(__name__)


class ClinicRepository(Protocol):
    def load_patient_chart(self, patient_id: str) -> dict[str, Any] | None: ...

    def upsert_patient_chart(
        self, patient_id: str, chart: dict[str, Any], updated_by: str | None = None
    ) -> None: ...

    def insert_treatment(self, record: TreatmentDraft) -> int: ...

    def insert_treatments(
        self, records: Sequence[TreatmentDraft]
    ) -> list[int | PersistenceError]: ...

    def update_treatment(self, treatment_id: int, record: TreatmentDraft) -> None: ...

    def delete_treatment(self, treatment_id: int, actor_id: str | None = None) -> None: ...

    def get_treatment(self, treatment_id: int) -> StoredTreatment | None: ...

    def list_treatments_for_patient(
        self, patient_id: str, doctor_id: str | None = None
    ) -> list[StoredTreatment]: ...

    def list_completed_appointments(
        self, patient_id: str, doctor_id: str | None = None
    ) -> list[AppointmentInfo]: ...

    def get_appointment(self, appointment_id: str) -> AppointmentInfo | None: ...

    def list_service_catalog(self) -> list[ServiceEntry]: ...


def appointment_info(appointment: Appointment) -> AppointmentInfo:
    status = appointment.status
    return AppointmentInfo(
        id=appointment.id,
        patient_id=appointment.patient_id,
        appointment_date=appointment.appointment_date,
        appointment_time=appointment.appointment_time,
        branch=appointment.branch,
        status=status.value if hasattr(status, "value") else status,
        doctor_id=appointment.doctor_id,
        service_names=appointment.service_names,
    )


class SqlClinicRepository:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _savepoint(self, operation: str) -> Iterator[None]:
        try:
            with self.db.begin_nested():
                yield
        except SQLAlchemyError as exc:
            logger.warning("Store operation %s failed: %s", operation, exc)
            raise PersistenceError(f"{operation} failed: {exc}", operation=operation) from exc

    def load_patient_chart(self, patient_id: str) -> dict[str, Any] | None:
        with self._savepoint("load_patient_chart"):
            chart = self.db.scalar(select(DentalChart).where(DentalChart.patient_id == patient_id))
        if chart is None:
            return None
        return copy.deepcopy(chart.chart_data or {})

    def upsert_patient_chart(
        self, patient_id: str, chart: dict[str, Any], updated_by: str | None = None
    ) -> None:
        with self._savepoint("upsert_patient_chart"):
            existing = self.db.scalar(
                select(DentalChart).where(DentalChart.patient_id == patient_id)
            )
            if existing is None:
                existing = DentalChart(patient_id=patient_id)
                self.db.add(existing)
            existing.chart_data = copy.deepcopy(chart)
            existing.updated_by = updated_by
            self.db.flush()
            log_event(
                self.db,
                actor_id=updated_by,
                action="dental_chart.updated",
                entity_type="dental_chart",
                entity_id=patient_id,
                after_data={"teeth": sorted((chart.get("teeth") or {}).keys())},
            )

    def insert_treatment(self, record: TreatmentDraft) -> int:
        with self._savepoint("insert_treatment"):
            treatment = Treatment(**record.model_dump())
            self.db.add(treatment)
            self.db.flush()
            log_event(
                self.db,
                actor_id=record.doctor_id,
                action="treatment.created",
                entity_type="treatment",
                entity_id=str(treatment.id),
                after_obj=treatment,
            )
        return treatment.id

    def insert_treatments(self, records: Sequence[TreatmentDraft]) -> list[int | PersistenceError]:
        outcomes: list[int | PersistenceError] = []
        for record in records:
            try:
                outcomes.append(self.insert_treatment(record))
            except PersistenceError as exc:
                outcomes.append(exc)
        return outcomes

    def update_treatment(self, treatment_id: int, record: TreatmentDraft) -> None:
        with self._savepoint("update_treatment"):
            treatment = self.db.get(Treatment, treatment_id)
            if treatment is None:
                raise TreatmentNotFoundError(treatment_id)
            before = snapshot_model(treatment)
            for field, value in record.model_dump().items():
                setattr(treatment, field, value)
            self.db.flush()
            log_event(
                self.db,
                actor_id=record.doctor_id,
                action="treatment.updated",
                entity_type="treatment",
                entity_id=str(treatment_id),
                before_data=before,
                after_obj=treatment,
            )

    def delete_treatment(self, treatment_id: int, actor_id: str | None = None) -> None:
        with self._savepoint("delete_treatment"):
            treatment = self.db.get(Treatment, treatment_id)
            if treatment is None:
                raise TreatmentNotFoundError(treatment_id)
            log_event(
                self.db,
                actor_id=actor_id,
                action="treatment.deleted",
                entity_type="treatment",
                entity_id=str(treatment_id),
                before_obj=treatment,
            )
            self.db.delete(treatment)
            self.db.flush()

    def get_treatment(self, treatment_id: int) -> StoredTreatment | None:
        treatment = self.db.get(Treatment, treatment_id)
        if treatment is None:
            return None
        return StoredTreatment.model_validate(treatment)

    def list_treatments_for_patient(
        self, patient_id: str, doctor_id: str | None = None
    ) -> list[StoredTreatment]:
        stmt = select(Treatment).where(Treatment.patient_id == patient_id)
        if doctor_id is not None:
            stmt = stmt.where(Treatment.doctor_id == doctor_id)
        stmt = stmt.order_by(
            Treatment.treatment_date.desc(), Treatment.created_at.desc(), Treatment.id.desc()
        )
        return [StoredTreatment.model_validate(row) for row in self.db.scalars(stmt)]

    def list_completed_appointments(
        self, patient_id: str, doctor_id: str | None = None
    ) -> list[AppointmentInfo]:
        stmt = select(Appointment).where(
            Appointment.patient_id == patient_id,
            Appointment.status == AppointmentStatus.completed,
        )
        if doctor_id is not None:
            stmt = stmt.where(Appointment.doctor_id == doctor_id)
        stmt = stmt.order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
        return [appointment_info(row) for row in self.db.scalars(stmt)]

    def get_appointment(self, appointment_id: str) -> AppointmentInfo | None:
        appointment = self.db.get(Appointment, appointment_id)
        if appointment is None:
            return None
        return appointment_info(appointment)

    def list_service_catalog(self) -> list[ServiceEntry]:
        stmt = select(Service).where(Service.is_active.is_(True)).order_by(Service.name)
        return [ServiceEntry.model_validate(row) for row in self.db.scalars(stmt)]
