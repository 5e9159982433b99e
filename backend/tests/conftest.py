import copy
import os
from datetime import datetime, timezone

os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dental_records.db.session import get_db
from dental_records.main import app
from dental_records.models import Base
from dental_records.services.errors import PersistenceError, TreatmentNotFoundError
from dental_records.services.types import StoredTreatment

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# pysqlite needs its own transaction handling for SAVEPOINT to work.
@event.listens_for(engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides = {}


class FakeClinicRepository:
    """In-memory store with switches for simulating write failures."""

    def __init__(self):
        self.treatments: dict[int, StoredTreatment] = {}
        self.charts: dict[str, dict] = {}
        self.appointments = []
        self.catalog = []
        self.fail_insert_indexes: set[int] = set()
        self.fail_all_inserts = False
        self.fail_chart_writes = False
        self.chart_writes = 0
        self._insert_calls = 0
        self._next_id = 1

    def load_patient_chart(self, patient_id):
        chart = self.charts.get(patient_id)
        return copy.deepcopy(chart) if chart is not None else None

    def upsert_patient_chart(self, patient_id, chart, updated_by=None):
        if self.fail_chart_writes:
            raise PersistenceError("chart store unavailable", operation="upsert_patient_chart")
        self.chart_writes += 1
        self.charts[patient_id] = copy.deepcopy(chart)

    def insert_treatment(self, record):
        index = self._insert_calls
        self._insert_calls += 1
        if self.fail_all_inserts or index in self.fail_insert_indexes:
            raise PersistenceError("insert rejected", operation="insert_treatment")
        treatment_id = self._next_id
        self._next_id += 1
        self.treatments[treatment_id] = StoredTreatment(
            id=treatment_id,
            created_at=datetime.now(timezone.utc),
            **record.model_dump(),
        )
        return treatment_id

    def insert_treatments(self, records):
        outcomes = []
        for record in records:
            try:
                outcomes.append(self.insert_treatment(record))
            except PersistenceError as exc:
                outcomes.append(exc)
        return outcomes

    def update_treatment(self, treatment_id, record):
        if treatment_id not in self.treatments:
            raise TreatmentNotFoundError(treatment_id)
        existing = self.treatments[treatment_id]
        self.treatments[treatment_id] = StoredTreatment(
            id=treatment_id, created_at=existing.created_at, **record.model_dump()
        )

    def delete_treatment(self, treatment_id, actor_id=None):
        if self.treatments.pop(treatment_id, None) is None:
            raise TreatmentNotFoundError(treatment_id)

    def get_treatment(self, treatment_id):
        return self.treatments.get(treatment_id)

    def list_treatments_for_patient(self, patient_id, doctor_id=None):
        rows = [
            row
            for row in self.treatments.values()
            if row.patient_id == patient_id and (doctor_id is None or row.doctor_id == doctor_id)
        ]
        return sorted(rows, key=lambda row: (row.treatment_date, row.id), reverse=True)

    def list_completed_appointments(self, patient_id, doctor_id=None):
        return [
            appointment
            for appointment in self.appointments
            if appointment.patient_id == patient_id
            and (doctor_id is None or appointment.doctor_id == doctor_id)
        ]

    def get_appointment(self, appointment_id):
        for appointment in self.appointments:
            if appointment.id == appointment_id:
                return appointment
        return None

    def list_service_catalog(self):
        return list(self.catalog)


@pytest.fixture()
def fake_repo():
    return FakeClinicRepository()
