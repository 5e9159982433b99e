from datetime import date

import pytest

from dental_records.services.treatment_history import (
    TreatmentFilter,
    display_notes,
    filter_treatments,
    suggest_services,
    treatments_for_tooth,
)
from dental_records.services.types import ServiceEntry, StoredTreatment

TODAY = date(2024, 6, 15)


def _treatment(treatment_id, procedure, tooth, day, notes="", diagnosis=""):
    return StoredTreatment(
        id=treatment_id,
        patient_id="p1",
        doctor_id="d1",
        procedure=procedure,
        tooth_number=tooth,
        diagnosis=diagnosis,
        notes=notes,
        treatment_date=day,
    )


@pytest.fixture()
def history():
    return [
        _treatment(1, "Filling", 14, date(2024, 6, 10), notes="sensitive"),
        _treatment(2, "Extraction", 102, date(2024, 5, 2), diagnosis="Abscess"),
        _treatment(3, "Filling", 3, date(2023, 12, 1)),
        _treatment(4, "Crown", 14, date(2024, 1, 20)),
    ]


def test_no_criteria_returns_everything(history):
    assert filter_treatments(history, TreatmentFilter(), today=TODAY) == history


def test_search_is_case_insensitive_over_text_fields(history):
    rows = filter_treatments(history, TreatmentFilter(query="ABSCESS"), today=TODAY)
    assert [row.id for row in rows] == [2]
    rows = filter_treatments(history, TreatmentFilter(query="sensi"), today=TODAY)
    assert [row.id for row in rows] == [1]


def test_procedure_filter(history):
    rows = filter_treatments(history, TreatmentFilter(procedure="Filling"), today=TODAY)
    assert [row.id for row in rows] == [1, 3]


@pytest.mark.parametrize(("tooth", "expected"), [("14", [1, 4]), ("B", [2]), ("C", [])])
def test_tooth_filter_uses_display_form(history, tooth, expected):
    rows = filter_treatments(history, TreatmentFilter(tooth=tooth), today=TODAY)
    assert [row.id for row in rows] == expected


def test_date_range_with_open_end(history):
    rows = filter_treatments(history, TreatmentFilter(start_date=date(2024, 1, 1)), today=TODAY)
    assert [row.id for row in rows] == [1, 2, 4]
    rows = filter_treatments(history, TreatmentFilter(end_date=date(2023, 12, 31)), today=TODAY)
    assert [row.id for row in rows] == [3]


def test_display_notes_hides_marker():
    assert display_notes("done<!--APPOINTMENT_REF:a:Main:09:00:00-->") == "done"


def test_treatments_for_tooth(history):
    assert [row.id for row in treatments_for_tooth(history, "14")] == [1, 4]
    assert [row.id for row in treatments_for_tooth(history, "B")] == [2]


def test_suggest_services_prefix_first():
    catalog = [
        ServiceEntry(id=1, name="Composite Filling"),
        ServiceEntry(id=2, name="Crown"),
        ServiceEntry(id=3, name="Filling"),
        ServiceEntry(id=4, name="Cleaning"),
    ]
    assert [entry.name for entry in suggest_services(catalog, "fill")] == [
        "Filling",
        "Composite Filling",
    ]
    assert [entry.id for entry in suggest_services(catalog, "", limit=2)] == [1, 2]
    assert suggest_services(catalog, "xray") == []
