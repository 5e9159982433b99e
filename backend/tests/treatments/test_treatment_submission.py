import logging
from datetime import date

import pytest

from dental_records.services.chart_reconciliation import empty_chart
from dental_records.services.errors import PersistenceError, TreatmentNotFoundError, ValidationError
from dental_records.services.treatment_builder import (
    MultiProcedureMultiTooth,
    ProcedureDetail,
    SingleProcedureMultiTooth,
    SingleToothSingleProcedure,
    TreatmentForm,
)
from dental_records.services.treatment_submission import (
    create_from_appointment,
    delete_treatment,
    edit_treatment,
    submit_treatment,
)
from dental_records.services.types import AppointmentInfo

TODAY = date(2024, 6, 15)


def _form(**overrides):
    values = {
        "patient_id": "p1",
        "doctor_id": "d1",
        "treatment_plan": "Restore",
        "treatment_date": date(2024, 6, 10),
        "notes": "",
    }
    values.update(overrides)
    return TreatmentForm(**values)


def _appointment(appointment_id="apt-42"):
    return AppointmentInfo(
        id=appointment_id,
        patient_id="p1",
        appointment_date=date(2024, 6, 1),
        appointment_time="09:30:00",
        branch="Main",
        status="completed",
        service_names=["Cleaning", "Filling"],
    )


def test_submit_single_updates_chart(fake_repo):
    result = submit_treatment(
        fake_repo, SingleToothSingleProcedure(14, "Composite Filling"), _form(), today=TODAY
    )
    assert result.treatment_ids == [1]
    assert result.chart_warnings == []
    assert fake_repo.charts["p1"]["teeth"]["14"] == {
        "symbol": "E",
        "procedure": "Composite Filling",
        "treatment_date": "2024-06-10",
    }


def test_chart_merge_keeps_other_teeth(fake_repo):
    chart = empty_chart()
    chart["teeth"]["3"] = {"symbol": "B"}
    chart["tmd"] = {"Clicking": True}
    fake_repo.charts["p1"] = chart

    submit_treatment(fake_repo, SingleToothSingleProcedure(5, "Crown"), _form(), today=TODAY)

    stored = fake_repo.charts["p1"]
    assert stored["teeth"]["3"] == {"symbol": "B"}
    assert stored["teeth"]["5"]["symbol"] == "J"
    assert stored["tmd"] == {"Clicking": True}


def test_unmapped_procedure_makes_no_chart_write(fake_repo):
    result = submit_treatment(fake_repo, SingleToothSingleProcedure(5, "Cleaning"), _form(), today=TODAY)
    assert result.treatment_ids == [1]
    assert fake_repo.chart_writes == 0
    assert "p1" not in fake_repo.charts


def test_chart_auto_update_can_be_disabled(fake_repo):
    submit_treatment(
        fake_repo,
        SingleToothSingleProcedure(5, "Crown"),
        _form(),
        today=TODAY,
        chart_auto_update=False,
    )
    assert fake_repo.chart_writes == 0


def test_multi_tooth_updates_each_tooth(fake_repo):
    result = submit_treatment(
        fake_repo, SingleProcedureMultiTooth([3, 14, "B"], "Filling"), _form(), today=TODAY
    )
    assert result.treatment_ids == [1, 2, 3]
    assert sorted(fake_repo.charts["p1"]["teeth"]) == ["102", "14", "3"]
    assert [row.tooth_number for row in fake_repo.treatments.values()] == [3, 14, 102]


def test_partial_failure_reports_failed_index(fake_repo, caplog):
    fake_repo.fail_insert_indexes = {1}
    with caplog.at_level(logging.WARNING, logger="dental_records.treatments"):
        result = submit_treatment(
            fake_repo, SingleProcedureMultiTooth([3, 14, "B"], "Filling"), _form(), today=TODAY
        )

    assert result.is_partial
    assert [outcome.index for outcome in result.failed] == [1]
    assert result.failed[0].tooth_number == 14
    assert isinstance(result.failed[0].error, PersistenceError)
    assert [row.tooth_number for row in fake_repo.treatments.values()] == [3, 102]
    assert sorted(fake_repo.charts["p1"]["teeth"]) == ["102", "3"]
    assert "saved 2 of 3 records" in caplog.text


def test_single_record_failure_raises(fake_repo):
    fake_repo.fail_all_inserts = True
    with pytest.raises(PersistenceError):
        submit_treatment(fake_repo, SingleToothSingleProcedure(14, "Filling"), _form(), today=TODAY)
    assert fake_repo.chart_writes == 0


def test_chart_failure_is_a_warning(fake_repo, caplog):
    fake_repo.fail_chart_writes = True
    with caplog.at_level(logging.WARNING, logger="dental_records.treatments"):
        result = submit_treatment(
            fake_repo, SingleToothSingleProcedure(14, "Filling"), _form(), today=TODAY
        )
    assert result.treatment_ids == [1]
    assert len(result.chart_warnings) == 1
    assert result.chart_warnings[0].tooth_number == 14
    assert "dental chart update failed" in caplog.text


def test_validation_failure_writes_nothing(fake_repo):
    with pytest.raises(ValidationError):
        submit_treatment(
            fake_repo,
            SingleProcedureMultiTooth([3, "AA"], "Filling"),
            _form(),
            today=TODAY,
        )
    assert fake_repo.treatments == {}
    assert fake_repo.chart_writes == 0


def test_combined_submission_charts_primary_tooth(fake_repo):
    mode = MultiProcedureMultiTooth(
        [ProcedureDetail("Extraction", 30), ProcedureDetail("Cleaning", 2)], combine=True
    )
    result = submit_treatment(fake_repo, mode, _form(), today=TODAY)
    assert result.treatment_ids == [1]
    assert fake_repo.charts["p1"]["teeth"] == {
        "30": {
            "symbol": "B",
            "procedure": "Extraction, Cleaning",
            "treatment_date": "2024-06-10",
        }
    }


def test_edit_keeps_marker_and_updates_in_place(fake_repo):
    submit_treatment(
        fake_repo,
        SingleToothSingleProcedure(14, "Filling"),
        _form(notes="first visit", appointment=_appointment()),
        today=TODAY,
    )
    result = edit_treatment(
        fake_repo,
        1,
        SingleToothSingleProcedure(14, "Filling"),
        _form(notes="follow-up needed"),
        today=TODAY,
    )
    assert result.treatment_ids == [1]
    assert len(fake_repo.treatments) == 1
    assert fake_repo.treatments[1].notes == (
        "follow-up needed<!--APPOINTMENT_REF:apt-42:Main:09:30:00-->"
    )


def test_edit_missing_treatment(fake_repo):
    with pytest.raises(TreatmentNotFoundError):
        edit_treatment(fake_repo, 99, SingleToothSingleProcedure(1, "Filling"), _form(), today=TODAY)


def test_create_from_appointment_once(fake_repo):
    result = create_from_appointment(fake_repo, _appointment(), patient_id="p1", doctor_id="d1")
    stored = fake_repo.treatments[result.treatment_ids[0]]
    assert stored.procedure == "Cleaning, Filling"
    assert stored.notes == "<!--APPOINTMENT_REF:apt-42:Main:09:30:00-->"
    assert fake_repo.chart_writes == 0

    with pytest.raises(ValidationError):
        create_from_appointment(fake_repo, _appointment(), patient_id="p1", doctor_id="d1")


def test_delete_treatment_leaves_chart(fake_repo):
    submit_treatment(fake_repo, SingleToothSingleProcedure(14, "Filling"), _form(), today=TODAY)
    delete_treatment(fake_repo, 1, actor_id="d1")
    assert fake_repo.treatments == {}
    assert fake_repo.charts["p1"]["teeth"]["14"]["symbol"] == "E"
    with pytest.raises(TreatmentNotFoundError):
        delete_treatment(fake_repo, 1)


def test_malformed_stored_chart_is_a_warning(fake_repo, caplog):
    fake_repo.charts["p1"] = {"teeth": ["legacy"]}
    with caplog.at_level(logging.WARNING, logger="dental_records.treatments"):
        result = submit_treatment(
            fake_repo, SingleToothSingleProcedure(14, "Tooth Filling"), _form(), today=TODAY
        )
    assert result.treatment_ids == [1]
    assert [warning.tooth_number for warning in result.chart_warnings] == [14]
    assert fake_repo.charts["p1"] == {"teeth": ["legacy"]}
    assert "dental chart update failed" in caplog.text
