def _treatment(client, tooth, procedure, treatment_date="2024-06-10"):
    res = client.post(
        "/patients/p1/treatments",
        json={
            "doctor_id": "d1",
            "procedure": procedure,
            "tooth_number": tooth,
            "treatment_plan": "Plan",
            "treatment_date": treatment_date,
        },
    )
    assert res.status_code == 201, res.text
    return res.json()["treatment_ids"][0]


def test_missing_chart_returns_empty_document(client):
    res = client.get("/patients/p1/dental-chart")
    assert res.status_code == 200
    body = res.json()
    assert body["exists"] is False
    assert body["chart_data"]["teeth"] == {}
    assert "prediodical_screening" in body["chart_data"]


def test_symbol_legend(client):
    res = client.get("/dental-chart/symbols")
    assert res.status_code == 200
    body = res.json()
    assert body["symbols"]["J"] == "Full Crown Prosthetic"
    assert "Overjet" in body["assessments"]["occlusion"]


def test_treatment_then_manual_edit_keeps_both(client):
    _treatment(client, 14, "Porcelain Crown")
    res = client.patch(
        "/patients/p1/dental-chart/teeth/B",
        json={"field": "symbol", "value": "M", "updated_by": "d1"},
    )
    assert res.status_code == 200, res.text

    chart = client.get("/patients/p1/dental-chart").json()
    assert chart["exists"] is True
    assert chart["chart_data"]["teeth"]["14"]["symbol"] == "J"
    assert chart["chart_data"]["temporary_teeth"]["B"] == {"symbol": "M"}


def test_manual_edit_rejects_invalid_tooth(client):
    res = client.patch("/patients/p1/dental-chart/teeth/33", json={"field": "symbol", "value": "A"})
    assert res.status_code == 422
    assert res.json()["field"] == "tooth_number"


def test_assessment_update(client):
    res = client.patch(
        "/patients/p1/dental-chart/assessments/periodontal_screening",
        json={"field": "Gingivitis", "value": True},
    )
    assert res.status_code == 200, res.text
    assert res.json()["chart_data"]["prediodical_screening"] == {"Gingivitis": True}

    res = client.patch(
        "/patients/p1/dental-chart/assessments/radiographs",
        json={"field": "Bitewing", "value": True},
    )
    assert res.status_code == 422


def test_tooth_history(client):
    _treatment(client, "B", "Extraction", "2024-05-01")
    _treatment(client, "B", "Cleaning", "2024-06-01")
    _treatment(client, 3, "Filling")

    res = client.get("/patients/p1/teeth/B/treatments")
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["tooth_number"] == 102
    assert body["tooth_display"] == "B"
    assert body["chart_entry"]["symbol"] == "B"
    assert [row["procedure"] for row in body["treatments"]] == ["Cleaning", "Extraction"]
