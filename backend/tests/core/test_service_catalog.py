import json

from sqlalchemy import select

from dental_records.models.service import Service
from dental_records.scripts.seed_service_catalog import load_entries
from dental_records.services.service_catalog import DEFAULT_SERVICES, ensure_service_catalog


def test_ensure_service_catalog_is_idempotent(db):
    db.add(Service(name="tooth filling"))
    db.commit()

    added = ensure_service_catalog(db, DEFAULT_SERVICES)
    db.commit()
    assert added == len(DEFAULT_SERVICES) - 1
    assert ensure_service_catalog(db, DEFAULT_SERVICES) == 0

    names = db.scalars(select(Service.name)).all()
    assert "Tooth Filling" not in names
    assert "Dental Crown" in names


def test_load_entries_from_file(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps([{"name": "Veneer", "description": "Porcelain"}, {"name": "Bridge"}]))
    assert load_entries(str(path)) == [("Veneer", "Porcelain"), ("Bridge", None)]
    assert load_entries(None) == list(DEFAULT_SERVICES)
