from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from dental_records.models.service import Service

logger = logging.getLogger("dental_records.catalog")

DEFAULT_SERVICES: tuple[tuple[str, str], ...] = (
    ("Oral Prophylaxis (Cleaning)", "Scaling and polishing"),
    ("Tooth Filling", "Composite or amalgam restoration"),
    ("Tooth Extraction", "Simple or surgical extraction"),
    ("Dental Crown", "Full coverage crown"),
    ("Root Canal Treatment", "Endodontic therapy"),
    ("Consultation", None),
)


def ensure_service_catalog(db: Session, entries: Iterable[tuple[str, str | None]]) -> int:
    """Add missing services by case-insensitive name; existing rows are left alone."""
    existing = {name.lower() for name in db.scalars(select(Service.name))}
    added = 0
    for name, description in entries:
        cleaned = name.strip()
        if not cleaned or cleaned.lower() in existing:
            continue
        db.add(Service(name=cleaned, description=description))
        existing.add(cleaned.lower())
        added += 1
    if added:
        logger.info("Service catalog: %s entries added", added)
    return added
