from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

from dental_records.core.clock import clinic_today
from dental_records.services.appointment_ref import strip_markers
from dental_records.services.tooth_numbering import to_canonical, to_display
from dental_records.services.types import ServiceEntry, StoredTreatment

EARLIEST_DATE = date(1900, 1, 1)


@dataclass(frozen=True)
class TreatmentFilter:
    query: str | None = None
    procedure: str | None = None
    tooth: str | None = None
    start_date: date | None = None
    end_date: date | None = None


def display_notes(notes: str | None) -> str:
    return strip_markers(notes)


def _matches_query(treatment: StoredTreatment, query: str) -> bool:
    haystacks = (treatment.procedure, treatment.diagnosis, treatment.notes)
    return any(query in (value or "").lower() for value in haystacks)


def filter_treatments(
    treatments: Iterable[StoredTreatment],
    criteria: TreatmentFilter,
    *,
    today: date | None = None,
) -> list[StoredTreatment]:
    """Apply the history screen's filters; every criterion left blank is ignored.

    The tooth filter compares against the display form, so ``"B"`` finds
    rows stored as 102.  An open-ended date range ends today.
    """
    rows = list(treatments)
    query = (criteria.query or "").strip().lower()
    if query:
        rows = [row for row in rows if _matches_query(row, query)]
    if criteria.procedure:
        rows = [row for row in rows if row.procedure == criteria.procedure]
    if criteria.tooth:
        rows = [row for row in rows if str(to_display(row.tooth_number)) == criteria.tooth]
    if criteria.start_date or criteria.end_date:
        start = criteria.start_date or EARLIEST_DATE
        end = criteria.end_date or today or clinic_today()
        rows = [row for row in rows if start <= row.treatment_date <= end]
    return rows


def treatments_for_tooth(treatments: Iterable[StoredTreatment], tooth: object) -> list[StoredTreatment]:
    canonical = to_canonical(tooth)
    return [row for row in treatments if row.tooth_number == canonical]


def suggest_services(catalog: Sequence[ServiceEntry], text: str | None, limit: int = 10) -> list[ServiceEntry]:
    """Catalog entries for autocomplete: prefix matches first, then substring matches."""
    needle = (text or "").strip().lower()
    if not needle:
        return list(catalog[:limit])
    prefix = [entry for entry in catalog if entry.name.lower().startswith(needle)]
    contains = [
        entry
        for entry in catalog
        if needle in entry.name.lower() and not entry.name.lower().startswith(needle)
    ]
    return (prefix + contains)[:limit]
