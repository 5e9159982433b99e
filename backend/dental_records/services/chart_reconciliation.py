from __future__ import annotations

import copy
import enum
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Any

from dental_records.services.appointment_ref import (
    decode_appointment_ref,
    legacy_appointment_id,
    legacy_time_and_branch,
    references_appointment,
)
from dental_records.services.tooth_numbering import to_canonical, to_display
from dental_records.services.types import AppointmentInfo, StoredTreatment

TEETH_KEY = "teeth"
TEMPORARY_TEETH_KEY = "temporary_teeth"
# Stored spelling kept for compatibility with existing chart documents.
PERIODONTAL_SCREENING_KEY = "prediodical_screening"
OCCLUSION_KEY = "occlusion"
APPLIANCES_KEY = "appliances"
APPLIANCES_OTHERS_KEY = "appliances_others"
TMD_KEY = "tmd"

ASSESSMENT_SECTIONS: dict[str, tuple[str, ...]] = {
    PERIODONTAL_SCREENING_KEY: (
        "Gingivitis",
        "Early Periodontics",
        "Moderate Periodontics",
        "Advanced Periodontics",
    ),
    OCCLUSION_KEY: ("Class (Molar)", "Overjet", "Overbite", "Midline Deviation", "Crossbite"),
    APPLIANCES_KEY: ("Orthodontic", "Stayplate", "Others"),
    TMD_KEY: ("Clenching", "Clicking", "Trismus", "Muscle Spasm"),
}

SECTION_ALIASES = {
    "periodontal_screening": PERIODONTAL_SCREENING_KEY,
    PERIODONTAL_SCREENING_KEY: PERIODONTAL_SCREENING_KEY,
    OCCLUSION_KEY: OCCLUSION_KEY,
    APPLIANCES_KEY: APPLIANCES_KEY,
    TMD_KEY: TMD_KEY,
}


class ChartSymbol(str, enum.Enum):
    filled = "E"
    missing = "B"
    crown = "J"


SYMBOL_LEGEND: dict[str, str] = {
    "A": "Decayed (Caries Indicated for filling)",
    "B": "Missing due to caries",
    "C": "Caries Indicated for Extraction",
    "D": "Filled Fragment",
    "E": "Filled tooth for caries",
    "F": "Impacted Tooth",
    "G": "Jacket Crown",
    "H": "Abutment Filling",
    "I": "Pontic",
    "J": "Full Crown Prosthetic",
    "K": "Removable Denture",
    "L": "Extraction due to other causes",
    "M": "Congenitally missing",
    "N": "Supernumerary tooth",
    "O": "Root Fragment",
    "P": "Unerupted",
}

# First match wins; "cleaning" maps to None so it never reaches the chart.
_ORDERED_RULES: tuple[tuple[ChartSymbol | None, tuple[str, ...]], ...] = (
    (ChartSymbol.filled, ("filling", "restoration")),
    (ChartSymbol.missing, ("extraction",)),
    (ChartSymbol.crown, ("crown",)),
    (ChartSymbol.filled, ("root canal",)),
    (None, ("cleaning",)),
)


def derive_symbol(procedure_text: str | None) -> ChartSymbol | None:
    label = str(procedure_text or "").strip().lower()
    if not label:
        return None

    for symbol, keywords in _ORDERED_RULES:
        if any(keyword in label for keyword in keywords):
            return symbol

    return None


def empty_chart() -> dict[str, Any]:
    return {
        TEETH_KEY: {},
        PERIODONTAL_SCREENING_KEY: {},
        OCCLUSION_KEY: {},
        APPLIANCES_KEY: {},
        APPLIANCES_OTHERS_KEY: "",
        TMD_KEY: {},
    }


def tooth_key(tooth_id: object) -> str:
    return str(tooth_id)


def merge_tooth(
    chart: dict[str, Any] | None,
    tooth_id: int,
    symbol: ChartSymbol | str | None,
    procedure_text: str,
    treatment_date: date | str,
) -> dict[str, Any] | None:
    """Return a copy of ``chart`` with one tooth entry replaced.

    Every other tooth and every assessment section is carried over untouched.
    With no symbol the input is returned as is.
    """
    if symbol is None:
        return chart

    merged = copy.deepcopy(chart) if chart is not None else empty_chart()
    teeth = dict(merged.get(TEETH_KEY) or {})
    teeth[tooth_key(tooth_id)] = {
        "symbol": symbol.value if isinstance(symbol, ChartSymbol) else symbol,
        "procedure": procedure_text,
        "treatment_date": (
            treatment_date.isoformat() if isinstance(treatment_date, date) else treatment_date
        ),
    }
    merged[TEETH_KEY] = teeth
    return merged


def chart_entry_for(chart: dict[str, Any] | None, tooth: object) -> dict[str, Any] | None:
    """Look a tooth up under any key a chart may have been written with.

    Treatment saves write canonical numbers; the chart editor writes raw
    letters, sometimes under ``temporary_teeth``.
    """
    if not chart:
        return None
    canonical = to_canonical(tooth)
    display = to_display(canonical)
    teeth = chart.get(TEETH_KEY) or {}
    temporary = chart.get(TEMPORARY_TEETH_KEY) or {}
    for section, key in (
        (teeth, tooth_key(canonical)),
        (temporary, tooth_key(display)),
        (teeth, tooth_key(display)),
    ):
        if key in section:
            return section[key]
    return None


def update_tooth_field(
    chart: dict[str, Any] | None, tooth: object, field: str, value: Any
) -> dict[str, Any]:
    """Explicit chart edit of one field on one tooth.

    Letter tokens land in ``temporary_teeth`` keyed by letter, numbers in
    ``teeth``; the rest of the tooth entry is kept.
    """
    canonical = to_canonical(tooth)
    display = to_display(canonical)
    merged = copy.deepcopy(chart) if chart is not None else empty_chart()
    if isinstance(display, str):
        section_key, key = TEMPORARY_TEETH_KEY, display
    else:
        section_key, key = TEETH_KEY, tooth_key(canonical)
    section = dict(merged.get(section_key) or {})
    entry = dict(section.get(key) or {})
    entry[field] = value
    section[key] = entry
    merged[section_key] = section
    return merged


def set_assessment(
    chart: dict[str, Any] | None, section: str, field: str, value: bool | str
) -> dict[str, Any]:
    section_key = SECTION_ALIASES.get(section)
    if section_key is None:
        raise ValueError(f"Unknown assessment section: {section}")
    merged = copy.deepcopy(chart) if chart is not None else empty_chart()
    if section_key == APPLIANCES_KEY and field == APPLIANCES_OTHERS_KEY:
        merged[APPLIANCES_OTHERS_KEY] = str(value)
        return merged
    flags = dict(merged.get(section_key) or {})
    flags[field] = bool(value)
    merged[section_key] = flags
    return merged


def is_appointment_covered(appointment: AppointmentInfo, existing_notes: Iterable[str | None]) -> bool:
    """True when some treatment's notes carry this appointment's marker.

    Only exact markers count; nothing date-based ever hides an appointment.
    """
    return any(references_appointment(notes, appointment.id) for notes in existing_notes)


def available_appointments(
    appointments: Sequence[AppointmentInfo], existing_notes: Iterable[str | None]
) -> list[AppointmentInfo]:
    notes = list(existing_notes)
    return [
        appointment
        for appointment in appointments
        if not is_appointment_covered(appointment, notes)
    ]


def suggest_appointment(
    treatment: StoredTreatment, appointments: Sequence[AppointmentInfo]
) -> AppointmentInfo | None:
    """Best guess at the appointment a treatment came from, for display only."""
    ref = decode_appointment_ref(treatment.notes)
    linked_id = ref.appointment_id if ref else legacy_appointment_id(treatment.notes)
    if linked_id:
        for appointment in appointments:
            if appointment.id == linked_id:
                return appointment

    legacy = legacy_time_and_branch(treatment.notes)
    if legacy:
        time, branch = legacy
        for appointment in appointments:
            if (
                appointment.appointment_date == treatment.treatment_date
                and appointment.appointment_time == time
                and appointment.branch == branch
            ):
                return appointment

    # Weak fallback: same calendar date. Several visits on one day make this ambiguous.
    for appointment in appointments:
        if appointment.appointment_date == treatment.treatment_date:
            return appointment
    return None
