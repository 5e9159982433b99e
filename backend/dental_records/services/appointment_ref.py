"""Hidden appointment back-reference carried inside treatment notes.

Treatments created from an appointment append
``<!--APPOINTMENT_REF:<appointment_id>:<branch>:<time>-->`` to their notes.
Older rows carry ``From appointment ID <appointment_id>: ...`` instead; that
form is only ever read.  Times contain colons themselves, so decoding splits
the id and branch off the front and keeps the remainder as the time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

MARKER_PREFIX = "APPOINTMENT_REF:"
LEGACY_PREFIX = "From appointment ID "

_MARKER_PATTERN = re.compile(r"<!--APPOINTMENT_REF:[^>]*-->")
_MARKER_FIELDS = re.compile(
    r"<!--APPOINTMENT_REF:(?P<appointment_id>[^:>]*):(?P<branch>[^:>]*):(?P<time>[^>]*)-->"
)
_LEGACY_PATTERN = re.compile(r"From appointment ID (?P<appointment_id>[^:\s]+):")
_LEGACY_TIME = re.compile(r"at (\d{2}:\d{2}:\d{2})")
_LEGACY_BRANCH = re.compile(r"(?:From appointment|Auto-created from appointment): (.+?) Branch")


@dataclass(frozen=True)
class AppointmentRef:
    appointment_id: str
    branch: str
    time: str


def encode_appointment_ref(appointment_id: object, branch: str | None, time: str | None) -> str:
    return f"<!--{MARKER_PREFIX}{appointment_id}:{branch or ''}:{time or ''}-->"


def decode_appointment_ref(notes: str | None) -> AppointmentRef | None:
    if not notes:
        return None
    match = _MARKER_FIELDS.search(notes)
    if not match:
        return None
    return AppointmentRef(
        appointment_id=match.group("appointment_id"),
        branch=match.group("branch"),
        time=match.group("time"),
    )


def find_marker(notes: str | None) -> str | None:
    if not notes:
        return None
    match = _MARKER_PATTERN.search(notes)
    return match.group(0) if match else None


def strip_markers(notes: str | None) -> str:
    if not notes:
        return ""
    return _MARKER_PATTERN.sub("", notes).strip()


def references_appointment(notes: str | None, appointment_id: object) -> bool:
    if not notes:
        return False
    current = f"{MARKER_PREFIX}{appointment_id}:"
    legacy = f"{LEGACY_PREFIX}{appointment_id}:"
    return current in notes or legacy in notes


def legacy_appointment_id(notes: str | None) -> str | None:
    if not notes:
        return None
    match = _LEGACY_PATTERN.search(notes)
    return match.group("appointment_id") if match else None


def legacy_time_and_branch(notes: str | None) -> tuple[str, str] | None:
    """Time and branch from the old human-readable note, when both are present."""
    if not notes:
        return None
    time_match = _LEGACY_TIME.search(notes)
    branch_match = _LEGACY_BRANCH.search(notes)
    if not time_match or not branch_match:
        return None
    return time_match.group(1), branch_match.group(1).strip()


def compose_notes(
    user_notes: str | None,
    *,
    previous_notes: str | None = None,
    editing: bool = False,
    appointment_ref: str | None = None,
) -> str:
    """Build the stored notes for a treatment.

    When editing, any marker already present in ``previous_notes`` survives
    after the new user text.  A new record sourced from an appointment gets
    ``appointment_ref`` appended.  Otherwise the user text is stored as is.
    """
    text = user_notes or ""
    if editing:
        marker = find_marker(previous_notes)
        return f"{text}{marker}" if marker else text
    if appointment_ref:
        return f"{text}{appointment_ref}"
    return text
