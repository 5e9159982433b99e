from __future__ import annotations

import re
import string
from dataclasses import dataclass
from typing import Union

from dental_records.services.errors import InvalidToothError

PERMANENT_MIN = 1
PERMANENT_MAX = 32
TEMPORARY_OFFSET = 101
TEMPORARY_LETTERS = string.ascii_uppercase[:20]  # A-T

_PERMANENT_TEXT = re.compile(r"[1-9]|[12][0-9]|3[0-2]")


@dataclass(frozen=True)
class PermanentTooth:
    number: int

    @property
    def canonical(self) -> int:
        return self.number

    @property
    def display(self) -> int:
        return self.number


@dataclass(frozen=True)
class TemporaryTooth:
    letter: str

    @property
    def canonical(self) -> int:
        return TEMPORARY_OFFSET + TEMPORARY_LETTERS.index(self.letter)

    @property
    def display(self) -> str:
        return self.letter


ToothToken = Union[PermanentTooth, TemporaryTooth]


def parse_tooth_token(token: object) -> ToothToken:
    """Resolve a display token (1-32, "1"-"32" or "A"-"T") into its tagged form."""
    if isinstance(token, bool):
        raise InvalidToothError(token)
    if isinstance(token, int):
        if PERMANENT_MIN <= token <= PERMANENT_MAX:
            return PermanentTooth(token)
        raise InvalidToothError(token)
    if isinstance(token, str):
        if _PERMANENT_TEXT.fullmatch(token):
            return PermanentTooth(int(token))
        if len(token) == 1 and token in TEMPORARY_LETTERS:
            return TemporaryTooth(token)
    raise InvalidToothError(token)


def to_canonical(token: object) -> int:
    return parse_tooth_token(token).canonical


def to_display(canonical: int) -> int | str:
    # Unknown values pass through; historical rows do not always conform.
    if TEMPORARY_OFFSET <= canonical < TEMPORARY_OFFSET + len(TEMPORARY_LETTERS):
        return TEMPORARY_LETTERS[canonical - TEMPORARY_OFFSET]
    return canonical


def is_valid_tooth_token(token: object) -> bool:
    try:
        parse_tooth_token(token)
    except InvalidToothError:
        return False
    return True
