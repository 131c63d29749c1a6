"""Fixed code tables for entry types and recurrence cadences.

Both tables are closed: the integer codes are part of the stored record shape
and must not be renumbered.
"""

from __future__ import annotations

from enum import IntEnum
from types import MappingProxyType
from typing import Any


class EntryType(IntEnum):
    TRANSACTION = 10
    TRANSACTION_ONE_TIME = 11
    TRANSACTION_INITIAL = 12
    TRANSACTION_SUBSEQUENT = 13
    TRANSACTION_RECURRING = 14
    TRANSACTION_REFUND = 15


class Recurs(IntEnum):
    NONE = 0
    DAILY = 1
    WEEKLY = 2
    MONTHLY = 3
    QUARTERLY = 4
    ANNUALLY = 5
    SEMI_ANNUALLY = 6


ENTRY_TYPE_IDS = MappingProxyType({e.name: e.value for e in EntryType})
"""``entry_type`` string → ``entry_type_id``."""

RECURS_IDS = MappingProxyType(
    {
        "daily": Recurs.DAILY.value,
        "weekly": Recurs.WEEKLY.value,
        "monthly": Recurs.MONTHLY.value,
        "quarterly": Recurs.QUARTERLY.value,
        "annually": Recurs.ANNUALLY.value,
        "semi-annually": Recurs.SEMI_ANNUALLY.value,
    }
)
"""``recurs`` string → ``recurs_id``. ``NONE`` has no string form."""

# Cadence assumed for a series that reports an occurrence index but no cadence.
DEFAULT_SERIES_RECURS = Recurs.MONTHLY


def lookup_entry_type(raw: Any) -> int | None:
    """Return the code for an ``entry_type`` string, or ``None`` if unknown."""

    if not isinstance(raw, str):
        return None
    return ENTRY_TYPE_IDS.get(raw.strip().upper())


def lookup_recurs(raw: Any) -> int | None:
    """Return the code for a ``recurs`` string, or ``None`` if unknown."""

    if not isinstance(raw, str):
        return None
    return RECURS_IDS.get(raw.strip().lower())


def is_entry_type_id(value: Any) -> bool:
    # bool is an int subclass; True must not pass as a code.
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return value in EntryType._value2member_map_


__all__ = [
    "DEFAULT_SERIES_RECURS",
    "ENTRY_TYPE_IDS",
    "RECURS_IDS",
    "EntryType",
    "Recurs",
    "is_entry_type_id",
    "lookup_entry_type",
    "lookup_recurs",
]
