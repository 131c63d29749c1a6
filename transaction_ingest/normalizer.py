"""Inbound normalizer: validate a mapped row and derive its computed fields.

``normalize`` is a pure function over the row, the resolved ids, and the fixed
code tables in :mod:`transaction_ingest.codes`. Required fields are checked in
a fixed order and the first failure is raised as
:class:`~transaction_ingest.errors.ValidationError` before anything is derived:

1. ``ts``: ISO-8601 string, epoch milliseconds (int, float, or digit string),
   or ``datetime``
2. ``amount``: finite int/float/Decimal or numeric string
3. ``remote_person_id``: non-empty string
4. ``entry_type_id`` if set, otherwise ``entry_type`` (reported as ``entry_type``)

Derived fields (``entry_type_id``, ``recurs_id``, ``final_source_code_id``,
``final_message_id``, ``person_id``, ``input_id``, ``id``) keep a value the
row already carries and are computed only when absent. ``person_id`` and
``input_id`` fall back to the resolved ids; ``id`` falls back to
:func:`transaction_ingest.identity.derive_id` over the effective ids.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from .codes import (
    DEFAULT_SERIES_RECURS,
    Recurs,
    is_entry_type_id,
    lookup_entry_type,
    lookup_recurs,
)
from .errors import ValidationError
from .identity import TRANSACTION_NAMESPACE, derive_id
from .logging_setup import get_logger
from .models import RawRow, ResolvedIds, TransactionInput, TransactionRecord

logger = get_logger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MILLIS_RE = re.compile(r"-?\d+")

# Fields validated ahead of the model, in order; the rest is left to pydantic.
_CHECKED_FIELDS = ("ts", "amount", "remote_person_id", "entry_type", "entry_type_id")
_DERIVED_FIELDS = (
    "recurs_id",
    "final_source_code_id",
    "final_message_id",
    "id",
    "person_id",
    "input_id",
)


# ---------------------------------------------------------------------------
# Required-field parsing
# ---------------------------------------------------------------------------


def _from_millis(ms: int | float) -> datetime:
    try:
        return _EPOCH + timedelta(milliseconds=ms)
    except OverflowError as exc:
        raise ValidationError("ts", f"out of range: {ms!r}") from exc


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    try:
        return dt.astimezone(UTC)
    except OverflowError as exc:
        raise ValidationError("ts", f"out of range: {dt.isoformat()}") from exc


def parse_ts(raw: Any) -> datetime:
    """Parse ``raw`` into an aware UTC ``datetime`` or raise ``ValidationError("ts")``.

    Naive values are taken as UTC. A string of digits (optionally signed) is
    always epoch milliseconds, never an ISO basic date: ``"20240101"`` is
    20,240,101 ms after the epoch. Dates need the extended ``YYYY-MM-DD`` form.
    """

    if raw is None:
        raise ValidationError("ts", "missing")
    if isinstance(raw, datetime):
        return _as_utc(raw)
    if isinstance(raw, bool):
        raise ValidationError("ts", f"not a timestamp: {raw!r}")
    if isinstance(raw, int):
        return _from_millis(raw)
    if isinstance(raw, float):
        if not math.isfinite(raw):
            raise ValidationError("ts", f"not finite: {raw!r}")
        return _from_millis(raw)
    if isinstance(raw, str):
        s = raw.strip()
        if not s:
            raise ValidationError("ts", "empty")
        if _MILLIS_RE.fullmatch(s):
            return _from_millis(int(s))
        try:
            dt = datetime.fromisoformat(s)
        except ValueError as exc:
            raise ValidationError("ts", f"unparseable: {raw!r}") from exc
        return _as_utc(dt)
    raise ValidationError("ts", f"unsupported type {type(raw).__name__}")


def parse_amount(raw: Any) -> Decimal:
    """Parse ``raw`` into a finite ``Decimal`` or raise ``ValidationError("amount")``."""

    if raw is None:
        raise ValidationError("amount", "missing")
    if isinstance(raw, bool):
        raise ValidationError("amount", f"not numeric: {raw!r}")
    if isinstance(raw, Decimal):
        d = raw
    elif isinstance(raw, int):
        d = Decimal(raw)
    elif isinstance(raw, float):
        # str() keeps the shortest repr instead of the binary expansion.
        d = Decimal(str(raw))
    elif isinstance(raw, str):
        s = raw.strip()
        if not s:
            raise ValidationError("amount", "empty")
        try:
            d = Decimal(s)
        except InvalidOperation as exc:
            raise ValidationError("amount", f"not numeric: {raw!r}") from exc
    else:
        raise ValidationError("amount", f"unsupported type {type(raw).__name__}")
    if not d.is_finite():
        raise ValidationError("amount", f"not finite: {raw!r}")
    return d


def parse_remote_person_id(raw: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("remote_person_id", "missing")
    return raw.strip()


def derive_entry_type_id(entry_type: Any, entry_type_id: Any) -> int:
    """Return the entry-type code from ``entry_type_id`` or ``entry_type``.

    Unknown codes and unknown strings are validation failures; neither is
    defaulted. When both are given they must name the same code, so a
    ``TRANSACTION_REFUND`` row is always 15.
    """

    if isinstance(entry_type, str) and not entry_type.strip():
        entry_type = None
    code = None
    if entry_type is not None:
        code = lookup_entry_type(entry_type)
        if code is None:
            raise ValidationError("entry_type", f"unknown entry_type {entry_type!r}")
    if entry_type_id is not None:
        if not is_entry_type_id(entry_type_id):
            raise ValidationError("entry_type", f"unknown entry_type_id {entry_type_id!r}")
        if code is not None and code != entry_type_id:
            raise ValidationError(
                "entry_type",
                f"entry_type {entry_type!r} conflicts with entry_type_id {entry_type_id!r}",
            )
        return int(entry_type_id)
    if code is None:
        raise ValidationError("entry_type", "missing")
    return code


# ---------------------------------------------------------------------------
# Derivations
# ---------------------------------------------------------------------------


def derive_if_absent(value: Any, compute: Callable[[], Any]) -> Any:
    """Return ``value`` when the caller set it, else ``compute()``."""

    if value is not None:
        return value
    return compute()


def derive_recurs_id(recurs: str | None, recurring_number: int | None) -> int:
    code = lookup_recurs(recurs)
    if code is not None:
        return code
    if recurs is not None:
        logger.debug("unrecognized recurs %r; applying series fallback", recurs)
    if recurring_number is not None and recurring_number > 1:
        return int(DEFAULT_SERIES_RECURS)
    return int(Recurs.NONE)


def _first_set(*values: Any) -> Any:
    for v in values:
        if v is not None:
            return v
    return None


# ---------------------------------------------------------------------------
# Input coercion
# ---------------------------------------------------------------------------


def _as_fields(source: TransactionInput | RawRow) -> dict[str, Any]:
    if isinstance(source, TransactionInput):
        return source.model_dump()
    if isinstance(source, Mapping):
        return dict(source)
    raise TypeError(f"expected TransactionInput or mapping, got {type(source).__name__}")


def _to_input(source: TransactionInput | RawRow) -> TransactionInput:
    if isinstance(source, TransactionInput):
        return source
    try:
        return TransactionInput.model_validate(dict(source))
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(
            exc, aliases={"entry_type_id": "entry_type"}
        ) from exc


def _to_resolved(resolved_ids: ResolvedIds | Mapping[str, Any] | None) -> ResolvedIds:
    if resolved_ids is None:
        return ResolvedIds()
    if isinstance(resolved_ids, ResolvedIds):
        return resolved_ids
    try:
        return ResolvedIds.model_validate(dict(resolved_ids))
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def normalize(
    source: TransactionInput | RawRow,
    resolved_ids: ResolvedIds | Mapping[str, Any] | None = None,
    *,
    namespace: UUID = TRANSACTION_NAMESPACE,
) -> TransactionRecord:
    """Validate ``source`` and return a fully derived :class:`TransactionRecord`.

    Parameters
    ----------
    source:
        A :class:`TransactionInput` or a raw mapping with the same keys.
    resolved_ids:
        ``person_id``/``input_id`` from the external resolvers, used when the
        row does not carry its own. They feed the composite id and are copied
        onto the record; ``None`` means unresolved.
    namespace:
        UUIDv5 namespace for composite ids. Only override it for deployments
        that must not share ids with others.

    Raises
    ------
    ValidationError
        On the first missing or invalid field, in the documented order.
    """

    fields = _as_fields(source)
    ts = parse_ts(fields.get("ts"))
    amount = parse_amount(fields.get("amount"))
    remote_person_id = parse_remote_person_id(fields.get("remote_person_id"))
    entry_type_id = derive_entry_type_id(fields.get("entry_type"), fields.get("entry_type_id"))

    inp = _to_input(source)
    ids = _to_resolved(resolved_ids)

    recurs_id = derive_if_absent(
        inp.recurs_id, lambda: derive_recurs_id(inp.recurs, inp.recurring_number)
    )
    final_source_code_id = derive_if_absent(
        inp.final_source_code_id,
        lambda: _first_set(inp.override_source_code_id, inp.source_code_id),
    )
    final_message_id = derive_if_absent(
        inp.final_message_id,
        lambda: _first_set(inp.override_message_id, inp.recommended_message_id),
    )
    person_id = derive_if_absent(inp.person_id, lambda: ids.person_id)
    input_id = derive_if_absent(inp.input_id, lambda: ids.input_id)
    record_id = derive_if_absent(
        inp.id,
        lambda: derive_id(
            remote_entry_uuid=inp.remote_entry_uuid,
            input_id=input_id,
            person_id=person_id,
            ts=ts,
            remote_transaction_id=inp.remote_transaction_id,
            namespace=namespace,
        ),
    )

    entry_type = (inp.entry_type.strip() or None) if isinstance(inp.entry_type, str) else None
    rest = inp.model_dump(exclude={*_CHECKED_FIELDS, *_DERIVED_FIELDS})
    record = TransactionRecord(
        **rest,
        id=record_id,
        ts=ts,
        amount=amount,
        remote_person_id=remote_person_id,
        entry_type=entry_type,
        entry_type_id=entry_type_id,
        recurs_id=recurs_id,
        final_source_code_id=final_source_code_id,
        final_message_id=final_message_id,
        person_id=person_id,
        input_id=input_id,
    )
    logger.debug(
        "normalized remote_person_id=%s entry_type_id=%d recurs_id=%d id=%s",
        remote_person_id,
        entry_type_id,
        recurs_id,
        record_id,
    )
    return record


__all__ = [
    "derive_entry_type_id",
    "derive_if_absent",
    "derive_recurs_id",
    "normalize",
    "parse_amount",
    "parse_remote_person_id",
    "parse_ts",
]
