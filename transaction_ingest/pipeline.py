"""Batch helper: resolve ids and normalize a sequence of mapped rows.

Rows are processed independently. A row that fails validation is recorded as a
:class:`RowFailure` and the batch continues; resolver errors propagate.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .identity import TRANSACTION_NAMESPACE
from .logging_setup import get_logger
from .models import RawRow, ResolvedIds, TransactionInput, TransactionRecord
from .normalizer import normalize
from .resolvers import InputResolver, PersonResolver

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RowFailure:
    """A rejected row: its 0-based position in the batch and the error."""

    index: int
    error: ValidationError

    @property
    def field(self) -> str:
        return self.error.field


@dataclass(slots=True)
class NormalizeResult:
    records: list[TransactionRecord] = field(default_factory=list)
    failures: list[RowFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def _get(row: TransactionInput | RawRow, key: str) -> Any:
    if isinstance(row, TransactionInput):
        return getattr(row, key, None)
    return row.get(key)


def _opt_id(v: Any) -> Any:
    # Malformed ids are left for the normalizer to report.
    if isinstance(v, bool) or not isinstance(v, (str, int, UUID)):
        return None
    return v


def _opt_str(v: Any) -> str | None:
    if isinstance(v, str) and v.strip():
        return v.strip()
    return None


def resolve_ids(
    row: TransactionInput | RawRow,
    *,
    person_resolver: PersonResolver | None = None,
    input_resolver: InputResolver | None = None,
) -> ResolvedIds:
    """Ask the resolvers for ``person_id``/``input_id``; unknowns stay ``None``.

    Ids the row already carries are kept and the matching resolver is skipped.
    A resolver answer that is not a valid id raises ``ValidationError`` naming
    ``person_id`` or ``input_id``.
    """

    person_id = _opt_id(_get(row, "person_id"))
    remote_person_id = _opt_str(_get(row, "remote_person_id"))
    if person_id is None and person_resolver is not None and remote_person_id is not None:
        person_id = person_resolver.resolve_person(remote_person_id)
        if person_id is None:
            logger.debug("no person_id for remote_person_id=%s", remote_person_id)

    input_id = _opt_id(_get(row, "input_id"))
    if input_id is None and input_resolver is not None:
        input_id = input_resolver.resolve_input(
            remote_page_name=_opt_str(_get(row, "remote_page_name")),
            remote_input_id=_opt_str(_get(row, "remote_input_id")),
        )
    try:
        return ResolvedIds(person_id=person_id, input_id=input_id)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


def normalize_rows(
    rows: Iterable[TransactionInput | RawRow],
    *,
    person_resolver: PersonResolver | None = None,
    input_resolver: InputResolver | None = None,
    namespace: UUID = TRANSACTION_NAMESPACE,
) -> NormalizeResult:
    """Resolve and normalize every row, collecting rejects instead of raising."""

    result = NormalizeResult()
    for idx, row in enumerate(rows):
        try:
            ids = resolve_ids(
                row, person_resolver=person_resolver, input_resolver=input_resolver
            )
            result.records.append(normalize(row, ids, namespace=namespace))
        except ValidationError as e:
            logger.info("row %d rejected: %s", idx, e)
            result.failures.append(RowFailure(index=idx, error=e))

    logger.info(
        "normalized %d rows (%d rejected)",
        len(result.records) + len(result.failures),
        len(result.failures),
    )
    return result


__all__ = ["NormalizeResult", "RowFailure", "normalize_rows", "resolve_ids"]
