"""Data models for ``transaction_ingest``.

``TransactionInput`` is what a vendor mapper hands over: a flat row whose
required fields are checked by the normalizer (in a fixed order) rather than by
the model, so ``ts`` and ``amount`` are accepted in any raw form here.
``TransactionRecord`` is the normalizer's output: fully typed, frozen, and ready
for a persistence layer.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any, TypeAlias
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator

# A raw mapped row before validation.
RawRow: TypeAlias = Mapping[str, Any]

# In-house ids are opaque: strings, integers or UUIDs.
ForeignId = str | int | UUID


class _TransactionFields(BaseModel):
    """Optional fields shared by the input and output shapes."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    refund_amount: Decimal | None = None

    remote_transaction_id: str | None = None
    remote_page_name: str | None = None
    remote_input_id: str | None = None
    remote_recurring_id: str | None = None
    remote_entry_uuid: str | None = None

    recurs: str | None = None
    recurring_number: PositiveInt | None = None

    given_name: str | None = None
    family_name: str | None = None
    email: str | None = None

    source_code_id: int | None = None
    override_source_code_id: int | None = None
    final_source_code_id: int | None = None

    recommended_message_id: UUID | None = None
    override_message_id: UUID | None = None
    final_message_id: UUID | None = None

    extra: dict[str, Any] | None = None

    @field_validator(
        "remote_transaction_id",
        "remote_page_name",
        "remote_input_id",
        "remote_recurring_id",
        "remote_entry_uuid",
        "recurs",
        "given_name",
        "family_name",
        "email",
    )
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v or None


class TransactionInput(_TransactionFields):
    """A mapped third-party record awaiting normalization.

    ``ts``, ``amount``, ``remote_person_id`` and the entry-type pair are left
    loosely typed; :func:`transaction_ingest.normalizer.normalize` validates
    them in order and reports the first failure by field name. Caller overrides
    for ``recurs_id``, ``entry_type_id``, ``id``, ``person_id`` and ``input_id``
    are honored when present.
    """

    ts: Any = None
    amount: Any = None
    remote_person_id: Any = None
    entry_type: Any = None
    entry_type_id: int | None = None
    recurs_id: int | None = Field(default=None, ge=0, le=6)
    id: UUID | None = None
    person_id: ForeignId | None = None
    input_id: ForeignId | None = None


class ResolvedIds(BaseModel):
    """In-house ids produced by the person and input resolvers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    person_id: ForeignId | None = None
    input_id: ForeignId | None = None


class TransactionRecord(_TransactionFields):
    """A normalized transaction, ready for persistence.

    ``ts`` is always timezone-aware UTC; ``recurs_id`` and ``entry_type_id``
    are always set.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    id: UUID
    ts: datetime
    amount: Decimal
    remote_person_id: str
    entry_type: str | None = None
    entry_type_id: int = Field(ge=10, le=15)
    recurs_id: int = Field(ge=0, le=6)
    person_id: ForeignId | None = None
    input_id: ForeignId | None = None

    def to_row(self) -> dict[str, Any]:
        """Return a JSON-safe dict (UUIDs and decimals as strings, ISO ``ts``)."""

        return self.model_dump(mode="json")


__all__ = [
    "ForeignId",
    "RawRow",
    "ResolvedIds",
    "TransactionInput",
    "TransactionRecord",
]
