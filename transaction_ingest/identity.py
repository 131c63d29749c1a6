"""Deterministic transaction identity.

A record's ``id`` is either the upstream ``remote_entry_uuid`` (when it parses
as a UUID) or a UUIDv5 over a canonical JSON payload:

    uuid5(TRANSACTION_NAMESPACE, json.dumps(payload, sort_keys=True,
                                            separators=(",", ":"),
                                            ensure_ascii=False))

with ``payload = {"v": 1, "input_id": ..., "person_id": ..., "ts": <epoch ms>}``
plus ``"remote_transaction_id"`` when one is present. Ids are stringified
(``null`` when unresolved) and ``ts`` is integer milliseconds since the epoch in
UTC. Any other implementation must reproduce these bytes exactly to derive the
same ids.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any
from uuid import NAMESPACE_URL, UUID, uuid5

from .logging_setup import get_logger

logger = get_logger(__name__)

IDENTITY_VERSION = 1

TRANSACTION_NAMESPACE = uuid5(NAMESPACE_URL, "urn:transaction-ingest:transaction")


def parse_uuid(raw: Any) -> UUID | None:
    """Return ``raw`` as a UUID, or ``None`` when it is missing or malformed."""

    if isinstance(raw, UUID):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        return UUID(raw.strip())
    except ValueError:
        return None


def epoch_millis(ts: datetime) -> int:
    """Integer milliseconds since the epoch; naive values are taken as UTC."""

    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    delta = ts - datetime(1970, 1, 1, tzinfo=UTC)
    # Integer arithmetic avoids float rounding on far-future timestamps.
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def _norm_id(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    return s if s else None


def identity_payload(
    *,
    input_id: Any,
    person_id: Any,
    ts: datetime,
    remote_transaction_id: str | None = None,
) -> str:
    """Canonical JSON string hashed into the composite id."""

    payload: dict[str, Any] = {
        "v": IDENTITY_VERSION,
        "input_id": _norm_id(input_id),
        "person_id": _norm_id(person_id),
        "ts": epoch_millis(ts),
    }
    rtid = _norm_id(remote_transaction_id)
    if rtid is not None:
        payload["remote_transaction_id"] = rtid
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def composite_id(
    *,
    input_id: Any,
    person_id: Any,
    ts: datetime,
    remote_transaction_id: str | None = None,
    namespace: UUID = TRANSACTION_NAMESPACE,
) -> UUID:
    """Derive the composite UUIDv5 for a transaction."""

    name = identity_payload(
        input_id=input_id,
        person_id=person_id,
        ts=ts,
        remote_transaction_id=remote_transaction_id,
    )
    return uuid5(namespace, name)


def derive_id(
    *,
    remote_entry_uuid: Any,
    input_id: Any,
    person_id: Any,
    ts: datetime,
    remote_transaction_id: str | None = None,
    namespace: UUID = TRANSACTION_NAMESPACE,
) -> UUID:
    """Return the record id: upstream UUID when well-formed, else composite."""

    upstream = parse_uuid(remote_entry_uuid)
    if upstream is not None:
        return upstream
    if remote_entry_uuid not in (None, ""):
        logger.warning(
            "ignoring malformed remote_entry_uuid %r; deriving composite id", remote_entry_uuid
        )
    return composite_id(
        input_id=input_id,
        person_id=person_id,
        ts=ts,
        remote_transaction_id=remote_transaction_id,
        namespace=namespace,
    )


__all__ = [
    "IDENTITY_VERSION",
    "TRANSACTION_NAMESPACE",
    "composite_id",
    "derive_id",
    "epoch_millis",
    "identity_payload",
    "parse_uuid",
]
