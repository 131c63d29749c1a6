"""Environment-driven settings.

Values come from the process environment. The CLI loads ``./.env`` with
python-dotenv first (without overriding variables that are already set);
library callers are expected to manage their own environment.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from uuid import UUID

from .identity import TRANSACTION_NAMESPACE
from .logging_setup import parse_level

ID_NAMESPACE_ENV = "TRANSACTION_INGEST_ID_NAMESPACE"
LOG_LEVEL_ENV = "TRANSACTION_INGEST_LOG_LEVEL"


def _env(name: str) -> str | None:
    val = os.getenv(name)
    if val is None:
        return None
    val = val.strip()
    return val or None


@dataclass(frozen=True, slots=True)
class Settings:
    id_namespace: UUID = TRANSACTION_NAMESPACE
    log_level: int = logging.INFO

    @classmethod
    def from_env(cls) -> Settings:
        """Read settings from the environment.

        An unrecognized log level falls back to INFO; an invalid namespace
        raises ``RuntimeError`` because it would silently change every id.
        """

        raw_ns = _env(ID_NAMESPACE_ENV)
        namespace = TRANSACTION_NAMESPACE
        if raw_ns is not None:
            try:
                namespace = UUID(raw_ns)
            except ValueError as exc:
                raise RuntimeError(f"{ID_NAMESPACE_ENV} is not a valid UUID: {raw_ns!r}") from exc
        return cls(id_namespace=namespace, log_level=parse_level(_env(LOG_LEVEL_ENV)))


__all__ = ["ID_NAMESPACE_ENV", "LOG_LEVEL_ENV", "Settings"]
