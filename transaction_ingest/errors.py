"""Error types raised by ``transaction_ingest``."""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import ValidationError as PydanticValidationError


class ValidationError(ValueError):
    """A mapped row failed validation.

    ``field`` names the first missing or invalid field. The row can be fixed
    and resubmitted; nothing was derived or returned for it.
    """

    def __init__(self, field: str, detail: str | None = None) -> None:
        self.field = field
        self.detail = detail
        msg = f"invalid {field}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)

    def __reduce__(self):
        return (type(self), (self.field, self.detail))

    @classmethod
    def from_pydantic(
        cls, exc: PydanticValidationError, *, aliases: Mapping[str, str] | None = None
    ) -> ValidationError:
        """Report the first error of a pydantic model by its top-level field."""

        err = exc.errors()[0]
        loc = err.get("loc") or ()
        field = str(loc[0]) if loc else "input"
        if aliases:
            field = aliases.get(field, field)
        return cls(field, err.get("msg"))


__all__ = ["ValidationError"]
