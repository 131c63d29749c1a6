"""Resolver interfaces for in-house person and input ids.

The normalizer never calls these; the batch pipeline does, before handing the
resolved ids to :func:`transaction_ingest.normalizer.normalize`. Real
deployments back them with their own identity services. The mapping-based
implementations here cover fixtures, tests, and the CLI.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Protocol, runtime_checkable

from .models import ForeignId


@runtime_checkable
class PersonResolver(Protocol):
    def resolve_person(self, remote_person_id: str) -> ForeignId | None:
        """Return the in-house ``person_id`` or ``None`` when unknown."""
        ...


@runtime_checkable
class InputResolver(Protocol):
    def resolve_input(
        self,
        *,
        remote_page_name: str | None,
        remote_input_id: str | None,
    ) -> ForeignId | None:
        """Return the in-house ``input_id`` or ``None`` when unknown."""
        ...


def _frozen(mapping: Mapping[str, ForeignId] | None) -> Mapping[str, ForeignId]:
    return MappingProxyType({str(k).strip(): v for k, v in (mapping or {}).items()})


@dataclass(frozen=True, slots=True)
class MappingPersonResolver:
    """Look up ``remote_person_id`` in a fixed mapping."""

    people: Mapping[str, ForeignId] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "people", _frozen(self.people))

    def resolve_person(self, remote_person_id: str) -> ForeignId | None:
        return self.people.get(remote_person_id.strip())


@dataclass(frozen=True, slots=True)
class MappingInputResolver:
    """Look up an input by ``remote_input_id`` first, then ``remote_page_name``."""

    by_input_id: Mapping[str, ForeignId] = field(default_factory=dict)
    by_page_name: Mapping[str, ForeignId] = field(default_factory=dict)
    default: ForeignId | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "by_input_id", _frozen(self.by_input_id))
        object.__setattr__(self, "by_page_name", _frozen(self.by_page_name))

    def resolve_input(
        self,
        *,
        remote_page_name: str | None,
        remote_input_id: str | None,
    ) -> ForeignId | None:
        if remote_input_id:
            hit = self.by_input_id.get(remote_input_id.strip())
            if hit is not None:
                return hit
        if remote_page_name:
            hit = self.by_page_name.get(remote_page_name.strip())
            if hit is not None:
                return hit
        return self.default


@dataclass(frozen=True, slots=True)
class StaticInputResolver:
    """Resolve every row to the same ``input_id`` (single-source batches)."""

    input_id: ForeignId

    def resolve_input(
        self,
        *,
        remote_page_name: str | None,
        remote_input_id: str | None,
    ) -> ForeignId | None:
        return self.input_id


__all__ = [
    "InputResolver",
    "MappingInputResolver",
    "MappingPersonResolver",
    "PersonResolver",
    "StaticInputResolver",
]
