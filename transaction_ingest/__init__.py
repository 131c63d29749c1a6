"""Public interface for the ``transaction_ingest`` package.

Re-exports the normalizer entry points, the record models, and the code
tables. There is no runtime logic here.
"""

from .codes import ENTRY_TYPE_IDS, RECURS_IDS, EntryType, Recurs
from .errors import ValidationError
from .identity import TRANSACTION_NAMESPACE, composite_id, derive_id
from .models import ResolvedIds, TransactionInput, TransactionRecord
from .normalizer import normalize
from .pipeline import NormalizeResult, RowFailure, normalize_rows
from .resolvers import (
    InputResolver,
    MappingInputResolver,
    MappingPersonResolver,
    PersonResolver,
    StaticInputResolver,
)

__all__ = [
    # Normalizer
    "normalize",
    "normalize_rows",
    "NormalizeResult",
    "RowFailure",
    "ValidationError",
    # Models
    "TransactionInput",
    "TransactionRecord",
    "ResolvedIds",
    # Identity
    "TRANSACTION_NAMESPACE",
    "composite_id",
    "derive_id",
    # Codes
    "EntryType",
    "Recurs",
    "ENTRY_TYPE_IDS",
    "RECURS_IDS",
    # Resolvers
    "PersonResolver",
    "InputResolver",
    "MappingPersonResolver",
    "MappingInputResolver",
    "StaticInputResolver",
]
