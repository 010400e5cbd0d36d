"""Ledger-facing collaborators: snapshot access, submission, approvals."""

from weighted_amm.ledger.document import snapshot_from_document, snapshot_to_document
from weighted_amm.ledger.http import (
    HttpPoolStateAccessor,
    HttpRequest,
    HttpResponse,
    RequestsTransport,
    Transport,
    TransportError,
)
from weighted_amm.ledger.interfaces import (
    LedgerSubmitter,
    PoolStateAccessor,
    Receipt,
    TokenApprover,
)
from weighted_amm.ledger.memory import InMemoryPoolStateAccessor

__all__ = [
    "PoolStateAccessor",
    "LedgerSubmitter",
    "TokenApprover",
    "Receipt",
    "InMemoryPoolStateAccessor",
    "HttpPoolStateAccessor",
    "HttpRequest",
    "HttpResponse",
    "Transport",
    "RequestsTransport",
    "TransportError",
    "snapshot_from_document",
    "snapshot_to_document",
]
