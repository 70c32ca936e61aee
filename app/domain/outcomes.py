# app/domain/outcomes.py
"""
Result of an order submission, shared by the server service and the client.

Created / Duplicate carry the order (ORM object on the server, JSON dict on
the client), NeedsReconciliation carries the delta, Rejected carries the
reason and whatever lines the server dropped.
"""
from dataclasses import dataclass, field
from typing import Any, List, Union

from app.domain.schemas import ReconciliationDelta, RemovedItem


@dataclass(frozen=True)
class Created:
    order: Any


@dataclass(frozen=True)
class Duplicate:
    order: Any


@dataclass(frozen=True)
class NeedsReconciliation:
    delta: ReconciliationDelta


@dataclass(frozen=True)
class Rejected:
    reason: str
    removed_items: List[RemovedItem] = field(default_factory=list)

    def as_delta(self) -> ReconciliationDelta:
        return ReconciliationDelta(removed_items=list(self.removed_items))


Outcome = Union[Created, Duplicate, NeedsReconciliation, Rejected]
