# app/client/models.py
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field

from app.domain.schemas import CamelModel, Money


class ActionType(str, Enum):
    ADD = "ADD"
    REMOVE = "REMOVE"
    CHECKOUT = "CHECKOUT"


class ActionStatus(str, Enum):
    QUEUED = "queued"
    NEEDS_RECONCILIATION = "needs_reconciliation"


class CartItem(CamelModel):
    product_id: str
    quantity: int = Field(..., ge=1)
    price: Money
    name: Optional[str] = None
    image_url: Optional[str] = Field(None, alias="imageURL")

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class PendingAction(CamelModel):
    """
    User intent the server has not confirmed yet.
    For CHECKOUT the id doubles as clientActionId.
    """

    id: str
    type: ActionType
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: float
    status: ActionStatus = ActionStatus.QUEUED
    reconciliation: Optional[Dict[str, Any]] = None

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def provisional_order_id(client_action_id: str) -> str:
    return f"temp-{client_action_id}"
