# app/api/routers/orders.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.data.database import get_db
from app.domain.outcomes import Created, Duplicate, NeedsReconciliation, Rejected
from app.domain.schemas import (
    ErrorOut,
    NoValidItemsOut,
    OrderCreate,
    OrderCreatedOut,
    OrderDetailOut,
    OrderDuplicateOut,
    OrderOut,
    ReconciliationRequiredOut,
)
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


def get_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    #authentication is handled upstream, it only forwards the user id
    return x_user_id or "anonymous"


def _json(status_code: int, body: BaseModel) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True))


@router.post(
    "",
    response_model=OrderCreatedOut,
    status_code=201,
    responses={
        200: {"model": OrderDuplicateOut, "description": "Order already processed"},
        400: {"model": ReconciliationRequiredOut, "description": "Cart needs reconciliation"},
    },
)
def create_order(
    payload: OrderCreate,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """
    Idempotent order creation keyed by clientActionId.

    201 created, 200 with isDuplicate for a repeated clientActionId,
    400 with the reconciliation delta when stock or prices changed.
    """
    svc = get_service(db)
    outcome = svc.create_order(payload, user_id)

    if isinstance(outcome, Created):
        return OrderCreatedOut(order=OrderOut.model_validate(outcome.order))
    if isinstance(outcome, Duplicate):
        return _json(200, OrderDuplicateOut(order=OrderOut.model_validate(outcome.order)))
    if isinstance(outcome, NeedsReconciliation):
        return _json(400, ReconciliationRequiredOut(**outcome.delta.model_dump()))
    if isinstance(outcome, Rejected):
        return _json(400, NoValidItemsOut(error=outcome.reason, removed_items=outcome.removed_items))
    raise RuntimeError(f"Unexpected order outcome {outcome!r}")


@router.get("", response_model=List[OrderOut])
def list_orders(
    email: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None, alias="userId"),
    db: Session = Depends(get_db),
):
    """Orders of a user or an email address, newest first."""
    svc = get_service(db)
    return [OrderOut.model_validate(o) for o in svc.list_orders(email=email, user_id=user_id)]


@router.get("/{order_id}", response_model=OrderDetailOut, responses={404: {"model": ErrorOut}})
def get_order(order_id: str, db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return OrderDetailOut.model_validate(svc.get_order(order_id))
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
