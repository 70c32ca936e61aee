#app/api/routers/carts.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.data.database import get_db
from app.domain.schemas import CartValidateIn, CartValidationOut
from app.services.cart_validation_service import CartValidationService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session):
    return CartValidationService(db)


@router.post("/validate", response_model=CartValidationOut)
def validate_cart(payload: CartValidateIn, db: Session = Depends(get_db)):
    """
    Re-prices and re-stocks the submitted cart, returns the reconciliation delta.
    Nothing is modified.
    """
    svc = get_service(db)
    return svc.validate_cart(payload.items)
