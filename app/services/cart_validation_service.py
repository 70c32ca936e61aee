# app/services/cart_validation_service.py
from decimal import Decimal
from typing import List

from sqlalchemy.orm import Session

from app.domain.schemas import (
    AdjustedItem,
    CartValidateItemIn,
    CartValidationOut,
    RemovedItem,
)
from app.repos.product_repo import ProductRepo
from app.utils.settings import PRICE_TOLERANCE
from app.utils.logging import get_logger

logger = get_logger(__name__)


class CartValidationService:
    """
    Re-prices and re-stocks a client cart against current inventory.
    Read only, safe to call repeatedly and concurrently.
    """

    def __init__(self, db: Session):
        self.products = ProductRepo(db)

    def validate_cart(self, items: List[CartValidateItemIn]) -> CartValidationOut:
        adjusted: List[AdjustedItem] = []
        removed: List[RemovedItem] = []
        new_total = Decimal("0.00")

        for item in items:
            product = self.products.get_product(item.product_id)

            if not product:
                removed.append(RemovedItem(product_id=item.product_id, reason="Product not found"))
                continue

            if product.stock == 0:
                removed.append(
                    RemovedItem(product_id=item.product_id, name=product.name, reason="Out of stock")
                )
                continue

            available = min(item.quantity, product.stock)
            #no submitted price means the client has nothing to compare
            cart_price = item.price if item.price is not None else product.price
            price_changed = abs(cart_price - product.price) > PRICE_TOLERANCE

            if available != item.quantity or price_changed:
                adjusted.append(
                    AdjustedItem(
                        product_id=product.id,
                        name=product.name,
                        image_url=product.image_url,
                        requested_quantity=item.quantity,
                        adjusted_quantity=available,
                        old_price=cart_price,
                        new_price=product.price,
                        old_subtotal=cart_price * item.quantity,
                        new_subtotal=product.price * available,
                    )
                )

            new_total += product.price * available

        has_changes = bool(adjusted or removed)
        if has_changes:
            logger.info(
                f"Cart validation: {len(adjusted)} adjusted, {len(removed)} removed of {len(items)} lines"
            )

        return CartValidationOut(
            valid=not has_changes,
            has_changes=has_changes,
            adjusted_items=adjusted,
            removed_items=removed,
            new_total_price=new_total,
        )
