# app/services/order_service.py
from decimal import Decimal
from typing import List, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.data.models.order import OrderModel, OrderLineItemModel, OrderStatus
from app.data.models.product import ProductModel
from app.domain.outcomes import Created, Duplicate, NeedsReconciliation, Outcome, Rejected
from app.domain.schemas import (
    AdjustedItem,
    OrderCreate,
    OrderLineItemIn,
    ReconciliationDelta,
    RemovedItem,
)
from app.repos.order_repo import OrderRepo
from app.repos.product_repo import ProductRepo
from app.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Order domain: idempotent creation keyed by clientActionId and queries.

    Stock is reserved line by line with a conditional update; when a line
    cannot be reserved the lines already reserved are released again
    (compensation) so stock is never oversold.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepo(db)
        self.products = ProductRepo(db)

    #commands
    def create_order(self, payload: OrderCreate, user_id: str = "anonymous") -> Outcome:
        client_action_id = str(payload.client_action_id)

        existing = self.repo.get_by_client_action_id(client_action_id)
        if existing:
            logger.info(f"Order {existing.id} already exists for clientActionId {client_action_id}")
            return Duplicate(existing)

        delta, validated = self._check_lines(payload.line_items)

        if not delta.is_empty():
            logger.info(
                f"Order {client_action_id} needs reconciliation: "
                f"{len(delta.adjusted_items)} adjusted, {len(delta.removed_items)} removed"
            )
            return NeedsReconciliation(delta)

        if not validated:
            return Rejected("No valid items in order", delta.removed_items)

        reserved: List[Tuple[ProductModel, OrderLineItemIn]] = []
        for product, item in validated:
            if not self.products.reserve_stock(product.id, item.quantity):
                logger.warning(
                    f"Stock for product {product.id} taken by a concurrent order, "
                    f"releasing {len(reserved)} reserved line(s)"
                )
                self._release(reserved)
                return NeedsReconciliation(self._contended_line_delta(item))
            reserved.append((product, item))

        order = OrderModel(
            client_action_id=client_action_id,
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            shipping_address=payload.shipping_address,
            email=str(payload.email),
            total_price=sum((p.price * i.quantity for p, i in validated), Decimal("0.00")),
            line_items=[
                OrderLineItemModel(
                    position=position,
                    product_id=product.id,
                    quantity=item.quantity,
                    price=product.price,
                    name=product.name,
                    image_url=product.image_url,
                )
                for position, (product, item) in enumerate(validated)
            ],
        )

        try:
            created = self.repo.create_order(order)
        except IntegrityError:
            #lost the race against a request with the same clientActionId
            self._release(reserved)
            winner = self.repo.get_by_client_action_id(client_action_id)
            if winner is None:
                raise
            logger.info(f"Concurrent duplicate for clientActionId {client_action_id}, returning order {winner.id}")
            return Duplicate(winner)

        logger.info(f"Order {created.id} created for clientActionId {client_action_id}, total {created.total_price}")
        return Created(created)

    #queries
    def get_order(self, order_id: str) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise ValueError("Order not found")
        return order

    def list_orders(self, email: str | None = None, user_id: str | None = None) -> List[OrderModel]:
        if user_id == "anonymous":
            user_id = None
        if not user_id and not email:
            return []
        return self.repo.list_orders(email=email, user_id=user_id)

    #helpers
    def _check_lines(
        self, items: List[OrderLineItemIn]
    ) -> Tuple[ReconciliationDelta, List[Tuple[ProductModel, OrderLineItemIn]]]:
        adjusted: List[AdjustedItem] = []
        removed: List[RemovedItem] = []
        validated: List[Tuple[ProductModel, OrderLineItemIn]] = []
        new_total = Decimal("0.00")

        for item in items:
            product = self.products.get_product(item.product_id)

            if not product:
                removed.append(RemovedItem(product_id=item.product_id, reason="Product not found"))
                continue

            if product.stock < item.quantity:
                if product.stock == 0:
                    removed.append(
                        RemovedItem(product_id=item.product_id, name=product.name, reason="Out of stock")
                    )
                else:
                    adjusted.append(self._adjusted(product, item, product.stock))
                    new_total += product.price * product.stock
                continue

            if product.price != item.price:
                adjusted.append(self._adjusted(product, item, item.quantity))

            new_total += product.price * item.quantity
            validated.append((product, item))

        delta = ReconciliationDelta(
            adjusted_items=adjusted,
            removed_items=removed,
            new_total_price=new_total,
        )
        return delta, validated

    @staticmethod
    def _adjusted(product: ProductModel, item: OrderLineItemIn, quantity: int) -> AdjustedItem:
        return AdjustedItem(
            product_id=product.id,
            name=product.name,
            image_url=product.image_url,
            requested_quantity=item.quantity,
            adjusted_quantity=quantity,
            old_price=item.price,
            new_price=product.price,
            old_subtotal=item.price * item.quantity,
            new_subtotal=product.price * quantity,
        )

    def _contended_line_delta(self, item: OrderLineItemIn) -> ReconciliationDelta:
        self.db.expire_all()
        product = self.products.get_product(item.product_id)
        if not product or product.stock == 0:
            return ReconciliationDelta(
                removed_items=[
                    RemovedItem(
                        product_id=item.product_id,
                        name=product.name if product else None,
                        reason="Out of stock" if product else "Product not found",
                    )
                ]
            )
        available = min(item.quantity, product.stock)
        return ReconciliationDelta(
            adjusted_items=[self._adjusted(product, item, available)],
            new_total_price=product.price * available,
        )

    def _release(self, reserved: List[Tuple[ProductModel, OrderLineItemIn]]) -> None:
        for product, item in reserved:
            self.products.release_stock(product.id, item.quantity)
