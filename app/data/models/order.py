from datetime import datetime, timezone
from enum import Enum
import uuid

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, CheckConstraint
from sqlalchemy.orm import relationship

from app.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    #idempotency key, unique index rejects a second insert for the same checkout
    client_action_id = Column(String(36), nullable=False, unique=True, index=True)
    user_id = Column(String, nullable=False, index=True)

    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    shipping_address = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    line_items = relationship(
        "OrderLineItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLineItemModel.position",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("total_price >= 0", name="ck_order_total_price"),
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'cancelled')",
            name="ck_order_status",
        ),
    )


class OrderLineItemModel(Base):
    __tablename__ = "order_line_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(String(32), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(String(32), ForeignKey("products.id"), nullable=False)

    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    name = Column(String, nullable=True)
    image_url = Column(String, nullable=True)

    order = relationship("OrderModel", back_populates="line_items")
    product = relationship("ProductModel", lazy="select")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_line_item_quantity"),
        CheckConstraint("price >= 0", name="ck_line_item_price"),
    )
