# app/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, PlainSerializer
from pydantic.alias_generators import to_camel


# Decimal internally, JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """Base for wire schemas: snake_case in Python, camelCase in JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =====================================================
# CART VALIDATION
# =====================================================
class CartValidateItemIn(CamelModel):
    """Cart line submitted for validation. Price is optional."""

    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    price: Optional[Money] = Field(None, ge=0)


class CartValidateIn(CamelModel):
    items: List[CartValidateItemIn]


class AdjustedItem(CamelModel):
    """Line the server corrected (quantity capped to stock and/or new price)."""

    product_id: str
    name: Optional[str] = None
    image_url: Optional[str] = Field(None, alias="imageURL")
    requested_quantity: Optional[int] = None
    adjusted_quantity: Optional[int] = None
    old_price: Optional[Money] = None
    new_price: Money
    old_subtotal: Optional[Money] = None
    new_subtotal: Optional[Money] = None


class RemovedItem(CamelModel):
    """Line that cannot be fulfilled at all."""

    product_id: str
    name: Optional[str] = None
    reason: str


class ReconciliationDelta(CamelModel):
    adjusted_items: List[AdjustedItem] = Field(default_factory=list)
    removed_items: List[RemovedItem] = Field(default_factory=list)
    new_total_price: Money = Decimal("0.00")

    def is_empty(self) -> bool:
        return not (self.adjusted_items or self.removed_items)


class CartValidationOut(ReconciliationDelta):
    valid: bool
    has_changes: bool


# =====================================================
# ORDERS
# =====================================================
class OrderLineItemIn(CamelModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    price: Money = Field(..., ge=0)
    # carried by offline clients for display, ignored by the server
    name: Optional[str] = None
    image_url: Optional[str] = Field(None, alias="imageURL")


class OrderCreate(CamelModel):
    """Body of POST /orders. client_action_id is the idempotency key."""

    client_action_id: UUID
    line_items: List[OrderLineItemIn] = Field(..., min_length=1)
    total_price: Money = Field(..., ge=0)
    shipping_address: str = Field(..., min_length=1)
    email: EmailStr


class LineItemOut(CamelModel):
    product_id: str
    quantity: int
    price: Money
    name: Optional[str] = None
    image_url: Optional[str] = Field(None, alias="imageURL")


class OrderOut(CamelModel):
    id: str
    client_action_id: str
    user_id: str
    line_items: List[LineItemOut]
    total_price: Money
    status: str
    shipping_address: str
    email: str
    created_at: datetime
    updated_at: datetime


class ProductRefOut(CamelModel):
    id: str
    name: str
    image_url: Optional[str] = Field(None, alias="imageURL")


class LineItemDetailOut(LineItemOut):
    product: Optional[ProductRefOut] = None


class OrderDetailOut(OrderOut):
    line_items: List[LineItemDetailOut]


class OrderCreatedOut(CamelModel):
    order: OrderOut
    message: str = "Order created successfully"


class OrderDuplicateOut(CamelModel):
    order: OrderOut
    message: str = "Order already processed"
    is_duplicate: bool = True


class ReconciliationRequiredOut(ReconciliationDelta):
    error: str = "Cart needs reconciliation"


class NoValidItemsOut(CamelModel):
    error: str = "No valid items in order"
    removed_items: List[RemovedItem] = Field(default_factory=list)


# =====================================================
# CATALOG
# =====================================================
class CategoryOut(CamelModel):
    id: str
    name: str
    description: Optional[str] = None


class CategoryRefOut(CamelModel):
    id: str
    name: str


class ProductOut(CamelModel):
    id: str
    name: str
    category_id: str
    category: Optional[CategoryRefOut] = None
    price: Money
    stock: int
    image_url: str = Field(..., alias="imageURL")
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class PaginationOut(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ProductPageOut(CamelModel):
    products: List[ProductOut]
    pagination: PaginationOut


# =====================================================
# ERRORS
# =====================================================
class FieldErrorOut(BaseModel):
    field: str
    message: str


class ErrorOut(BaseModel):
    error: str
    details: Optional[List[FieldErrorOut]] = None
