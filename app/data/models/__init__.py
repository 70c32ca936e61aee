#all models imported here so SQLAlchemy registers them in Base.metadata

from app.data.models.category import CategoryModel
from app.data.models.product import ProductModel
from app.data.models.order import OrderModel, OrderLineItemModel, OrderStatus

__all__ = ["CategoryModel", "ProductModel", "OrderModel", "OrderLineItemModel", "OrderStatus"]
