# app/services/catalog_service.py
import math

from sqlalchemy.orm import Session

from app.data.models.category import CategoryModel
from app.data.models.product import ProductModel
from app.domain.schemas import PaginationOut
from app.repos.category_repo import CategoryRepo
from app.repos.product_repo import ProductRepo


class CatalogService:
    """Read-only product and category queries."""

    def __init__(self, db: Session):
        self.products = ProductRepo(db)
        self.categories = CategoryRepo(db)

    def list_products(
        self, page: int = 1, limit: int = 20, search: str = "", category: str = ""
    ) -> tuple[list[ProductModel], PaginationOut]:
        items, total = self.products.list_products(page, limit, search.strip(), category)
        pagination = PaginationOut(
            page=page,
            limit=limit,
            total=total,
            pages=math.ceil(total / limit) if limit else 0,
        )
        return items, pagination

    def get_product(self, product_id: str) -> ProductModel:
        product = self.products.get_product(product_id)
        if not product:
            raise ValueError("Product not found")
        return product

    def list_categories(self) -> list[CategoryModel]:
        return self.categories.list_categories()
