# app/repos/product_repo.py
from typing import List, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from app.data.models.product import ProductModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: str) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def list_products(
        self,
        page: int,
        limit: int,
        search: str = "",
        category_id: str = "",
    ) -> Tuple[List[ProductModel], int]:
        query = select(ProductModel)

        if category_id:
            query = query.where(ProductModel.category_id == category_id)

        if search:
            #any word of the phrase, in name or description
            words = [w for w in search.split() if w]
            query = query.where(
                or_(
                    *[ProductModel.name.ilike(f"%{w}%") for w in words],
                    *[ProductModel.description.ilike(f"%{w}%") for w in words],
                )
            )

        total = self.db.execute(
            select(func.count()).select_from(query.subquery())
        ).scalar_one()

        order_by = ProductModel.name.asc() if search else ProductModel.created_at.desc()
        items = self.db.execute(
            query.order_by(order_by).offset((page - 1) * limit).limit(limit)
        ).scalars().unique().all()

        return list(items), total

    def reserve_stock(self, product_id: str, quantity: int) -> bool:
        """
        Conditional decrement: UPDATE ... SET stock = stock - q WHERE stock >= q.
        Returns False when another order took the stock first.
        """
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.stock >= quantity)
            .values(stock=ProductModel.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def release_stock(self, product_id: str, quantity: int) -> None:
        #compensation for reserve_stock
        self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(stock=ProductModel.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
