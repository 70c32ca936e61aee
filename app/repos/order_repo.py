# app/repos/order_repo.py
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.data.models.order import OrderModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        try:
            self.db.commit()
        except IntegrityError:
            #session has to be usable again for the re-query
            self.db.rollback()
            raise
        self.db.refresh(order)
        return order

    def get_order(self, order_id: str) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_by_client_action_id(self, client_action_id: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.client_action_id == client_action_id)
        ).scalar_one_or_none()

    def list_orders(self, email: str | None = None, user_id: str | None = None) -> list[OrderModel]:
        query = select(OrderModel)
        if user_id:
            query = query.where(OrderModel.user_id == user_id)
        elif email:
            query = query.where(OrderModel.email == email)
        return list(self.db.execute(
            query.order_by(OrderModel.created_at.desc())
        ).scalars().all())

