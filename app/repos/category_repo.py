from sqlalchemy import select
from sqlalchemy.orm import Session

from app.data.models.category import CategoryModel


class CategoryRepo:
    def __init__(self, db: Session):
        self.db = db

    def list_categories(self) -> list[CategoryModel]:
        return list(self.db.execute(
            select(CategoryModel).order_by(CategoryModel.name.asc())
        ).scalars().all())
