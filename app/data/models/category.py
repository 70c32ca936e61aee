from sqlalchemy import Column, String, Text
import uuid

from app.data.database import Base


class CategoryModel(Base):
    __tablename__ = "categories"

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
