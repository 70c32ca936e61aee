from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.data.database import get_db
from app.domain.schemas import CategoryOut
from app.services.catalog_service import CatalogService

router = APIRouter(prefix="/categories", tags=["catalog"])


@router.get("", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    return [CategoryOut.model_validate(c) for c in CatalogService(db).list_categories()]
