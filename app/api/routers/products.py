# app/api/routers/products.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.data.database import get_db
from app.domain.schemas import ErrorOut, ProductOut, ProductPageOut
from app.services.catalog_service import CatalogService

router = APIRouter(prefix="/products", tags=["catalog"])


def get_service(db: Session):
    return CatalogService(db)


@router.get("", response_model=ProductPageOut)
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = Query(""),
    category: str = Query(""),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    products, pagination = svc.list_products(page=page, limit=limit, search=search, category=category)
    return ProductPageOut(
        products=[ProductOut.model_validate(p) for p in products],
        pagination=pagination,
    )


@router.get("/{product_id}", response_model=ProductOut, responses={404: {"model": ErrorOut}})
def get_product(product_id: str, db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return ProductOut.model_validate(svc.get_product(product_id))
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
