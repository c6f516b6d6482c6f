# storefront/api/routers/catalogue.py
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.dependencies import require_admin
from storefront.data.database import get_db
from storefront.domain.schemas import (
    CategoryCreate,
    CategoryOut,
    ProductCreate,
    ProductOut,
    VariationCreate,
    VariationOut,
)
from storefront.services.catalogue_service import CatalogueService

router = APIRouter(tags=["catalogue"])


@router.post("/categories/", response_model=CategoryOut, status_code=201, dependencies=[Depends(require_admin)])
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    return CatalogueService(db).create_category(payload)


@router.post("/products/", response_model=ProductOut, status_code=201, dependencies=[Depends(require_admin)])
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    return CatalogueService(db).create_product(payload)


@router.get("/products/{product_id}", response_model=ProductOut)
def get_product(product_id: uuid.UUID, db: Session = Depends(get_db)):
    return CatalogueService(db).get_product(product_id)


@router.post(
    "/products/{product_id}/variations",
    response_model=VariationOut,
    status_code=201,
    dependencies=[Depends(require_admin)],
)
def add_variation(product_id: uuid.UUID, payload: VariationCreate, db: Session = Depends(get_db)):
    return CatalogueService(db).add_variation(product_id, payload)
