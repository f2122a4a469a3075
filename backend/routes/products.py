# backend/routes/products.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from database import get_db
from exceptions import InvalidInput
from models.product import Product
from services import batch_store
from utils.audit import write_log
import schemas.product as product_schemas
import schemas.batch as batch_schemas

router = APIRouter(prefix="/products", tags=["Products"])


@router.post("/", response_model=product_schemas.ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(payload: product_schemas.ProductCreate, db: Session = Depends(get_db)):
    if db.query(Product.id).filter(Product.code == payload.code).first():
        raise InvalidInput(f"Product code {payload.code} already exists", payload={"code": payload.code})

    product = Product(**payload.model_dump(), quantity_on_hand=0)
    db.add(product)
    db.commit()
    db.refresh(product)
    write_log(db, user_id=None, action="PRODUCT_CREATE", resource="products", meta={"id": product.id})
    return product


@router.get("/", response_model=List[product_schemas.ProductOut])
def list_products(
    q: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    query = db.query(Product)
    if q:
        like = f"%{q}%"
        query = query.filter((Product.name.ilike(like)) | (Product.code.ilike(like)))
    return query.order_by(Product.name.asc()).all()


@router.get("/{product_id}", response_model=product_schemas.ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return batch_store.get_product(db, product_id)


# Allocatable batches in the order a sale would consume them
@router.get("/{product_id}/batches", response_model=List[batch_schemas.BatchOut])
def product_batches(product_id: int, db: Session = Depends(get_db)):
    batch_store.get_product(db, product_id)
    return batch_store.get_active_batches_for_product(db, product_id)
