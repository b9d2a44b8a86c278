from typing import Optional, List, Literal
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from database import get_db
from models.product import Product, PRODUCT_CATEGORIES
from schemas.product import ProductOut, ProductListPage
from utils.inventory import product_to_out

router = APIRouter(
    prefix="/shop",
    tags=["Shop"]
)

# Categories offered by the shop
@router.get("/categories", response_model=List[str])
def get_categories():
    return list(PRODUCT_CATEGORIES)

# Public catalog listing
@router.get("/products", response_model=ProductListPage)
def list_products_for_shop(
    q: Optional[str] = Query(None, description="Search by name or category"),
    category: Optional[str] = Query(None, description="Filter by category"),
    on_sale: Optional[bool] = Query(None, description="Only discounted products"),
    include_sold_out: bool = Query(True),
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=100),
    sort_by: Literal["name", "price", "created_at", "id"] = "id",
    order: Literal["asc", "desc"] = "asc",
    db: Session = Depends(get_db),
):
    query = db.query(Product)

    if not include_sold_out:
        query = query.filter(Product.is_sold_out == False)  # noqa: E712

    # Apply general search filter
    if q:
        like = f"%{q}%"
        query = query.filter(or_(Product.name.ilike(like), Product.category.ilike(like)))

    if category:
        if category not in PRODUCT_CATEGORIES:
            raise HTTPException(status_code=400, detail=f"Unknown category: {category}")
        query = query.filter(Product.category == category)

    if on_sale is not None:
        query = query.filter(Product.is_on_sale == on_sale)

    allowed = {
        "name": Product.name,
        "price": Product.price,
        "created_at": Product.created_at,
        "id": Product.id,
    }
    sort_col = allowed.get(sort_by, Product.id)
    if order == "desc":
        query = query.order_by(sort_col.desc(), Product.id.desc())
    else:
        query = query.order_by(sort_col.asc(), Product.id.asc())

    total = query.count()
    items: List[Product] = query.offset((page - 1) * page_size).limit(page_size).all()

    return {"items": [product_to_out(p) for p in items], "total": total, "page": page, "page_size": page_size}

@router.get("/products/{product_id}", response_model=ProductOut)
def get_shop_product(product_id: int, db: Session = Depends(get_db)):
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product_to_out(product)
