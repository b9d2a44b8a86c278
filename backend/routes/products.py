# backend/routes/products.py
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile, File, status
from sqlalchemy.orm import Session

import shutil
import uuid
from pathlib import Path

from database import get_db
from utils.tokenJWT import admin_required
from utils.audit import write_log
from utils.inventory import apply_stock_level, product_to_out
from models.users import User
from models.product import Product
from models.order import Order
import schemas.product as product_schemas

router = APIRouter(prefix="/products", tags=["Products"])

# Where uploaded product images are stored
UPLOAD_DIR = Path("static/uploads")
ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp"}


def _get_product(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


# =========================
# ADD PRODUCT
# =========================
@router.post("", response_model=product_schemas.ProductOut, status_code=status.HTTP_201_CREATED)
def add_product(
    payload: product_schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    data = payload.model_dump(exclude={"quantity", "is_sold_out"})
    product = Product(**data)
    apply_stock_level(product, quantity=payload.quantity, is_sold_out=payload.is_sold_out)

    db.add(product)
    db.commit()
    db.refresh(product)

    write_log(
        db, user_id=current_user.id, action="PRODUCT_CREATE", resource="products",
        status="SUCCESS", request=request, meta={"id": product.id, "name": product.name}
    )
    return product_to_out(product)


# =========================
# PARTIAL UPDATE (PATCH)
# =========================
@router.patch("/{product_id}", response_model=product_schemas.ProductOut)
def edit_product(
    product_id: int,
    payload: product_schemas.ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    product = _get_product(db, product_id)
    changes = payload.model_dump(exclude_unset=True)

    quantity = changes.pop("quantity", None)
    is_sold_out = changes.pop("is_sold_out", None)
    for key, value in changes.items():
        setattr(product, key, value)
    apply_stock_level(product, quantity=quantity, is_sold_out=is_sold_out)

    db.commit()
    db.refresh(product)

    write_log(
        db, user_id=current_user.id, action="PRODUCT_EDIT", resource="products",
        status="SUCCESS", request=request, meta={"product_id": product.id, "fields": sorted(payload.model_dump(exclude_unset=True))}
    )
    return product_to_out(product)


# =========================
# DISCOUNT
# =========================
@router.patch("/{product_id}/discount", response_model=product_schemas.ProductOut)
def update_discount(
    product_id: int,
    payload: product_schemas.DiscountUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    product = _get_product(db, product_id)
    product.discount_percentage = payload.discount_percentage
    product.is_on_sale = payload.is_on_sale
    db.commit()
    db.refresh(product)

    write_log(
        db, user_id=current_user.id, action="PRODUCT_DISCOUNT", resource="products",
        status="SUCCESS", request=request,
        meta={"product_id": product.id, "discount": payload.discount_percentage, "on_sale": payload.is_on_sale}
    )
    return product_to_out(product)


# =========================
# IMAGE UPLOAD
# =========================
@router.post("/{product_id}/image", response_model=product_schemas.ProductOut)
def upload_product_image(
    product_id: int,
    request: Request,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    product = _get_product(db, product_id)

    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=400, detail="Invalid file type")

    ext = (file.filename or "image").rsplit(".", 1)[-1]
    unique_filename = f"{uuid.uuid4()}.{ext}"
    UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    save_path = UPLOAD_DIR / unique_filename
    try:
        with open(save_path, "wb") as buffer:
            shutil.copyfileobj(file.file, buffer)
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"File save error: {e}")
    finally:
        file.file.close()

    old_image: Optional[str] = product.image
    product.image = f"/uploads/{unique_filename}"
    db.commit()
    db.refresh(product)

    # Drop the previous upload, never external URLs
    if old_image and old_image.startswith("/uploads/"):
        old_path = UPLOAD_DIR / old_image.rsplit("/", 1)[-1]
        if old_path.exists():
            old_path.unlink()

    write_log(
        db, user_id=current_user.id, action="PRODUCT_IMAGE", resource="products",
        status="SUCCESS", request=request, meta={"product_id": product.id, "image": product.image}
    )
    return product_to_out(product)


# =========================
# DELETE
# =========================
@router.delete("/{product_id}")
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    product = _get_product(db, product_id)
    if db.query(Order).filter(Order.product_id == product.id).first():
        raise HTTPException(status_code=409, detail="Product has orders and cannot be deleted")

    pid, pname = product.id, product.name
    db.delete(product)
    db.commit()
    write_log(
        db, user_id=current_user.id, action="PRODUCT_DELETE", resource="products",
        status="SUCCESS", request=request, meta={"id": pid, "name": pname}
    )
    return {"message": f"Product {pname} deleted"}
