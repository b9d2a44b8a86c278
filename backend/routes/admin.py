# backend/routes/admin.py
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from typing import List, Optional, Literal
from sqlalchemy.orm import Session, joinedload
from pydantic import BaseModel

from database import get_db
from models.users import User
from models.order import Order
from utils.tokenJWT import admin_required
from utils.audit import write_log
from utils.roles import grant_role, revoke_role, user_to_out
from schemas.order import AdminOrderOut, AdminOrdersPage, OrderStatusPatch, ShippingAddressOut
from schemas.user import RoleUpdate, UserResponse

router = APIRouter(prefix="/admin", tags=["Admin"])


# Schema for paginated user list response
class PaginatedUsersResponse(BaseModel):
    items: List[UserResponse]
    total: int
    page: int
    page_size: int


def _admin_order_out(order: Order) -> AdminOrderOut:
    shipping = order.shipping_address
    return AdminOrderOut(
        id=order.id,
        product_id=order.product_id,
        product_name=order.product.name if order.product else None,
        quantity=order.quantity,
        total_price=round(order.total_price, 2),
        customer_name=order.customer_name,
        user_id=order.user_id,
        status=order.status,
        created_at=order.created_at,
        shipping_address=ShippingAddressOut.model_validate(shipping) if shipping else None,
    )


# All orders with product and delivery details (Admin only)
@router.get("/orders", response_model=AdminOrdersPage)
def list_orders(
    status_filter: Optional[Literal["pending", "processing", "completed", "cancelled"]] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    query = db.query(Order).options(
        joinedload(Order.product), joinedload(Order.shipping_address)
    )
    if status_filter:
        query = query.filter(Order.status == status_filter)
    query = query.order_by(Order.created_at.desc(), Order.id.desc())

    total = query.count()
    rows = query.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": [_admin_order_out(o) for o in rows], "total": total, "page": page, "page_size": page_size}


# Manually update order status (Admin only)
@router.patch("/orders/{order_id}/status", response_model=AdminOrderOut)
def update_order_status(
    order_id: int,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    old_status, new_status = order.status, payload.status
    if old_status == "cancelled" and new_status != "cancelled":
        raise HTTPException(status_code=400, detail=f"Cannot change status from {old_status}")

    order.status = new_status
    db.commit()
    write_log(db, user_id=current_user.id, action="ORDER_STATUS_CHANGE", resource="orders", status="SUCCESS",
        request=request, meta={"order_id": order.id, "old": old_status, "new": new_status})

    db.refresh(order)
    return _admin_order_out(order)


# List users with their roles (Admin only)
@router.get("/users", response_model=PaginatedUsersResponse)
def get_all_users(
    q: Optional[str] = Query(None, description="Search by e-mail"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    query = db.query(User)
    if q:
        query = query.filter(User.email.ilike(f"%{q.lower()}%"))
    query = query.order_by(User.email.asc())

    total = query.count()
    users = query.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": [user_to_out(u) for u in users], "total": total, "page": page, "page_size": page_size}


# Grant a role to an existing user (Admin only)
@router.post("/roles", response_model=UserResponse)
def add_role(
    payload: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    grant_role(db, user, payload.role)
    write_log(db, user_id=current_user.id, action="ROLE_GRANT", resource="users", status="SUCCESS",
        request=request, meta={"user_id": user.id, "role": payload.role})
    return user_to_out(user)


# Revoke a role (Admin only)
@router.delete("/roles/{user_id}/{role}", response_model=UserResponse)
def remove_role(
    user_id: str,
    role: Literal["admin", "user"],
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_required),
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    # Prevent locking yourself out
    if user.id == current_user.id and role == "admin":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot revoke your own admin role")

    if not revoke_role(db, user, role):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not assigned")

    write_log(db, user_id=current_user.id, action="ROLE_REVOKE", resource="users", status="SUCCESS",
        request=request, meta={"user_id": user.id, "role": role})
    return user_to_out(user)
