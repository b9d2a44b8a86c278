# backend/routes/orders.py
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request, Query, status
from sqlalchemy.orm import Session, joinedload
import logging

from database import get_db
from utils.tokenJWT import get_current_user
from utils.audit import write_log
from utils.roles import is_admin
from utils.order_processing import OrderProcessingError, process_order, validate_order_items
from models.users import User
from models.order import Order, ShippingAddress
from schemas.order import (
    OrderOut, OrdersPage, ProcessOrderRequest, ProcessOrderResponse,
    OrderValidationResult, ShippingAddressCreate, ShippingAddressOut,
)

router = APIRouter(tags=["Orders"])
logger = logging.getLogger(__name__)


# Map Order model to OrderOut schema
def _order_to_out(order: Order) -> OrderOut:
    return OrderOut(
        id=order.id,
        product_id=order.product_id,
        product_name=order.product.name if order.product else None,
        quantity=order.quantity,
        total_price=round(order.total_price, 2),
        customer_name=order.customer_name,
        user_id=order.user_id,
        status=order.status,
        created_at=order.created_at,
    )


def _get_own_order(db: Session, order_id: int, user: User) -> Order:
    order = db.query(Order).options(joinedload(Order.product)).filter(Order.id == order_id).first()
    if not order or (order.user_id != user.id and not is_admin(user)):
        raise HTTPException(status_code=404, detail="Order not found or forbidden")
    return order


# Checkout: validate the cart snapshot and commit it as orders, all or nothing
@router.post("/process-order", response_model=ProcessOrderResponse)
def process_order_endpoint(
    payload: ProcessOrderRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if payload.user_id and payload.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="user_id does not match the signed-in user")

    try:
        orders = process_order(db, payload.items, payload.customer_name, payload.user_id)
    except OrderProcessingError as e:
        logger.warning("Checkout rejected for user %s: %s (%s)", current_user.id, e.message, e.kind)
        write_log(
            db, user_id=current_user.id, action="ORDER_PROCESS", resource="orders", status="FAIL",
            request=request, meta={"kind": e.kind, "error": e.message, "product_id": e.product_id},
        )
        raise

    write_log(
        db, user_id=current_user.id, action="ORDER_PROCESS", resource="orders", status="SUCCESS",
        request=request, meta={"order_ids": [o.id for o in orders], "items": len(payload.items)},
    )
    return ProcessOrderResponse(orders=[_order_to_out(o) for o in orders])


# Pre-flight only: report whether the cart could be checked out right now
@router.post("/orders/validate", response_model=OrderValidationResult)
def validate_order_endpoint(
    payload: ProcessOrderRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        validate_order_items(db, payload.items)
    except OrderProcessingError as e:
        return OrderValidationResult(valid=False, kind=e.kind, error=e.message, product_id=e.product_id)
    return OrderValidationResult(valid=True)


# List the caller's orders, newest first
@router.get("/orders", response_model=OrdersPage)
def list_my_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    q = db.query(Order).options(joinedload(Order.product)).filter(
        Order.user_id == current_user.id
    ).order_by(Order.created_at.desc(), Order.id.desc())
    total = q.count()
    rows: List[Order] = q.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": [_order_to_out(o) for o in rows], "total": total, "page": page, "page_size": page_size}


# Get details of a specific order
@router.get("/orders/{order_id}", response_model=OrderOut)
def get_order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _order_to_out(_get_own_order(db, order_id, current_user))


# Attach the delivery address to an order; written once
@router.post("/orders/{order_id}/shipping-address", response_model=ShippingAddressOut, status_code=status.HTTP_201_CREATED)
def create_shipping_address(
    order_id: int,
    payload: ShippingAddressCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    order = _get_own_order(db, order_id, current_user)

    exists = db.query(ShippingAddress).filter(ShippingAddress.order_id == order.id).first()
    if exists:
        raise HTTPException(status_code=409, detail="Shipping address already saved for this order")

    address = ShippingAddress(order_id=order.id, user_id=order.user_id, **payload.model_dump())
    db.add(address)
    db.commit()
    db.refresh(address)

    write_log(
        db, user_id=current_user.id, action="SHIPPING_ADDRESS_CREATE", resource="orders", status="SUCCESS",
        request=request, meta={"order_id": order.id, "city": address.city},
    )
    return address
