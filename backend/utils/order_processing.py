# backend/utils/order_processing.py
"""
Checkout transaction: validate a batch of line items against the catalog,
then create one order row per item and decrement stock, all or nothing.

The stock decrement is a single conditional UPDATE (quantity >= requested),
so two checkouts racing for the last unit cannot both succeed even though
the pre-flight reads happen outside the write transaction.
"""
import logging
import math
from collections import OrderedDict
from typing import List, Optional, Sequence

from sqlalchemy import case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from models.order import Order
from models.product import Product
from utils.inventory import effective_price

logger = logging.getLogger(__name__)


class OrderProcessingError(Exception):
    kind = "OrderError"
    status_code = 400

    def __init__(self, message: str, product_id: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.product_id = product_id

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind, "product_id": self.product_id}


class OrderValidationError(OrderProcessingError):
    kind = "ValidationError"
    status_code = 400


class ProductNotFound(OrderProcessingError):
    kind = "NotFound"
    status_code = 404


class ProductSoldOut(OrderProcessingError):
    kind = "SoldOut"
    status_code = 409


class InsufficientStock(OrderProcessingError):
    kind = "InsufficientStock"
    status_code = 409


class OrderWriteFailure(OrderProcessingError):
    kind = "WriteFailure"
    status_code = 500


# A validated line item ready to be committed
class PlannedLine:
    def __init__(self, product: Product, quantity: int, unit_price: float):
        self.product = product
        self.product_id = product.id
        self.product_name = product.name
        self.quantity = quantity
        self.unit_price = unit_price

    @property
    def total_price(self) -> float:
        return round(self.unit_price * self.quantity, 2)


def _check_item_shape(item) -> None:
    quantity = item.quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise OrderValidationError(
            f"Quantity for product {item.product_id} must be a positive integer", item.product_id
        )
    if item.price is None or not math.isfinite(item.price) or item.price < 0:
        raise OrderValidationError(f"Price for product {item.product_id} must be a finite number >= 0", item.product_id)


def _insufficient(product: Product, requested: int) -> InsufficientStock:
    return InsufficientStock(
        f'Insufficient stock for "{product.name}". Available: {product.quantity}, Requested: {requested}',
        product.id,
    )


def _unit_price(item, product: Product, price_policy: str) -> float:
    catalog_price = effective_price(product)
    if price_policy == "catalog":
        return catalog_price
    if round(item.price, 2) != catalog_price:
        logger.warning(
            "Client price %.2f differs from catalog price %.2f for product %s",
            item.price, catalog_price, product.id,
        )
    return float(item.price)


def validate_order_items(db: Session, items: Sequence, price_policy: Optional[str] = None) -> List[PlannedLine]:
    """
    Pre-flight pass: read every referenced product and check it can be sold.

    Nothing is written, so calling this twice on an unchanged catalog gives the
    same verdict. Repeated product ids are checked against their summed quantity.
    Raises the first OrderProcessingError met, in request order.
    """
    price_policy = price_policy or settings.ORDER_PRICE_POLICY
    if not items:
        raise OrderValidationError("Items array is required and cannot be empty")

    for item in items:
        _check_item_shape(item)

    requested = OrderedDict()
    for item in items:
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity

    products = {}
    for product_id, total_qty in requested.items():
        product = db.query(Product).populate_existing().filter(Product.id == product_id).first()
        if product is None:
            raise ProductNotFound(f"Product {product_id} not found", product_id)
        if product.is_sold_out:
            raise ProductSoldOut(f'Product "{product.name}" is sold out', product_id)
        if total_qty > product.quantity:
            raise _insufficient(product, total_qty)
        products[product_id] = product

    return [
        PlannedLine(products[item.product_id], item.quantity, _unit_price(item, products[item.product_id], price_policy))
        for item in items
    ]


def _decrement_stock(db: Session, product_id: int, quantity: int) -> bool:
    # Compare-and-swap: only succeeds while enough stock is left
    remaining = Product.quantity - quantity
    updated = (
        db.query(Product)
        .filter(
            Product.id == product_id,
            Product.quantity >= quantity,
            Product.is_sold_out == False,  # noqa: E712
        )
        .update(
            {
                Product.quantity: remaining,
                Product.is_sold_out: case((remaining <= 0, True), else_=False),
            },
            synchronize_session=False,
        )
    )
    return updated == 1


def commit_order(db: Session, plan: Sequence[PlannedLine], customer_name: str, user_id: Optional[str]) -> List[Order]:
    """Write orders and stock decrements for a validated plan in one transaction."""
    created: List[Order] = []
    current_line = None
    try:
        for line in plan:
            current_line = line
            if not _decrement_stock(db, line.product_id, line.quantity):
                # Lost the row to a concurrent checkout or admin edit
                db.rollback()
                current = db.query(Product).filter(Product.id == line.product_id).first()
                if current is None:
                    raise ProductNotFound(f"Product {line.product_id} not found", line.product_id)
                if current.is_sold_out and current.quantity >= line.quantity:
                    raise ProductSoldOut(f'Product "{current.name}" is sold out', current.id)
                raise _insufficient(current, line.quantity)

            order = Order(
                product_id=line.product_id,
                quantity=line.quantity,
                total_price=line.total_price,
                customer_name=customer_name,
                user_id=user_id,
                status="pending",
            )
            db.add(order)
            db.flush()
            created.append(order)

        db.commit()
    except OrderProcessingError:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Order write failed, batch rolled back: %s", e)
        failed = current_line.product_id if current_line else None
        raise OrderWriteFailure(f"Failed to create order for product {failed}", failed)

    for order, line in zip(created, plan):
        db.refresh(order)
        logger.info(
            "Processed order %s for product %s: %s units",
            order.id, line.product_name, line.quantity,
        )
    return created


def process_order(
    db: Session,
    items: Sequence,
    customer_name: str,
    user_id: str,
    price_policy: Optional[str] = None,
) -> List[Order]:
    """Validate and commit a checkout batch; returns the created orders in request order."""
    if not customer_name or not customer_name.strip() or not user_id:
        raise OrderValidationError("Customer name and user ID are required")

    plan = validate_order_items(db, items, price_policy=price_policy)
    logger.info("Processing order for user %s, customer: %s, items: %d", user_id, customer_name, len(plan))
    orders = commit_order(db, plan, customer_name.strip(), user_id)
    logger.info("Order processing completed for user %s. Created %d orders.", user_id, len(orders))
    return orders
