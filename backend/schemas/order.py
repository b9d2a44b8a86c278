import re
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import List, Optional, Literal
from datetime import datetime

OrderStatus = Literal["pending", "processing", "completed", "cancelled"]

# Rwandan mobile numbers: 07XXXXXXXX, 2507XXXXXXXX or +2507XXXXXXXX
PHONE_RE = re.compile(r"^(\+250|250|0)?(7\d{8})$")


# One (product, quantity, price) triple of a checkout batch.
# Type errors here are rendered as {"error": ...} by the checkout handler in main.py
class OrderLineItem(BaseModel):
    product_id: int
    quantity: int
    price: float


# Request body of POST /process-order
class ProcessOrderRequest(BaseModel):
    items: List[OrderLineItem] = []
    customer_name: str = ""
    user_id: str = ""


# Output schema for a single order row
class OrderOut(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    quantity: int
    total_price: float
    customer_name: str
    user_id: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProcessOrderResponse(BaseModel):
    success: bool = True
    message: str = "Order processed successfully"
    orders: List[OrderOut]


# Verdict of the read-only pre-flight pass
class OrderValidationResult(BaseModel):
    valid: bool
    kind: Optional[str] = None
    error: Optional[str] = None
    product_id: Optional[int] = None


# Schema for paginated order lists
class OrdersPage(BaseModel):
    items: List[OrderOut]
    total: int
    page: int
    page_size: int


# Schema for updating order status (admin)
class OrderStatusPatch(BaseModel):
    status: OrderStatus


# Input schema for the delivery address written after checkout
class ShippingAddressCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    phone_number: Optional[str] = None
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    zip_code: str = Field(min_length=1)

    @field_validator("phone_number")
    @classmethod
    def normalize_phone(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        compact = re.sub(r"[\s-]", "", value)
        match = PHONE_RE.match(compact)
        if not match:
            raise ValueError("Enter a valid Rwandan phone number (e.g. 0781234567)")
        return f"+250{match.group(2)}"


class ShippingAddressOut(BaseModel):
    id: int
    order_id: int
    name: str
    email: str
    phone_number: Optional[str] = None
    address: str
    city: str
    zip_code: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Admin dashboard row: order with its delivery details
class AdminOrderOut(OrderOut):
    shipping_address: Optional[ShippingAddressOut] = None


class AdminOrdersPage(BaseModel):
    items: List[AdminOrderOut]
    total: int
    page: int
    page_size: int
