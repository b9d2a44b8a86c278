# backend/schemas/product.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Literal
from datetime import datetime

ProductCategory = Literal["hoodie", "tee", "jacket", "pant", "skate"]


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Schema for creating a new product
class ProductCreate(ORMBase):
    name: str = Field(min_length=1)
    price: float = Field(ge=0)
    image: str = ""
    quantity: int = Field(default=0, ge=0)
    category: Optional[ProductCategory] = None
    discount_percentage: Optional[int] = Field(default=None, ge=0, le=100)
    is_on_sale: bool = False
    # Manual sold-out flag; an empty product is sold out regardless
    is_sold_out: Optional[bool] = None


# Schema for partial product updates
class ProductUpdate(ORMBase):
    """Schema for PATCH requests - all fields optional."""
    name: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)
    image: Optional[str] = None
    quantity: Optional[int] = Field(None, ge=0)
    category: Optional[ProductCategory] = None
    discount_percentage: Optional[int] = Field(None, ge=0, le=100)
    is_on_sale: Optional[bool] = None
    is_sold_out: Optional[bool] = None


# Schema for the promotion switch on the admin product table
class DiscountUpdate(BaseModel):
    discount_percentage: int = Field(ge=0, le=100)
    is_on_sale: bool


# Full product representation including the price after discount
class ProductOut(ORMBase):
    id: int
    name: str
    image: str = ""
    price: float
    effective_price: float
    quantity: int
    is_sold_out: bool
    discount_percentage: Optional[int] = None
    is_on_sale: bool = False
    category: Optional[str] = None
    created_at: Optional[datetime] = None


# Paginated response for product listings
class ProductListPage(ORMBase):
    items: List[ProductOut]
    total: int
    page: int
    page_size: int
