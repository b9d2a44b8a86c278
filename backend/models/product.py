# backend/models/product.py
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, CheckConstraint, func
from database import Base

# Categories offered by the shop
PRODUCT_CATEGORIES = ("hoodie", "tee", "jacket", "pant", "skate")

# Model Product
# A single catalog entry: price, stock level, sale flags and category.
# quantity is decremented only by checkout; is_sold_out must be true whenever quantity <= 0.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    image = Column(String, nullable=False, default="")

    price = Column(Float, CheckConstraint("price >= 0"), nullable=False)

    # Stock data
    quantity = Column(Integer, CheckConstraint("quantity >= 0"), nullable=False, default=0)
    is_sold_out = Column(Boolean, nullable=False, default=False)

    # Promotion
    discount_percentage = Column(
        Integer,
        CheckConstraint("discount_percentage IS NULL OR (discount_percentage >= 0 AND discount_percentage <= 100)"),
        nullable=True,
    )
    is_on_sale = Column(Boolean, nullable=False, default=False)

    category = Column(String, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
