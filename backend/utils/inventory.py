from typing import Optional
from models.product import Product
from schemas.product import ProductOut


# Price a shopper pays today: list price minus the discount while the product is on sale
def effective_price(product: Product) -> float:
    if product.is_on_sale and product.discount_percentage:
        return round(product.price * (1 - product.discount_percentage / 100.0), 2)
    return round(product.price, 2)


def apply_stock_level(product: Product, quantity: Optional[int] = None, is_sold_out: Optional[bool] = None) -> Product:
    """
    Update stock and/or the sold-out flag of a product without letting them disagree.

    Changing the quantity recomputes the flag unless one is given explicitly.
    An admin may flag an in-stock product as sold out, but an empty product
    is always sold out.
    """
    if quantity is not None:
        if quantity < 0:
            raise ValueError("quantity must be >= 0")
        product.quantity = quantity

    if is_sold_out is not None:
        flag = is_sold_out
    elif quantity is not None:
        flag = quantity <= 0
    else:
        flag = bool(product.is_sold_out)

    product.is_sold_out = flag or (product.quantity or 0) <= 0
    return product


def product_to_out(product: Product) -> ProductOut:
    return ProductOut(
        id=product.id,
        name=product.name,
        image=product.image or "",
        price=round(product.price, 2),
        effective_price=effective_price(product),
        quantity=product.quantity,
        is_sold_out=bool(product.is_sold_out),
        discount_percentage=product.discount_percentage,
        is_on_sale=bool(product.is_on_sale),
        category=product.category,
        created_at=product.created_at,
    )
