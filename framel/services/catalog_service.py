# framel/services/catalog_service.py
"""
Stock primitives over the product table.

Stock is only ever moved with single-statement conditional updates so two
checkouts racing for the same unit cannot both win. Nothing here commits;
callers own the transaction.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlmodel import Session

from framel.errors import NotFound
from framel.models.product import Product

logger = logging.getLogger(__name__)


def get_product(session: Session, product_id: int) -> Optional[Product]:
    product = session.get(Product, product_id)
    if not product or not product.is_active:
        return None
    return product


def require_product(session: Session, product_id: int) -> Product:
    product = get_product(session, product_id)
    if product is None:
        raise NotFound(f"Product {product_id} not found")
    return product


def set_stock(session: Session, product_id: int, new_value: int) -> None:
    if new_value < 0:
        raise ValueError("Stock cannot be negative")

    result = session.exec(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=new_value, updated_at=datetime.utcnow())
    )
    if result.rowcount == 0:
        raise NotFound(f"Product {product_id} not found")


def try_decrement_stock(session: Session, product_id: int, quantity: int) -> bool:
    """Decrement by `quantity` only if that much is left. False when it is not."""
    result = session.exec(
        update(Product)
        .where(Product.id == product_id)
        .where(Product.stock >= quantity)
        .values(stock=Product.stock - quantity, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    won = result.rowcount == 1

    if not won:
        logger.warning(
            f"Stock decrement refused for product {product_id} (wanted {quantity})"
        )
    return won


def increment_stock(session: Session, product_id: int, quantity: int) -> bool:
    result = session.exec(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + quantity, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.error(f"Cannot restore {quantity} units, product {product_id} is gone")
        return False
    return True
