# framel/services/cart_service.py
import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlmodel import Session, select

from framel.config import settings
from framel.errors import NotFound, OutOfStock
from framel.models.cart import Cart, CartItem
from framel.services.catalog_service import get_product, require_product

logger = logging.getLogger(__name__)


def get_cart(session: Session, owner_key: str) -> Optional[Cart]:
    return session.exec(select(Cart).where(Cart.owner_key == owner_key)).first()


def _get_or_create_cart(session: Session, owner_key: str) -> Cart:
    cart = get_cart(session, owner_key)
    if cart is None:
        cart = Cart(owner_key=owner_key)
        session.add(cart)
        session.flush()
    return cart


def _find_line(cart: Optional[Cart], product_id: int) -> Optional[CartItem]:
    if cart is None:
        return None
    for item in cart.items:
        if item.product_id == product_id:
            return item
    return None


def _touch(cart: Cart):
    cart.updated_at = datetime.utcnow()


def compute_totals(items: Iterable, delivery_fee: Optional[Decimal] = None) -> dict:
    """
    Pure totals over cart lines (anything with `price` and `quantity`).

    Delivery is a flat fee charged whenever there is at least one line.
    """
    fee = settings.DELIVERY_FEE if delivery_fee is None else delivery_fee

    subtotal = Decimal("0")
    item_count = 0
    for item in items:
        subtotal += Decimal(item.price) * item.quantity
        item_count += item.quantity

    delivery = Decimal(fee) if item_count > 0 else Decimal("0")

    return {
        "subtotal": subtotal,
        "delivery_fee": delivery,
        "total": subtotal + delivery,
        "item_count": item_count,
    }


def add_to_cart(session: Session, owner_key: str, product_id: int, quantity: int) -> Cart:
    if quantity < 1:
        raise ValueError("Quantity must be at least 1")

    product = require_product(session, product_id)

    cart = _get_or_create_cart(session, owner_key)
    line = _find_line(cart, product_id)

    new_quantity = quantity + (line.quantity if line else 0)
    if product.stock < new_quantity:
        raise OutOfStock(
            f"Only {product.stock} items available in stock",
            details={"product_id": product_id, "available": product.stock},
        )

    now = datetime.utcnow()
    if line:
        line.quantity = new_quantity
        line.price = product.price  # latest price
        line.updated_at = now
        session.add(line)
    else:
        cart.items.append(
            CartItem(
                product_id=product_id,
                quantity=quantity,
                price=product.price,
                added_at=now,
                updated_at=now,
            )
        )

    _touch(cart)
    session.add(cart)
    session.commit()
    session.refresh(cart)

    logger.info(f"Cart {owner_key}: product {product_id} -> qty {new_quantity}")
    return cart


def set_quantity(session: Session, owner_key: str, product_id: int, quantity: int) -> Cart:
    if quantity < 0:
        raise ValueError("Quantity cannot be negative")

    cart = get_cart(session, owner_key)
    line = _find_line(cart, product_id)
    if line is None:
        raise NotFound("Item not found in cart")

    if quantity == 0:
        cart.items.remove(line)
    else:
        product = require_product(session, product_id)
        if product.stock < quantity:
            raise OutOfStock(
                f"Only {product.stock} items available in stock",
                details={"product_id": product_id, "available": product.stock},
            )
        line.quantity = quantity
        line.price = product.price
        line.updated_at = datetime.utcnow()
        session.add(line)

    _touch(cart)
    session.add(cart)
    session.commit()
    session.refresh(cart)
    return cart


def remove_from_cart(session: Session, owner_key: str, product_id: int) -> Optional[Cart]:
    cart = get_cart(session, owner_key)
    line = _find_line(cart, product_id)

    if line is None:
        return cart

    cart.items.remove(line)
    _touch(cart)
    session.add(cart)
    session.commit()
    session.refresh(cart)
    return cart


def clear_cart(session: Session, owner_key: str, commit: bool = True):
    """Empty the cart. Pass commit=False to join the caller's transaction."""
    cart = get_cart(session, owner_key)
    if cart is None:
        return

    cart.items.clear()
    _touch(cart)
    session.add(cart)

    if commit:
        session.commit()


def merge_guest_into(session: Session, user_key: str, guest_key: str) -> Cart:
    """
    Fold a guest cart into the user's cart after login.

    Quantities are summed per product and the most recently touched line
    decides the price. The guest cart is deleted, so a repeated call finds
    nothing to merge.
    """
    guest_cart = get_cart(session, guest_key)
    if guest_cart is None:
        return _get_or_create_cart_committed(session, user_key)

    user_cart = _get_or_create_cart(session, user_key)

    for guest_line in list(guest_cart.items):
        line = _find_line(user_cart, guest_line.product_id)
        if line is None:
            user_cart.items.append(
                CartItem(
                    product_id=guest_line.product_id,
                    quantity=guest_line.quantity,
                    price=guest_line.price,
                    added_at=guest_line.added_at,
                    updated_at=guest_line.updated_at,
                )
            )
            continue

        line.quantity += guest_line.quantity
        if guest_line.updated_at >= line.updated_at:
            line.price = guest_line.price
            line.updated_at = guest_line.updated_at
        session.add(line)

    session.delete(guest_cart)
    _touch(user_cart)
    session.add(user_cart)
    session.commit()
    session.refresh(user_cart)

    logger.info(f"Merged guest cart {guest_key} into {user_key}")
    return user_cart


def _get_or_create_cart_committed(session: Session, owner_key: str) -> Cart:
    cart = _get_or_create_cart(session, owner_key)
    session.commit()
    session.refresh(cart)
    return cart


def get_cart_view(session: Session, owner_key: str) -> dict:
    """Cart lines joined with live product data, plus totals."""
    cart = get_cart(session, owner_key)
    lines = []
    priced = []

    for item in (cart.items if cart else []):
        product = get_product(session, item.product_id)
        if product is None:
            # product was removed from the catalog
            continue

        priced.append(item)
        lines.append({
            "product_id": item.product_id,
            "name": product.name,
            "image_url": product.primary_image,
            "price": item.price,
            "current_price": product.price,
            "quantity": item.quantity,
            "stock": product.stock,
            "in_stock": product.in_stock,
            "line_total": item.price * item.quantity,
        })

    return {"items": lines, "summary": compute_totals(priced)}


def validate_cart(session: Session, owner_key: str) -> List[dict]:
    """
    Check every line against the catalog.

    Issue kinds: `unavailable`, `insufficient_stock`, `price_changed`.
    """
    cart = get_cart(session, owner_key)
    issues = []

    for item in (cart.items if cart else []):
        product = get_product(session, item.product_id)

        if product is None:
            issues.append({
                "product_id": item.product_id,
                "issue": "unavailable",
                "message": "Product no longer available",
            })
            continue

        if product.stock < item.quantity:
            issues.append({
                "product_id": item.product_id,
                "issue": "insufficient_stock",
                "requested": item.quantity,
                "available": product.stock,
                "message": f"Only {product.stock} items available (you have {item.quantity} in cart)",
            })

        if product.price != item.price:
            issues.append({
                "product_id": item.product_id,
                "issue": "price_changed",
                "old_price": item.price,
                "new_price": product.price,
                "message": f"Price changed from {item.price} to {product.price}",
            })

    return issues
