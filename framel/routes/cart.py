from fastapi import APIRouter, Depends, Header, HTTPException
from sqlmodel import Session

from framel.database import get_session
from framel.dependencies.identity import Identity, get_identity, guest_key, user_key
from framel.models.user import User
from framel.schemas.cart_schemas import CartAddRequest, CartUpdateRequest
from framel.services import cart_service
from framel.utils.token import get_current_user

router = APIRouter()


# View Cart

@router.get("")
def get_cart(
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_identity),
):
    return cart_service.get_cart_view(session, identity.key)


# Add to Cart

@router.post("/add")
def add_to_cart(
    data: CartAddRequest,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_identity),
):
    cart_service.add_to_cart(session, identity.key, data.product_id, data.quantity)
    return {
        "message": "Added to cart",
        **cart_service.get_cart_view(session, identity.key),
    }


# Update Quantity

@router.put("/items/{product_id}")
def update_cart_item(
    product_id: int,
    data: CartUpdateRequest,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_identity),
):
    cart_service.set_quantity(session, identity.key, product_id, data.quantity)
    return {
        "message": "Item removed" if data.quantity == 0 else "Cart updated",
        **cart_service.get_cart_view(session, identity.key),
    }


@router.delete("/items/{product_id}")
def remove_cart_item(
    product_id: int,
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_identity),
):
    cart_service.remove_from_cart(session, identity.key, product_id)
    return {
        "message": "Item removed",
        **cart_service.get_cart_view(session, identity.key),
    }


@router.delete("/clear")
def clear_cart(
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_identity),
):
    cart_service.clear_cart(session, identity.key)
    return {"message": "Cart cleared"}


@router.get("/validate")
def validate_cart(
    session: Session = Depends(get_session),
    identity: Identity = Depends(get_identity),
):
    issues = cart_service.validate_cart(session, identity.key)
    return {"valid": not issues, "issues": issues}


# Merge guest cart after login

@router.post("/merge")
def merge_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    x_guest_token: str | None = Header(default=None),
):
    if not x_guest_token or not x_guest_token.strip():
        raise HTTPException(status_code=400, detail="X-Guest-Token header required")

    owner = user_key(current_user.id)
    cart_service.merge_guest_into(session, owner, guest_key(x_guest_token.strip()))

    return {
        "message": "Cart merged",
        **cart_service.get_cart_view(session, owner),
    }
