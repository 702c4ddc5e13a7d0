from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from app.database import get_session
from app.errors import NotFoundError, ValidationError
from app.models.cart import CartItem
from app.models.product import Product, ProductVariant
from app.models.user import User
from app.schemas.cart_schemas import CartAddRequest, CartUpdateRequest
from app.utils.token import get_current_user  # JWT dependency


router = APIRouter()


def _owned_item(session: Session, item_id: str, user_id: str) -> CartItem:
    item = session.get(CartItem, item_id)
    if not item or item.user_id != user_id:
        raise NotFoundError("Cart item")
    return item


# View Cart

@router.get("")
def get_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    cart_items = session.exec(
        select(CartItem, Product)
        .join(Product, CartItem.product_id == Product.id)
        .where(CartItem.user_id == current_user.id)
        .order_by(CartItem.created_at)
    ).all()

    items_response = []
    subtotal = Decimal("0.00")

    for cart_item, product in cart_items:
        variant = session.get(ProductVariant, cart_item.variant_id) if cart_item.variant_id else None
        stock = variant.stock if variant else product.stock
        line_total = product.price * cart_item.quantity
        subtotal += line_total

        items_response.append({
            "item_id": cart_item.id,
            "product_id": product.id,
            "product_name": product.name,
            "variant_id": cart_item.variant_id,
            "variant_label": variant.label if variant else None,
            "price": product.price,
            "quantity": cart_item.quantity,
            "stock": stock,
            "in_stock": stock >= cart_item.quantity,
            "total": line_total,
        })

    return {
        "items": items_response,
        "subtotal": subtotal,
    }


# Add to Cart

@router.post("/items")
def add_to_cart(
    data: CartAddRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    product = session.get(Product, data.product_id)
    if not product or not product.is_active:
        raise NotFoundError("Product")

    if data.variant_id:
        variant = session.get(ProductVariant, data.variant_id)
        if not variant or variant.product_id != product.id:
            raise NotFoundError("Variant")
    elif product.variants:
        raise ValidationError("Please select an option for this product.")

    existing_item = session.exec(
        select(CartItem).where(
            CartItem.user_id == current_user.id,
            CartItem.product_id == product.id,
            CartItem.variant_id == data.variant_id,
        )
    ).first()

    if existing_item:
        existing_item.quantity += data.quantity
        session.add(existing_item)
        session.commit()
        session.refresh(existing_item)
        return {"message": "Cart updated", "item": existing_item}

    new_item = CartItem(
        user_id=current_user.id,
        product_id=product.id,
        variant_id=data.variant_id,
        quantity=data.quantity,
    )

    session.add(new_item)
    session.commit()
    session.refresh(new_item)

    return {"message": "Added to cart", "item": new_item}


@router.patch("/items/{item_id}")
def update_cart_item(
    item_id: str,
    data: CartUpdateRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    item = _owned_item(session, item_id, current_user.id)

    if data.quantity == 0:
        session.delete(item)
        session.commit()
        return {"message": "Item removed"}

    item.quantity = data.quantity
    session.add(item)
    session.commit()
    session.refresh(item)
    return {"message": "Cart updated", "item": item}


@router.delete("/items/{item_id}")
def remove_cart_item(
    item_id: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    item = _owned_item(session, item_id, current_user.id)
    session.delete(item)
    session.commit()
    return {"message": "Item removed"}
