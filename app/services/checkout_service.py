import logging
from decimal import Decimal

from sqlmodel import Session, select

from app.config import settings
from app.errors import ValidationError
from app.models.cart import CartItem
from app.models.order import Order
from app.models.order_item import OrderItem
from app.schemas.checkout_schemas import ShippingDetails
from app.services.inventory_service import lock_stock_holder, reserve_stock
from app.services.order_event_service import log_order_event

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def cart_lines(session: Session, user_id: str):
    return session.exec(
        select(CartItem)
        .where(CartItem.user_id == user_id)
        # fixed lock order so two checkouts never deadlock on each other
        .order_by(CartItem.product_id, CartItem.variant_id)
    ).all()


def checkout_cart(session: Session, user_id: str, shipping: ShippingDetails) -> Order:
    """
    Turn the user's cart into a pending, unpaid order.

    Prices come from the product rows, stock is decremented and the cart is
    emptied in the same transaction. If any line cannot be fulfilled nothing
    is written.
    """
    cart_items = cart_lines(session, user_id)
    if not cart_items:
        raise ValidationError("Your cart is empty.")

    try:
        lines = []
        total = Decimal("0.00")

        for c in cart_items:
            product, variant = lock_stock_holder(session, c.product_id, c.variant_id)
            if not product or not product.is_active:
                raise ValidationError("A product in your cart is no longer available.")
            if c.variant_id and not variant:
                raise ValidationError(f"Selected option for {product.name} is no longer available.")
            if c.quantity <= 0:
                raise ValidationError("Cart quantities must be positive.")

            total += Decimal(product.price) * c.quantity
            lines.append((c, product, variant))

        order = Order(
            user_id=user_id,
            total_amount=total.quantize(TWO_PLACES),
            full_name=shipping.full_name,
            email=shipping.email,
            phone=shipping.phone,
            address_line1=shipping.address_line1,
            address_line2=shipping.address_line2,
            city=shipping.city,
            state=shipping.state,
            postal_code=shipping.pincode,
            country=shipping.country or settings.DEFAULT_COUNTRY,
        )
        session.add(order)
        session.flush()

        for c, product, variant in lines:
            session.add(
                OrderItem(
                    order_id=order.id,
                    product_id=product.id,
                    variant_id=variant.id if variant is not None else None,
                    product_name=product.name,
                    unit_price=product.price,
                    quantity=c.quantity,
                )
            )
            reserve_stock(session, product, variant, c.quantity, order.id)
            session.delete(c)

        log_order_event(
            session,
            order_id=order.id,
            event_type="order_placed",
            label="Order placed",
            created_by=user_id,
            meta={"total": str(order.total_amount), "lines": len(lines)},
        )
        session.commit()

    except Exception:
        session.rollback()
        raise

    session.refresh(order)
    logger.info(f"Order {order.id} created from cart of user {user_id} (total {order.total_amount})")
    return order
