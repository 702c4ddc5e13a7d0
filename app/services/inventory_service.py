import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlmodel import Session, select

from app.errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from app.models.inventory_log import InventoryLog
from app.models.order_item import OrderItem
from app.models.product import Product, ProductVariant

logger = logging.getLogger(__name__)


def lock_stock_holder(
    session: Session, product_id: str, variant_id: Optional[str] = None
) -> Tuple[Optional[Product], Optional[ProductVariant]]:
    """Load a product (and variant) with a row lock held until commit."""
    product = session.exec(
        select(Product).where(Product.id == product_id).with_for_update()
    ).first()

    variant = None
    if product and variant_id:
        variant = session.exec(
            select(ProductVariant)
            .where(ProductVariant.id == variant_id)
            .where(ProductVariant.product_id == product_id)
            .with_for_update()
        ).first()

    return product, variant


def _apply_change(
    session: Session,
    product: Product,
    variant: Optional[ProductVariant],
    change: int,
    reason: str,
    order_id: Optional[str] = None,
    actor_id: Optional[str] = None,
    note: Optional[str] = None,
):
    # stock lives on the variant when the line names one
    holder = variant if variant is not None else product
    label = f"{product.name} ({variant.label})" if variant is not None else product.name

    if holder.stock + change < 0:
        raise InsufficientStockError(label, holder.stock, -change)

    holder.stock += change
    if variant is None:
        product.updated_at = datetime.utcnow()
    session.add(holder)

    session.add(
        InventoryLog(
            product_id=product.id,
            variant_id=variant.id if variant is not None else None,
            change=change,
            reason=reason,
            order_id=order_id,
            actor_id=actor_id,
            note=note,
        )
    )
    logger.info(f"Stock {label}: {change:+d} -> {holder.stock} ({reason})")


def reserve_stock(session: Session, product, variant, quantity: int, order_id: str):
    """Decrement stock for one checkout line. Caller holds the row lock."""
    _apply_change(session, product, variant, -quantity, "checkout", order_id=order_id)


def restore_order_stock(session: Session, order_id: str, actor_id: Optional[str] = None) -> int:
    """Put back every unit an order took at checkout. Does not commit."""
    items = session.exec(
        select(OrderItem).where(OrderItem.order_id == order_id)
    ).all()

    for item in items:
        product, variant = lock_stock_holder(session, item.product_id, item.variant_id)
        if not product:
            logger.warning(f"Product {item.product_id} gone, cannot restock order {order_id}")
            continue
        if item.variant_id and not variant:
            logger.warning(f"Variant {item.variant_id} gone, cannot restock order {order_id}")
            continue
        _apply_change(
            session, product, variant, item.quantity, "cancellation",
            order_id=order_id, actor_id=actor_id,
        )

    return len(items)


def adjust_stock(
    session: Session,
    product_id: str,
    change: int,
    reason: str,
    actor_id: str,
    variant_id: Optional[str] = None,
):
    """Manual stock correction from the back office."""
    if not isinstance(change, int) or isinstance(change, bool) or change == 0:
        raise ValidationError("change must be a non-zero integer")
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("reason is required")

    product, variant = lock_stock_holder(session, product_id, variant_id)
    if not product:
        raise NotFoundError("Product")
    if variant_id and not variant:
        raise NotFoundError("Variant")

    try:
        _apply_change(
            session, product, variant, change, "admin_adjustment",
            actor_id=actor_id, note=reason,
        )
    except InsufficientStockError:
        session.rollback()
        raise ConflictError("Insufficient stock: adjustment would result in negative stock")

    session.commit()
    holder = variant if variant is not None else product
    session.refresh(holder)
    return holder.stock


def list_inventory_logs(session: Session, product_id: str, limit: int = 100):
    return session.exec(
        select(InventoryLog)
        .where(InventoryLog.product_id == product_id)
        .order_by(InventoryLog.created_at.desc())
        .limit(limit)
    ).all()
