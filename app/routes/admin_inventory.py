import logging

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.database import get_session
from app.dependencies.admin import require_admin
from app.models.user import User
from app.schemas.admin_schemas import StockAdjustRequest
from app.services.inventory_service import adjust_stock, list_inventory_logs

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/products/{product_id}/adjust-stock")
def adjust_product_stock(
    product_id: str,
    data: StockAdjustRequest,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    new_stock = adjust_stock(
        session,
        product_id=product_id,
        change=data.change,
        reason=data.reason,
        actor_id=admin.id,
        variant_id=data.variant_id,
    )
    logger.info(f"Stock for product {product_id} adjusted by {data.change} (admin {admin.id})")
    return {"success": True, "stock": new_stock}


@router.get("/products/{product_id}/inventory-logs")
def inventory_logs(
    product_id: str,
    limit: int = Query(100, ge=1, le=500),
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    logs = list_inventory_logs(session, product_id, limit=limit)
    return {
        "logs": [
            {
                "id": log.id,
                "variant_id": log.variant_id,
                "change": log.change,
                "reason": log.reason,
                "note": log.note,
                "order_id": log.order_id,
                "actor_id": log.actor_id,
                "created_at": log.created_at,
            }
            for log in logs
        ]
    }
