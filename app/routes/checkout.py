import logging

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.database import get_session
from app.errors import ValidationError
from app.models.user import User
from app.schemas.checkout_schemas import CheckoutResponse, ShippingDetails
from app.services.checkout_service import checkout_cart
from app.utils.rate_limit import rate_limit
from app.utils.token import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/checkout",
    response_model=CheckoutResponse,
    dependencies=[Depends(rate_limit("checkout", 5, 60))],
)
def checkout(
    data: ShippingDetails,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    shipping = data.cleaned()
    if shipping.missing_fields():
        raise ValidationError("Missing required shipping fields.")

    order = checkout_cart(session, current_user.id, shipping)

    return {"orderId": order.id}
