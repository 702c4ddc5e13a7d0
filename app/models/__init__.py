from app.models.user import User
from app.models.product import Product, ProductVariant
from app.models.cart import CartItem
from app.models.order import Order
from app.models.order_item import OrderItem
from app.models.order_event import OrderEvent
from app.models.inventory_log import InventoryLog
from app.models.system_state import SystemState
from app.models.webhook_event import WebhookEvent
from app.models.monitoring_event import MonitoringEvent

# add ALL models here
