import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager

from app.database import create_db_and_tables
from app.config import settings
from app.errors import StoreError, UpstreamError
from app.routes import (
    admin_inventory,
    admin_orders,
    admin_reliability,
    cart,
    checkout,
    cron,
    health,
    orders,
    payments,
)

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local
    if settings.ENV == "local":
        create_db_and_tables()
    yield

app = FastAPI(title="Vinnys Vogue Storefront API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    if isinstance(exc, UpstreamError):
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
        body = {"error": exc.public_message}
    else:
        body = {"error": exc.message}
    if exc.code:
        body["code"] = exc.code
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        loc = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"{loc}: {errors[0].get('msg')}" if loc else errors[0].get("msg", message)
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(checkout.router, prefix="/api", tags=["Checkout"])
app.include_router(payments.router, prefix="/api/payments", tags=["Payments"])
app.include_router(cron.router, prefix="/api/cron", tags=["Cron"])
app.include_router(orders.router, prefix="/api/orders", tags=["Orders"])
app.include_router(cart.router, prefix="/api/cart", tags=["Cart"])
app.include_router(admin_orders.router, prefix="/api/admin", tags=["Admin Orders"])
app.include_router(admin_inventory.router, prefix="/api/admin", tags=["Admin Inventory"])
app.include_router(admin_reliability.router, prefix="/api/admin", tags=["Admin Reliability"])
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get("/")
def root():
    return {
        "checkout": ["/api/checkout"],
        "payments": [
            "/api/payments/create", "/api/payments/verify", "/api/payments/webhook"
        ],
        "orders": [
            "/api/orders", "/api/orders/{order_id}", "/api/orders/{order_id}/cancel"
        ],
        "cart": ["/api/cart", "/api/cart/items", "/api/cart/items/{item_id}"],
        "cron": ["/api/cron/reconcile-payments"],
        "health": ["/health/check"],
    }
