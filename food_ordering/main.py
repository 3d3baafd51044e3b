"""
FastAPI Application Entry Point

Food Ordering API - orders, Stripe Checkout and payment reconciliation.
Uses the mock payment service in development and Stripe otherwise.

Endpoints:
    - GET /api/order: List the caller's orders
    - POST /api/order/checkout/create-checkout-session: Start a checkout
    - POST /api/order/checkout/webhook: Stripe webhook endpoint
    - DELETE /api/order/{order_id}: Delete one of the caller's orders
    - PATCH /api/my/restaurant/order/{order_id}/status: Advance an order
    - GET /health: System health check
"""

import logging
from datetime import datetime
from typing import Optional
from contextlib import asynccontextmanager

import redis
from fastapi import BackgroundTasks, Depends, FastAPI, Header, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from food_ordering.auth import get_current_user_id
from food_ordering.core.config import get_settings, setup_logging
from food_ordering.database import get_db, init_db, engine
from food_ordering.exceptions import OrderingError
from food_ordering.schemas import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    ErrorResponse,
    HealthResponse,
    MessageResponse,
    OrderResponse,
    OrderStatusUpdate,
)
from food_ordering.services import orders as order_service
from food_ordering.services.payment import BasePaymentService, get_payment_service

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()

    payment_service = get_payment_service()
    logger.info(f"Payment Service: {payment_service.provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"Missing production config: {missing}")

    logger.info("Application ready")

    yield  # Application runs

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Restaurant ordering with Stripe Checkout and webhook reconciliation.",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
) -> HealthResponse:
    """Verify all system components are operational."""

    db_status = "healthy"
    try:
        await db.execute(select(1))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    redis_status = "healthy"
    try:
        r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
        r.ping()
        r.close()
    except redis.RedisError as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")

    payment_status = "healthy" if await payment_service.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, redis_status, payment_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        payment_service=payment_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@app.get(
    "/api/order",
    response_model=list[OrderResponse],
    tags=["Orders"],
    summary="List My Orders",
)
async def get_my_orders(
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[OrderResponse]:
    """Orders placed by the caller, newest first, each with a total."""
    return await order_service.list_user_orders(db, user_id, background_tasks)


@app.post(
    "/api/order/checkout/create-checkout-session",
    response_model=CheckoutSessionResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    tags=["Checkout"],
    summary="Create Checkout Session",
)
async def create_checkout_session(
    checkout_request: CheckoutSessionRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
) -> CheckoutSessionResponse:
    """
    Place an order and return the hosted payment page URL.

    The order starts PLACED and becomes PAID when the provider's
    webhook confirms the session.
    """
    logger.info(f"Checkout requested for restaurant {checkout_request.restaurant_id}")

    url = await order_service.create_checkout_session(
        db,
        payment_service,
        settings,
        user_id,
        checkout_request,
    )
    return CheckoutSessionResponse(url=url)


@app.post(
    "/api/order/checkout/webhook",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Checkout"],
    summary="Stripe Webhook Endpoint",
)
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
) -> Response:
    """
    Handle webhooks from Stripe.

    The signature is checked against the raw body, so the body is read
    unparsed. Configure this URL in the Stripe dashboard:
        https://your-domain.com/api/order/checkout/webhook
    """
    payload = await request.body()

    await order_service.handle_payment_webhook(db, payment_service, payload, stripe_signature)

    return Response(status_code=200)


@app.delete(
    "/api/order/{order_id}",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    tags=["Orders"],
)
async def delete_order(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Delete one of the caller's orders unless it is in progress."""
    await order_service.delete_order(db, order_id, user_id)
    return MessageResponse(message="Order deleted successfully")


@app.patch(
    "/api/my/restaurant/order/{order_id}/status",
    response_model=OrderResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    tags=["Restaurant"],
)
async def update_order_status(
    order_id: str,
    status_update: OrderStatusUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Advance an order of the caller's restaurant to its next status."""
    return await order_service.update_order_status(db, order_id, user_id, status_update.status)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(OrderingError)
async def ordering_exception_handler(request: Request, exc: OrderingError) -> JSONResponse:
    """Map domain errors to their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path}: {exc.status_code} {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


# =============================================================================
# SERVER RUNNER
# =============================================================================

def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    import uvicorn

    logger.info(f"Starting {settings.app_name} on {settings.api_host}:{settings.api_port}")

    uvicorn.run(
        "food_ordering.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level="debug" if settings.debug else "info",
        reload=settings.is_development,
        proxy_headers=settings.is_production,
    )


if __name__ == "__main__":
    run()
