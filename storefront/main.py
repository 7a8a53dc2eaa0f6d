"""
FastAPI Application Entry Point

Restaurant Storefront - customer-facing API plus the admin console.

Endpoints:
    - GET  /api/menu, /api/menu/categories: Menu browsing
    - GET  /api/hours, /api/availability: Opening hours and open/closed status
    - GET  /api/deals, /api/reviews, /api/settings: Storefront content
    - GET/POST/PATCH/DELETE /api/cart...: Session cart (X-Session-Id header)
    - POST /api/checkout: Place an order from the cart
    - GET  /api/orders/{id}: Order confirmation
    - /api/admin/...: Admin console (see storefront.admin)
    - WS   /ws/admin/orders: Live order list for admins
    - GET  /health: System health check
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.admin import router as admin_router
from storefront.core.config import get_settings, setup_logging
from storefront.core.errors import (
    ContactValidationError,
    HoursPersistenceError,
    ItemUnavailableError,
    NotFoundError,
    OrderLinesPersistenceError,
    StorefrontError,
)
from storefront.database import engine, get_db, init_db
from storefront.dependencies import (
    get_cache,
    get_cart,
    get_feed,
    get_notifier,
    get_store,
    is_admin_token,
)
from storefront.models import BusinessSettings, MenuItem, Order
from storefront.schemas import (
    AvailabilityResponse,
    BusinessSettingsResponse,
    CartItemAdd,
    CartQuantityUpdate,
    CartResponse,
    DealResponse,
    ErrorResponse,
    HealthResponse,
    MenuCategoryResponse,
    MenuItemResponse,
    OpeningHoursResponse,
    OrderCreateResponse,
    OrderResponse,
    ReviewResponse,
)
from storefront.services.admin import (
    BusinessSettingsManager,
    DealManager,
    HoursManager,
    MenuCategoryManager,
    MenuItemManager,
    ReviewManager,
)
from storefront.services.admin_feed import AdminOrderFeed, get_admin_feed
from storefront.services.availability import check_availability
from storefront.services.cache import QueryCache, get_query_cache
from storefront.services.cart import CartMenuItem, CartStore
from storefront.services.orders import OrderSubmissionFlow
from storefront.services.realtime import BaseChangeNotifier, get_change_notifier
from storefront.store import DataStore

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
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("✅ Database initialized")

    notifier = get_change_notifier()
    await notifier.start()
    get_query_cache().attach(notifier)
    feed = get_admin_feed()
    feed.start()
    logger.info(f"✅ Change Notifier: {notifier.provider_name}")

    missing = settings.validate_production_config()
    if missing:
        logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("✅ Application ready!")

    yield  # Application runs

    logger.info("Shutting down...")
    feed.stop()
    get_query_cache().detach(notifier)
    await notifier.stop()
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Restaurant storefront, cart, checkout and admin console API.",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(admin_router)


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
    notifier: BaseChangeNotifier = Depends(get_notifier),
) -> HealthResponse:
    """Verify the database and the change notifier are reachable."""
    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    notifier_status = "healthy" if await notifier.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, notifier_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        notifier=notifier_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# STOREFRONT CONTENT
# =============================================================================

async def cached_public_list(cache: QueryCache, manager, schema) -> list[dict[str, Any]]:
    async def load() -> list[dict[str, Any]]:
        rows = await manager.list_public()
        return [schema.model_validate(row).model_dump(mode="json") for row in rows]

    return await cache.get_or_load(manager.table, "public", load)


@app.get("/api/menu", response_model=List[MenuItemResponse], tags=["Menu"])
async def list_menu(
    store: DataStore = Depends(get_store),
    cache: QueryCache = Depends(get_cache),
) -> list[dict[str, Any]]:
    """Available menu items in display order."""
    return await cached_public_list(cache, MenuItemManager(store), MenuItemResponse)


@app.get("/api/menu/categories", response_model=List[MenuCategoryResponse], tags=["Menu"])
async def list_categories(
    store: DataStore = Depends(get_store),
    cache: QueryCache = Depends(get_cache),
) -> list[dict[str, Any]]:
    return await cached_public_list(cache, MenuCategoryManager(store), MenuCategoryResponse)


@app.get("/api/deals", response_model=List[DealResponse], tags=["Content"])
async def list_deals(
    store: DataStore = Depends(get_store),
    cache: QueryCache = Depends(get_cache),
) -> list[dict[str, Any]]:
    return await cached_public_list(cache, DealManager(store), DealResponse)


@app.get("/api/reviews", response_model=List[ReviewResponse], tags=["Content"])
async def list_reviews(
    store: DataStore = Depends(get_store),
    cache: QueryCache = Depends(get_cache),
) -> list[dict[str, Any]]:
    return await cached_public_list(cache, ReviewManager(store), ReviewResponse)


@app.get("/api/settings", response_model=BusinessSettingsResponse, tags=["Content"])
async def get_public_settings(
    store: DataStore = Depends(get_store),
    cache: QueryCache = Depends(get_cache),
) -> dict[str, Any]:
    async def load() -> Optional[dict[str, Any]]:
        current = await BusinessSettingsManager(store).get()
        if current is None:
            return None
        return BusinessSettingsResponse.model_validate(current).model_dump(mode="json")

    data = await cache.get_or_load(BusinessSettings.__tablename__, "public", load)
    if data is None:
        raise NotFoundError("Business settings have not been saved yet")
    return data


@app.get("/api/hours", response_model=List[OpeningHoursResponse], tags=["Hours"])
async def list_hours(store: DataStore = Depends(get_store)) -> list[Any]:
    return await HoursManager(store).list()


@app.get("/api/availability", response_model=AvailabilityResponse, tags=["Hours"])
async def availability(store: DataStore = Depends(get_store)) -> AvailabilityResponse:
    """Whether the restaurant is open right now, with today's hours."""
    result = check_availability(await HoursManager(store).list())
    return AvailabilityResponse(
        is_open=result.is_open,
        day_of_week=result.day_of_week,
        today_hours=(
            OpeningHoursResponse.model_validate(result.today_hours)
            if result.today_hours is not None else None
        ),
    )


# =============================================================================
# CART ENDPOINTS
# =============================================================================

@app.get("/api/cart", response_model=CartResponse, tags=["Cart"])
async def view_cart(cart: CartStore = Depends(get_cart)) -> dict[str, Any]:
    return cart.to_dict()


@app.post("/api/cart/items", response_model=CartResponse, tags=["Cart"])
async def add_to_cart(
    payload: CartItemAdd,
    cart: CartStore = Depends(get_cart),
    store: DataStore = Depends(get_store),
) -> dict[str, Any]:
    menu_item = await store.get_or_404(MenuItem, payload.menu_item_id)
    if not menu_item.is_available:
        raise ItemUnavailableError(f"{menu_item.name} is not available right now")
    cart.add_item(CartMenuItem.from_model(menu_item), payload.quantity, payload.special_requests)
    return cart.to_dict()


@app.patch("/api/cart/items/{menu_item_id}", response_model=CartResponse, tags=["Cart"])
async def update_cart_quantity(
    menu_item_id: uuid.UUID,
    payload: CartQuantityUpdate,
    cart: CartStore = Depends(get_cart),
) -> dict[str, Any]:
    cart.update_quantity(menu_item_id, payload.quantity)
    return cart.to_dict()


@app.delete("/api/cart/items/{menu_item_id}", response_model=CartResponse, tags=["Cart"])
async def remove_from_cart(
    menu_item_id: uuid.UUID,
    cart: CartStore = Depends(get_cart),
) -> dict[str, Any]:
    cart.remove_item(menu_item_id)
    return cart.to_dict()


@app.delete("/api/cart", response_model=CartResponse, tags=["Cart"])
async def clear_cart(cart: CartStore = Depends(get_cart)) -> dict[str, Any]:
    cart.clear()
    return cart.to_dict()


# =============================================================================
# CHECKOUT & ORDER CONFIRMATION
# =============================================================================

@app.post(
    "/api/checkout",
    response_model=OrderCreateResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["Orders"],
    summary="Place Order",
)
async def checkout(
    contact: dict[str, Any] = Body(...),
    cart: CartStore = Depends(get_cart),
    store: DataStore = Depends(get_store),
) -> OrderCreateResponse:
    """
    Turn the session's cart into an order.

    The body carries the contact form (customer_name, customer_phone,
    customer_email, special_instructions, pickup_time). Field errors come
    back as 422 with an "errors" map keyed by field name.
    """
    if cart.is_empty:
        raise HTTPException(status_code=400, detail="Cart is empty")

    order = await OrderSubmissionFlow(store).submit(cart, contact)

    return OrderCreateResponse(
        success=True,
        message="Order received! We will prepare it for you shortly.",
        order_id=order.id,
        reference=order.reference,
        total_amount=order.total_amount,
        status=order.status,
    )


@app.get("/api/orders/{order_id}", response_model=OrderResponse, tags=["Orders"])
async def get_order(order_id: uuid.UUID, store: DataStore = Depends(get_store)) -> Order:
    """Order confirmation lookup."""
    return await store.get_or_404(Order, order_id)


# =============================================================================
# ADMIN LIVE FEED
# =============================================================================

@app.websocket("/ws/admin/orders")
async def admin_orders_feed(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    feed: AdminOrderFeed = Depends(get_feed),
) -> None:
    """
    Push the recent order list to an admin console.

    Sends the current list on connect, then a fresh full list with
    "alert": true after every order change.
    """
    if not is_admin_token(token):
        await websocket.close(code=1008)
        return

    await websocket.accept()
    await websocket.send_json({"type": "orders", "alert": False, "orders": await feed.refresh()})
    key = feed.add_listener(websocket.send_json)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Admin feed client disconnected")
    finally:
        feed.remove_listener(key)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    """Map application errors to the standard error body."""
    content: dict[str, Any] = {
        "success": False,
        "error": exc.error,
        "detail": exc.detail,
    }
    if isinstance(exc, ContactValidationError):
        content["errors"] = exc.errors
    elif isinstance(exc, OrderLinesPersistenceError):
        content["order_id"] = str(exc.order_id)
    elif isinstance(exc, HoursPersistenceError):
        content["saved_days"] = exc.saved_days

    if exc.status_code >= 500:
        logger.error(f"{exc.error} on {request.method} {request.url.path}: {exc.detail}")

    return JSONResponse(status_code=exc.status_code, content=content)


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


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storefront.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
