"""
Admin Console API

Every route here requires the X-Admin-Token capability check.

Endpoints:
    - GET    /api/admin/orders                    Recent orders (optional status filter)
    - GET    /api/admin/orders/active             Orders not yet completed/cancelled
    - POST   /api/admin/orders/{id}/actions/{a}   accept | reject | start_preparing | mark_ready | complete
    - PATCH  /api/admin/orders/{id}/status        Direct status write (graph-checked)
    - CRUD   /api/admin/categories, /menu-items, /deals, /reviews
    - GET/PUT /api/admin/hours                    Weekly opening hours
    - GET/PUT /api/admin/settings                 Business settings
"""

import uuid
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query

from storefront.core.config import get_settings
from storefront.core.errors import NotFoundError
from storefront.dependencies import get_store, require_admin
from storefront.models import Order, OrderStatus
from storefront.schemas import (
    AdminOrderResponse,
    BusinessSettingsInput,
    BusinessSettingsResponse,
    DealCreate,
    DealResponse,
    DealUpdate,
    MenuCategoryCreate,
    MenuCategoryResponse,
    MenuCategoryUpdate,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    OpeningHoursResponse,
    OrderListResponse,
    ReviewCreate,
    ReviewResponse,
    ReviewUpdate,
    StatusUpdateRequest,
    WeeklyHoursUpdate,
)
from storefront.services.admin import (
    BusinessSettingsManager,
    CrudManager,
    DayHours,
    DealManager,
    HoursManager,
    MenuCategoryManager,
    MenuItemManager,
    ReviewManager,
)
from storefront.services.admin_feed import to_admin_order
from storefront.services.orders import ACTIVE_STATUSES, OrderStatusService
from storefront.store import DataStore

settings = get_settings()

router = APIRouter(prefix="/api/admin", dependencies=[Depends(require_admin)])


# =============================================================================
# ORDERS
# =============================================================================

@router.get("/orders", response_model=OrderListResponse, tags=["Admin: Orders"])
async def list_orders(
    status: Optional[OrderStatus] = Query(None),
    limit: int = Query(settings.order_list_limit, ge=1, le=200),
    store: DataStore = Depends(get_store),
) -> OrderListResponse:
    """Most recent orders first, each with the actions it currently offers."""
    filters = {"status": status} if status else {}
    orders = await store.fetch_all(
        Order, filters=filters, order_by="created_at", descending=True, limit=limit
    )
    return OrderListResponse(
        total=len(orders),
        orders=[to_admin_order(o) for o in orders],
    )


@router.get("/orders/active", response_model=OrderListResponse, tags=["Admin: Orders"])
async def list_active_orders(store: DataStore = Depends(get_store)) -> OrderListResponse:
    orders = await store.fetch_all(
        Order, order_by="created_at", descending=True, limit=settings.order_list_limit
    )
    active = [to_admin_order(o) for o in orders if o.status in ACTIVE_STATUSES]
    return OrderListResponse(total=len(active), orders=active)


@router.post(
    "/orders/{order_id}/actions/{action}",
    response_model=AdminOrderResponse,
    tags=["Admin: Orders"],
)
async def run_order_action(
    order_id: uuid.UUID,
    action: str,
    store: DataStore = Depends(get_store),
) -> AdminOrderResponse:
    order = await OrderStatusService(store).apply_action(order_id, action)
    return to_admin_order(order)


@router.patch(
    "/orders/{order_id}/status",
    response_model=AdminOrderResponse,
    tags=["Admin: Orders"],
)
async def update_order_status(
    order_id: uuid.UUID,
    payload: StatusUpdateRequest,
    store: DataStore = Depends(get_store),
) -> AdminOrderResponse:
    order = await OrderStatusService(store).set_status(order_id, payload.status)
    return to_admin_order(order)


# =============================================================================
# SINGLE-TABLE MANAGERS
# =============================================================================

def register_crud_routes(
    path: str,
    manager_cls: type[CrudManager],
    create_schema: type,
    update_schema: type,
    response_schema: type,
    tag: str,
) -> None:
    """list / create / update / delete (+ toggle) routes for one manager."""

    @router.get(path, response_model=List[response_schema], tags=[tag])
    async def list_records(store: DataStore = Depends(get_store)) -> list[Any]:
        return await manager_cls(store).list()

    @router.post(path, response_model=response_schema, status_code=201, tags=[tag])
    async def create_record(
        payload: create_schema,
        store: DataStore = Depends(get_store),
    ) -> Any:
        return await manager_cls(store).create(payload.model_dump())

    @router.patch(path + "/{record_id}", response_model=response_schema, tags=[tag])
    async def update_record(
        record_id: uuid.UUID,
        payload: update_schema,
        store: DataStore = Depends(get_store),
    ) -> Any:
        return await manager_cls(store).update(record_id, payload.model_dump(exclude_unset=True))

    @router.delete(path + "/{record_id}", status_code=204, tags=[tag])
    async def delete_record(
        record_id: uuid.UUID,
        store: DataStore = Depends(get_store),
    ) -> None:
        await manager_cls(store).delete(record_id)

    if manager_cls.toggle_field:
        @router.post(path + "/{record_id}/toggle", response_model=response_schema, tags=[tag])
        async def toggle_record(
            record_id: uuid.UUID,
            store: DataStore = Depends(get_store),
        ) -> Any:
            return await manager_cls(store).toggle(record_id)


register_crud_routes(
    "/categories", MenuCategoryManager,
    MenuCategoryCreate, MenuCategoryUpdate, MenuCategoryResponse, "Admin: Menu",
)
register_crud_routes(
    "/menu-items", MenuItemManager,
    MenuItemCreate, MenuItemUpdate, MenuItemResponse, "Admin: Menu",
)
register_crud_routes(
    "/deals", DealManager,
    DealCreate, DealUpdate, DealResponse, "Admin: Deals",
)
register_crud_routes(
    "/reviews", ReviewManager,
    ReviewCreate, ReviewUpdate, ReviewResponse, "Admin: Reviews",
)


# =============================================================================
# OPENING HOURS
# =============================================================================

@router.get("/hours", response_model=List[OpeningHoursResponse], tags=["Admin: Hours"])
async def list_hours(store: DataStore = Depends(get_store)) -> list[Any]:
    return await HoursManager(store).list()


@router.put("/hours", response_model=List[OpeningHoursResponse], tags=["Admin: Hours"])
async def save_hours(
    payload: WeeklyHoursUpdate,
    store: DataStore = Depends(get_store),
) -> list[Any]:
    changes = [DayHours(**day.model_dump()) for day in payload.days]
    return await HoursManager(store).save_week(changes)


# =============================================================================
# BUSINESS SETTINGS
# =============================================================================

@router.get("/settings", response_model=BusinessSettingsResponse, tags=["Admin: Settings"])
async def get_business_settings(store: DataStore = Depends(get_store)) -> Any:
    current = await BusinessSettingsManager(store).get()
    if current is None:
        raise NotFoundError("Business settings have not been saved yet")
    return current


@router.put("/settings", response_model=BusinessSettingsResponse, tags=["Admin: Settings"])
async def save_business_settings(
    payload: BusinessSettingsInput,
    store: DataStore = Depends(get_store),
) -> Any:
    return await BusinessSettingsManager(store).save(payload.model_dump())
