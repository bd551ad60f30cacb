"""
FastAPI Application Entry Point

Dine-in Menu & Orders - storefront and staff backend.

Endpoints:
    - GET  /api/menu: Categories, dishes with resolved prices, settings
    - POST /api/orders: Submit a cart as an order
    - GET  /api/orders: Staff order list
    - GET  /api/orders/{id}/actions: Quick actions for an order
    - POST /api/orders/{id}/advance | /cancel | /actions/{status}
    - PUT  /api/orders/{id}/status: Operator override
    - GET  /api/dashboard-data, /api/reports/sales
    - POST /api/reports/export: Queue Excel export
    - WS   /ws/orders: Live order board and new-order alerts
    - GET  /health: System health check

Version: 1.0.0
"""

import asyncio
import sys
import logging
from datetime import datetime
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from dinein.core.config import get_settings, setup_logging
from dinein.core.exceptions import (
    DineInError,
    InvalidTransitionError,
    OrderNotFoundError,
    OrderPersistenceError,
    OrderValidationError,
    StoreError,
)
from dinein.database import init_db
from dinein.seed import seed_demo_menu
from dinein.models import OrderStatus
from dinein.schemas import (
    DashboardStats,
    ErrorResponse,
    ExportResponse,
    HealthResponse,
    MenuItemView,
    MenuResponse,
    Order,
    OrderCreate,
    OrderCreateResponse,
    OrderListResponse,
    QuickActionsResponse,
    SalesReport,
    StatusUpdate,
)
from dinein.services.cart import Cart
from dinein.services.menu import MenuCatalog
from dinein.services.notifications import WebSocketNotificationSink
from dinein.services.notifier import OrderBoard, OrderNotifier
from dinein.services.orders import OrderSubmitter, fetch_order, fetch_orders
from dinein.services.pricing import item_discount_percent, item_effective_price
from dinein.services.realtime import BaseChangeFeed, create_change_feed
from dinein.services.reports import dashboard_stats, sales_report
from dinein.services.status import OrderStatusMachine, quick_actions
from dinein.services.store import BaseDataStore, MockDataStore, SqlDataStore, create_data_store
from dinein.tasks import export_sales_report

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_store(request: Request) -> BaseDataStore:
    return request.app.state.store


def get_status_machine(store: BaseDataStore = Depends(get_store)) -> OrderStatusMachine:
    return OrderStatusMachine(store)


router = APIRouter()


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@router.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.restaurant_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "menu": "/api/menu",
        "health": "/health",
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(request: Request) -> HealthResponse:
    """Verify the data store and change feed are reachable."""
    store: BaseDataStore = request.app.state.store
    feed: BaseChangeFeed = request.app.state.feed

    store_status = "healthy" if await store.health_check() else "unhealthy"
    feed_status = "healthy" if await feed.health_check() else "unhealthy"

    overall = "operational" if store_status == feed_status == "healthy" else "degraded"

    return HealthResponse(
        status=overall,
        data_store=f"{store.provider_name}: {store_status}",
        change_feed=f"{feed.provider_name}: {feed_status}",
        timestamp=datetime.now(),
    )


# =============================================================================
# STOREFRONT ENDPOINTS
# =============================================================================

@router.get("/api/menu", response_model=MenuResponse, tags=["Storefront"])
async def get_menu(
    category_id: Optional[str] = Query(None),
    store: BaseDataStore = Depends(get_store),
) -> MenuResponse:
    """Active categories and dishes, with offer pricing resolved."""
    catalog = MenuCatalog(store)
    items = await catalog.items(category_id=category_id)

    return MenuResponse(
        settings=await catalog.settings(),
        categories=await catalog.categories(),
        items=[
            MenuItemView(
                **item.model_dump(),
                effective_price=item_effective_price(item),
                discount_percent=item_discount_percent(item),
                primary_image=item.primary_image_url,
            )
            for item in items
        ],
    )


@router.post(
    "/api/orders",
    response_model=OrderCreateResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    tags=["Storefront"],
    summary="Submit Order",
)
async def create_order(
    order_data: OrderCreate,
    store: BaseDataStore = Depends(get_store),
) -> OrderCreateResponse:
    """
    Submit a cart.

    The cart is rebuilt from the menu items as they are right now, so
    offers are priced at submission time, not when the customer added
    the dish.
    """
    logger.info(f"Order submission: table={order_data.table_number} lines={len(order_data.items)}")

    items = await MenuCatalog(store).items_by_id(line.menu_item_id for line in order_data.items)

    cart = Cart()
    for line in order_data.items:
        item = items.get(line.menu_item_id)
        if item is None or not item.is_active:
            raise OrderValidationError(f"Menu item {line.menu_item_id} is not available")
        cart.add(item)
        cart.adjust_quantity(item.id, line.quantity - 1)
        if line.notes:
            cart.set_notes(item.id, line.notes)

    order = await OrderSubmitter(store).submit(
        cart,
        table_number=order_data.table_number,
        customer_name=order_data.customer_name,
        customer_phone=order_data.customer_phone,
        notes=order_data.notes,
    )

    return OrderCreateResponse(
        success=True,
        message="Order placed successfully!",
        order_id=order.id,
        total_amount=order.total_amount,
        status=order.status,
        table_number=order.table_number,
    )


# =============================================================================
# STAFF ORDER ENDPOINTS
# =============================================================================

@router.get("/api/orders", response_model=OrderListResponse, tags=["Orders"])
async def list_orders(
    status: Optional[OrderStatus] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=500),
    store: BaseDataStore = Depends(get_store),
) -> OrderListResponse:
    """Orders newest first, optionally filtered by status."""
    orders = await fetch_orders(store, status=status, limit=limit)
    try:
        total = await store.count("orders", {"status": status.value} if status else None)
    except StoreError as e:
        raise OrderPersistenceError("Could not count orders", detail=str(e)) from e
    return OrderListResponse(total=total, orders=orders)


@router.get("/api/orders/{order_id}", response_model=Order, tags=["Orders"])
async def get_order(order_id: str, store: BaseDataStore = Depends(get_store)) -> Order:
    return await fetch_order(store, order_id)


@router.get("/api/orders/{order_id}/actions", response_model=QuickActionsResponse, tags=["Orders"])
async def get_quick_actions(
    order_id: str,
    machine: OrderStatusMachine = Depends(get_status_machine),
) -> QuickActionsResponse:
    """The one-tap transitions offered for the order's current status."""
    current = await machine.current_status(order_id)
    return QuickActionsResponse(order_id=order_id, status=current, actions=quick_actions(current))


@router.post("/api/orders/{order_id}/advance", response_model=Order, tags=["Orders"])
async def advance_order(
    order_id: str,
    store: BaseDataStore = Depends(get_store),
    machine: OrderStatusMachine = Depends(get_status_machine),
) -> Order:
    await machine.advance(order_id)
    return await fetch_order(store, order_id)


@router.post("/api/orders/{order_id}/cancel", response_model=Order, tags=["Orders"])
async def cancel_order(
    order_id: str,
    store: BaseDataStore = Depends(get_store),
    machine: OrderStatusMachine = Depends(get_status_machine),
) -> Order:
    await machine.cancel(order_id)
    return await fetch_order(store, order_id)


@router.post("/api/orders/{order_id}/actions/{target}", response_model=Order, tags=["Orders"])
async def apply_quick_action(
    order_id: str,
    target: OrderStatus,
    store: BaseDataStore = Depends(get_store),
    machine: OrderStatusMachine = Depends(get_status_machine),
) -> Order:
    await machine.apply_quick_action(order_id, target)
    return await fetch_order(store, order_id)


@router.put("/api/orders/{order_id}/status", response_model=Order, tags=["Orders"])
async def override_status(
    order_id: str,
    update: StatusUpdate,
    store: BaseDataStore = Depends(get_store),
    machine: OrderStatusMachine = Depends(get_status_machine),
) -> Order:
    """Operator override from the order detail view; any status except out of a closed order."""
    await machine.set_status(order_id, update.status)
    return await fetch_order(store, order_id)


# =============================================================================
# DASHBOARD & REPORTS
# =============================================================================

@router.get("/api/dashboard-data", response_model=DashboardStats, tags=["Dashboard"])
async def dashboard_data(store: BaseDataStore = Depends(get_store)) -> DashboardStats:
    return await dashboard_stats(store)


@router.get("/api/reports/sales", response_model=SalesReport, tags=["Dashboard"])
async def get_sales_report(store: BaseDataStore = Depends(get_store)) -> SalesReport:
    return await sales_report(store)


@router.post("/api/reports/export", response_model=ExportResponse, tags=["Dashboard"])
async def export_report(store: BaseDataStore = Depends(get_store)) -> ExportResponse:
    """Queue an Excel export of the current sales report."""
    report = await sales_report(store)
    try:
        task = export_sales_report.delay(report.model_dump(mode="json"))
    except Exception as e:
        logger.error(f"Could not queue report export: {e}")
        raise HTTPException(status_code=503, detail="Report export queue unavailable")
    return ExportResponse(queued=True, task_id=task.id)


# =============================================================================
# REALTIME STAFF FEED
# =============================================================================

@router.websocket("/ws/orders")
async def orders_feed(websocket: WebSocket) -> None:
    """
    Live order board for one staff dashboard.

    Connect with `?notifications=granted` if the browser allowed
    notifications; otherwise the board still updates but no alerts are sent.
    """
    await websocket.accept()
    granted = websocket.query_params.get("notifications") == "granted"

    async def push_board(board: OrderBoard) -> None:
        await websocket.send_json({
            "type": "orders",
            "orders": [order.model_dump(mode="json") for order in board.orders],
            "counts": board.status_counts(),
        })

    notifier = OrderNotifier(
        websocket.app.state.store,
        websocket.app.state.feed,
        WebSocketNotificationSink(websocket, permission_granted=granted),
        on_board_change=push_board,
    )

    async with notifier:
        try:
            while True:
                # Client messages are ignored; reading detects disconnects
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.debug("Staff feed disconnected")


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def _error(status_code: int, exc: DineInError) -> JSONResponse:
    body = ErrorResponse(error=exc.message, detail=exc.detail if settings.debug else None)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(OrderValidationError)
    async def validation_handler(request: Request, exc: OrderValidationError) -> JSONResponse:
        return _error(400, exc)

    @app.exception_handler(OrderNotFoundError)
    async def not_found_handler(request: Request, exc: OrderNotFoundError) -> JSONResponse:
        return _error(404, exc)

    @app.exception_handler(InvalidTransitionError)
    async def transition_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
        return _error(409, exc)

    @app.exception_handler(OrderPersistenceError)
    async def persistence_handler(request: Request, exc: OrderPersistenceError) -> JSONResponse:
        logger.error(f"Persistence error on {request.url.path}: {exc} ({exc.detail})")
        return _error(503, exc)

    @app.exception_handler(StoreError)
    async def store_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.error(f"Store error on {request.url.path}: {exc}")
        return _error(503, exc)

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
# APPLICATION FACTORY
# =============================================================================

def create_app(
    store: Optional[BaseDataStore] = None,
    feed: Optional[BaseChangeFeed] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        store: Data store to use instead of the configured one
        feed: Change feed to use instead of the configured one
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=" * 60)
        logger.info(f"Starting {settings.app_name}")
        logger.info(f"   Version: {settings.app_version}")
        logger.info(f"   Environment: {settings.env_mode.value}")
        logger.info(f"   Debug: {settings.debug}")
        logger.info("=" * 60)

        app.state.feed = feed or create_change_feed(settings)
        app.state.store = store or create_data_store(settings, app.state.feed)

        if isinstance(app.state.store, SqlDataStore):
            await init_db(app.state.store.engine)
            logger.info("Database initialized")
        elif store is None and isinstance(app.state.store, MockDataStore):
            await seed_demo_menu(app.state.store, settings.restaurant_name)

        logger.info(f"Data Store: {app.state.store.provider_name}")
        logger.info(f"Change Feed: {app.state.feed.provider_name}")

        problems = settings.validate_production_config()
        if problems:
            logger.warning(f"Configuration problems: {problems}")

        logger.info("Application ready!")

        yield

        logger.info("Shutting down...")
        await app.state.store.close()
        await app.state.feed.close()
        logger.info("Cleanup complete")

    app = FastAPI(
        title=settings.app_name,
        description="Table ordering storefront with a live staff order board.",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    register_exception_handlers(app)
    return app


app = create_app()
