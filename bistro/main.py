"""
FastAPI Application Entry Point

Bistro Ordering API - Hybrid Architecture
Runs against an in-memory store and mock payments (development) or
MongoDB and Stripe (staging/production).

Endpoints:
    - POST /jwt: Issue a bearer credential
    - /user, /admin/users, /admin/user/{id}: User registration and admin
    - /menu: Menu browsing and admin management
    - /carts, /cart/{id}: Shopping cart
    - /create-payment-intent, /payments: Checkout and order history
    - /admin/stats, /admin/order-stats: Business statistics
    - GET /health: System health check
"""

import asyncio
import sys
import logging
from datetime import datetime
from typing import Any, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from bistro.core.config import Settings, get_settings, setup_logging
from bistro.core.errors import BadRequest, BistroError, NotFound, PaymentFailed
from bistro.core.security import (
    create_access_token,
    ensure_self,
    get_current_uid,
    require_admin,
)
from bistro.database import get_store, open_store
from bistro.models import UserRole, serialize_document, to_number, to_object_id
from bistro.schemas import (
    AdminCheckResponse,
    CartAdd,
    CartCountResponse,
    CategoryStats,
    ErrorResponse,
    HealthResponse,
    MenuItemCreate,
    MenuItemUpdate,
    PaymentCreate,
    PaymentIntentRequest,
    PaymentIntentResponse,
    PaymentRecordResponse,
    SummaryStats,
    TokenRequest,
    TokenResponse,
    UserCreate,
)
from bistro.services.payment import BasePaymentService, get_payment_service
from bistro.services.store import BaseOrderingStore

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
}


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

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    async with open_store(settings) as store:
        app.state.store = store

        payment_service = get_payment_service()
        logger.info(f"✅ Payment Service: {payment_service.provider_name}")
        logger.info("✅ Application ready!")
        logger.info("=" * 60)

        yield  # Application runs

        logger.info("Shutting down...")

    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant ordering backend: menu, carts, payments and admin "
        "statistics over a document store."
    ),
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


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"], response_class=PlainTextResponse)
async def root() -> str:
    """Liveness probe."""
    return f"{settings.app_name} is running"


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    store: BaseOrderingStore = Depends(get_store),
    payment_service: BasePaymentService = Depends(get_payment_service),
) -> HealthResponse:
    """Verify the store and payment service are operational."""
    db_status = "healthy" if await store.health_check() else "unhealthy"
    payment_status = "healthy" if await payment_service.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, payment_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=f"{db_status} ({store.provider_name})",
        payment_service=f"{payment_status} ({payment_service.provider_name})",
        timestamp=datetime.now(),
    )


# =============================================================================
# AUTH & USER ENDPOINTS
# =============================================================================

@app.post("/jwt", response_model=TokenResponse, tags=["Auth"])
async def issue_token(
    payload: TokenRequest,
    settings: Settings = Depends(get_settings),
) -> TokenResponse:
    """Sign the user payload into a bearer credential valid for one hour."""
    token = create_access_token(payload.model_dump(exclude_none=True), settings)
    return TokenResponse(token=token)


@app.get(
    "/admin/verify/{uid}",
    response_model=AdminCheckResponse,
    responses=ERROR_RESPONSES,
    tags=["Auth"],
)
async def verify_admin(
    uid: str,
    caller: str = Depends(get_current_uid),
    store: BaseOrderingStore = Depends(get_store),
) -> AdminCheckResponse:
    """Report whether the caller is an admin."""
    ensure_self(caller, uid)
    user = await store.find_user(uid)
    return AdminCheckResponse(admin=bool(user) and user.get("role") == UserRole.ADMIN.value)


@app.get("/admin/users", responses=ERROR_RESPONSES, tags=["Users"])
async def list_users(
    _: str = Depends(require_admin),
    store: BaseOrderingStore = Depends(get_store),
) -> list[dict[str, Any]]:
    return serialize_document(await store.list_users())


@app.post("/user", tags=["Users"])
async def register_user(
    user: UserCreate,
    store: BaseOrderingStore = Depends(get_store),
) -> dict[str, Any]:
    """Register a user on first sign-in; repeated calls change nothing."""
    result = await store.register_user(user.to_document())
    return result.to_dict()


@app.patch("/admin/user/{user_id}", responses=ERROR_RESPONSES, tags=["Users"])
async def promote_user(
    user_id: str,
    admin: str = Depends(require_admin),
    store: BaseOrderingStore = Depends(get_store),
) -> dict[str, Any]:
    result = await store.promote_user(to_object_id(user_id))
    logger.info(f"User {user_id} promoted to admin by {admin}")
    return result.to_dict()


@app.delete("/user/{user_id}", responses=ERROR_RESPONSES, tags=["Users"])
async def delete_user(
    user_id: str,
    admin: str = Depends(require_admin),
    store: BaseOrderingStore = Depends(get_store),
) -> dict[str, Any]:
    result = await store.delete_user(to_object_id(user_id))
    logger.info(f"User {user_id} deleted by {admin} (deleted={result.deleted_count})")
    return result.to_dict()


# =============================================================================
# MENU ENDPOINTS
# =============================================================================

@app.get("/menu", tags=["Menu"])
async def list_menu(
    category: Optional[str] = Query(None, description="Case-insensitive category filter"),
    store: BaseOrderingStore = Depends(get_store),
) -> list[dict[str, Any]]:
    return serialize_document(await store.list_menu(category))


@app.get(
    "/menu/{item_id}",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Menu"],
)
async def get_menu_item(
    item_id: str,
    store: BaseOrderingStore = Depends(get_store),
) -> dict[str, Any]:
    item = await store.get_menu_item(to_object_id(item_id))
    if item is None:
        raise NotFound("Menu item not found")
    return serialize_document(item)


@app.post("/menu", responses=ERROR_RESPONSES, tags=["Menu"])
async def create_menu_item(
    item: MenuItemCreate,
    admin: str = Depends(require_admin),
    store: BaseOrderingStore = Depends(get_store),
) -> dict[str, Any]:
    result = await store.create_menu_item(item.model_dump(exclude_none=True))
    logger.info(f"Menu item {result.inserted_id} created by {admin}")
    return result.to_dict()


@app.patch("/menu/{item_id}", responses=ERROR_RESPONSES, tags=["Menu"])
async def update_menu_item(
    item_id: str,
    changes: MenuItemUpdate,
    admin: str = Depends(require_admin),
    store: BaseOrderingStore = Depends(get_store),
) -> dict[str, Any]:
    fields = changes.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        raise BadRequest("No fields to update")
    result = await store.update_menu_item(to_object_id(item_id), fields)
    logger.info(f"Menu item {item_id} updated by {admin}: {sorted(fields)}")
    return result.to_dict()


@app.delete("/menu/{item_id}", responses=ERROR_RESPONSES, tags=["Menu"])
async def delete_menu_item(
    item_id: str,
    admin: str = Depends(require_admin),
    store: BaseOrderingStore = Depends(get_store),
) -> dict[str, Any]:
    result = await store.delete_menu_item(to_object_id(item_id))
    logger.info(f"Menu item {item_id} deleted by {admin}")
    return result.to_dict()


# =============================================================================
# CART ENDPOINTS
# =============================================================================

@app.get("/carts", responses=ERROR_RESPONSES, tags=["Carts"])
async def get_cart(
    userId: Optional[str] = Query(None),
    caller: str = Depends(get_current_uid),
    store: BaseOrderingStore = Depends(get_store),
) -> list[dict[str, Any]]:
    """The user's cart entries joined to current menu names, images and prices."""
    if not userId:
        raise BadRequest("userId is required")
    ensure_self(caller, userId)
    return serialize_document(await store.project_cart(userId))


@app.get(
    "/carts/total",
    response_model=CartCountResponse,
    responses=ERROR_RESPONSES,
    tags=["Carts"],
)
async def count_cart(
    userUID: Optional[str] = Query(None),
    caller: str = Depends(get_current_uid),
    store: BaseOrderingStore = Depends(get_store),
) -> CartCountResponse:
    if not userUID:
        raise BadRequest("userUID is required")
    ensure_self(caller, userUID)
    return CartCountResponse(count=await store.count_cart(userUID))


@app.post("/carts", responses=ERROR_RESPONSES, tags=["Carts"])
async def add_to_cart(
    entry: CartAdd,
    caller: str = Depends(get_current_uid),
    store: BaseOrderingStore = Depends(get_store),
) -> dict[str, Any]:
    """Add one unit of an item; repeated adds increment the same entry."""
    ensure_self(caller, entry.userID)
    result = await store.add_to_cart(entry.match_filter())
    return result.to_dict()


@app.delete("/cart/{entry_id}", responses=ERROR_RESPONSES, tags=["Carts"])
async def delete_cart_entry(
    entry_id: str,
    uid: Optional[str] = Query(None),
    caller: str = Depends(get_current_uid),
    store: BaseOrderingStore = Depends(get_store),
) -> dict[str, Any]:
    if not uid:
        raise BadRequest("uid is required")
    ensure_self(caller, uid)
    result = await store.delete_cart_entry(to_object_id(entry_id), uid)
    return result.to_dict()


# =============================================================================
# PAYMENT ENDPOINTS
# =============================================================================

@app.post(
    "/create-payment-intent",
    response_model=PaymentIntentResponse,
    responses={400: {"model": ErrorResponse}, 402: {"model": ErrorResponse}},
    tags=["Payments"],
)
async def create_payment_intent(
    body: PaymentIntentRequest,
    payment_service: BasePaymentService = Depends(get_payment_service),
) -> PaymentIntentResponse:
    """Obtain a client secret for confirming a card payment in the browser."""
    result = await payment_service.create_payment_intent(amount=to_number(body.price))
    if not result.success:
        logger.warning(f"Payment intent rejected: {result.error_code} - {result.error_message}")
        raise PaymentFailed(result.error_message)
    return PaymentIntentResponse(clientSecret=result.client_secret)


@app.get("/payments", responses=ERROR_RESPONSES, tags=["Payments"])
async def list_payments(
    uid: Optional[str] = Query(None),
    caller: str = Depends(get_current_uid),
    store: BaseOrderingStore = Depends(get_store),
) -> list[dict[str, Any]]:
    """The user's payment history, newest first."""
    if not uid:
        raise BadRequest("uid is required")
    ensure_self(caller, uid)
    return serialize_document(await store.list_payments(uid))


@app.post(
    "/payments",
    response_model=PaymentRecordResponse,
    responses={400: {"model": ErrorResponse}},
    tags=["Payments"],
)
async def record_payment(
    payment: PaymentCreate,
    store: BaseOrderingStore = Depends(get_store),
) -> PaymentRecordResponse:
    """Record a completed payment and clear the cart entries it paid for."""
    cart_ids = [to_object_id(c) for c in payment.cartIds]
    inserted, deleted = await store.record_payment(
        payment.to_document(),
        cart_ids,
    )
    return PaymentRecordResponse(
        paymentResult=inserted.to_dict(),
        deleteResult=deleted.to_dict(),
    )


# =============================================================================
# STATISTICS ENDPOINTS
# =============================================================================

@app.get(
    "/admin/stats",
    response_model=SummaryStats,
    responses=ERROR_RESPONSES,
    tags=["Statistics"],
)
async def summary_stats(
    _: str = Depends(require_admin),
    store: BaseOrderingStore = Depends(get_store),
) -> SummaryStats:
    return SummaryStats(**await store.summary_stats())


@app.get(
    "/admin/order-stats",
    response_model=list[CategoryStats],
    responses=ERROR_RESPONSES,
    tags=["Statistics"],
)
async def order_stats(
    _: str = Depends(require_admin),
    store: BaseOrderingStore = Depends(get_store),
) -> list[CategoryStats]:
    return [CategoryStats(**row) for row in await store.category_stats()]


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(BistroError)
async def bistro_error_handler(request: Request, exc: BistroError) -> JSONResponse:
    """Map application errors to their HTTP status."""
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies and parameters are client errors."""
    return JSONResponse(
        status_code=400,
        content={
            "message": "Invalid request",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")

    return JSONResponse(
        status_code=500,
        content={"message": "Internal Server Error"},
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
