"""FastAPI application for the ordering service API."""

import logging
from collections.abc import Sequence

from fastapi import Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from restaurant_ordering_service.auth.auth_gate import AuthGate, IdentityContext
from restaurant_ordering_service.auth.token_service import TokenService
from restaurant_ordering_service.exceptions import (
    Forbidden,
    NotFound,
    OrderingServiceError,
    PaymentAuthorityUnavailable,
)
from restaurant_ordering_service.models.analytics_models import CategoryStats, OverviewStats
from restaurant_ordering_service.models.menu_models import (
    CartItem,
    CartItemCreate,
    MenuItem,
    MenuItemCreate,
    MenuItemUpdate,
)
from restaurant_ordering_service.models.payment_models import (
    Payment,
    PaymentCreate,
    PaymentIntentRequest,
    PaymentIntentResponse,
    PaymentStatusUpdate,
    ReconciliationResult,
)
from restaurant_ordering_service.models.user_models import Role, User, UserCreate
from restaurant_ordering_service.repositories.ordering_repositories import (
    CartRepository,
    MenuRepository,
    PaymentRepository,
    UserRepository,
)
from restaurant_ordering_service.services.analytics_aggregator import AnalyticsAggregator
from restaurant_ordering_service.services.payment_authority import PaymentAuthorityClient
from restaurant_ordering_service.services.payment_reconciler import PaymentReconciler
from restaurant_ordering_service.store.identifiers import to_native_id
from restaurant_ordering_service.store.resource_store import ResourceStore
from restaurant_ordering_service.store.results import DeleteResult, InsertResult, UpdateResult

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str


class TokenRequest(BaseModel):
    """Identity to issue a token for."""

    email: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """Issued identity token."""

    token: str


class AdminCheckResponse(BaseModel):
    """Whether the caller holds the admin role."""

    admin: bool


def create_app(
    store: ResourceStore,
    token_service: TokenService,
    reconciler: PaymentReconciler,
    aggregator: AnalyticsAggregator,
    payment_authority: PaymentAuthorityClient | None = None,
    cors_allow_origins: Sequence[str] = ("*",),
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        store: Resource store backing every collection
        token_service: Issues and verifies identity tokens
        reconciler: Records payments and clears carts
        aggregator: Computes dashboard reports
        payment_authority: Stripe client, None when payments are not configured
        cors_allow_origins: Origins allowed by CORS

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Restaurant Ordering Service API",
        description="Menu, cart, payment and dashboard API for the restaurant ordering platform",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cors_allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    users = UserRepository(store.users)
    gate = AuthGate(token_service=token_service, user_repository=users)

    # Store services in app state for access in route handlers
    app.state.store = store
    app.state.token_service = token_service
    app.state.gate = gate
    app.state.users = users
    app.state.menu = MenuRepository(store.menu)
    app.state.carts = CartRepository(store.carts)
    app.state.payments = PaymentRepository(store.payments)
    app.state.reconciler = reconciler
    app.state.aggregator = aggregator
    app.state.payment_authority = payment_authority

    authenticated = gate.dependency(gate.authenticated())
    admin_only = gate.dependency(gate.authenticated(), gate.role(Role.ADMIN))
    self_only = gate.dependency(gate.authenticated(), gate.self_match("email"))

    @app.exception_handler(OrderingServiceError)
    async def handle_service_error(request: Request, exc: OrderingServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        else:
            logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc}")
        return JSONResponse(status_code=exc.status_code, content={"message": exc.public_message})

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy")

    @app.post("/auth-tokens", response_model=TokenResponse, tags=["Auth"])
    async def issue_token(payload: TokenRequest) -> TokenResponse:
        """Issue an identity token for a user signed in with the identity provider."""
        token = app.state.token_service.issue({"email": payload.email})
        return TokenResponse(token=token)

    # Users

    @app.post("/users", response_model=InsertResult, tags=["Users"])
    async def register_user(payload: UserCreate) -> InsertResult:
        """Create a user on first sign-in. Registering an existing email is a no-op."""
        result: InsertResult = await run_in_threadpool(app.state.users.insert_if_absent, payload)
        return result

    @app.get("/users", response_model=list[User], tags=["Users"])
    async def list_users(_identity: IdentityContext = Depends(admin_only)) -> list[User]:
        result: list[User] = await run_in_threadpool(app.state.users.list_users)
        return result

    @app.get("/users/admin/{email}", response_model=AdminCheckResponse, tags=["Users"])
    async def check_admin(
        email: str, _identity: IdentityContext = Depends(self_only)
    ) -> AdminCheckResponse:
        """Tell callers whether they are admins. Callers may only ask about themselves."""
        user = await run_in_threadpool(app.state.users.get_by_email, email)
        return AdminCheckResponse(admin=bool(user and user.is_admin))

    @app.patch("/users/admin/{user_id}", response_model=UpdateResult, tags=["Users"])
    async def make_admin(
        user_id: str, _identity: IdentityContext = Depends(admin_only)
    ) -> UpdateResult:
        result: UpdateResult = await run_in_threadpool(
            app.state.users.make_admin, to_native_id(user_id)
        )
        return result

    @app.delete("/users/{user_id}", response_model=DeleteResult, tags=["Users"])
    async def delete_user(
        user_id: str, _identity: IdentityContext = Depends(admin_only)
    ) -> DeleteResult:
        result: DeleteResult = await run_in_threadpool(app.state.users.delete, to_native_id(user_id))
        return result

    # Menu

    @app.get("/menu", response_model=list[MenuItem], tags=["Menu"])
    async def list_menu() -> list[MenuItem]:
        result: list[MenuItem] = await run_in_threadpool(app.state.menu.list_items)
        return result

    @app.get("/menu/{item_id}", response_model=MenuItem, tags=["Menu"])
    async def get_menu_item(item_id: str) -> MenuItem:
        item = await run_in_threadpool(app.state.menu.get_item, to_native_id(item_id))
        if item is None:
            raise NotFound(f"Menu item {item_id} not found")
        return item

    @app.post("/menu", response_model=MenuItem, tags=["Menu"])
    async def create_menu_item(
        payload: MenuItemCreate, _identity: IdentityContext = Depends(admin_only)
    ) -> MenuItem:
        item: MenuItem = await run_in_threadpool(app.state.menu.create, payload)
        logger.info(f"Menu item {item.id} created")
        return item

    @app.patch("/menu/{item_id}", response_model=UpdateResult, tags=["Menu"])
    async def update_menu_item(
        item_id: str,
        payload: MenuItemUpdate,
        _identity: IdentityContext = Depends(admin_only),
    ) -> UpdateResult:
        result: UpdateResult = await run_in_threadpool(
            app.state.menu.update, to_native_id(item_id), payload
        )
        return result

    @app.delete("/menu/{item_id}", response_model=DeleteResult, tags=["Menu"])
    async def delete_menu_item(
        item_id: str, _identity: IdentityContext = Depends(admin_only)
    ) -> DeleteResult:
        result: DeleteResult = await run_in_threadpool(app.state.menu.delete, to_native_id(item_id))
        return result

    # Carts

    @app.post("/carts", response_model=InsertResult, tags=["Carts"])
    async def add_to_cart(
        payload: CartItemCreate, identity: IdentityContext = Depends(authenticated)
    ) -> InsertResult:
        if payload.email != identity.email:
            raise Forbidden("Cart items can only be added to the caller's own cart")

        payload = payload.model_copy(update={"menu_item_id": to_native_id(payload.menu_item_id)})
        result: InsertResult = await run_in_threadpool(app.state.carts.add, payload)
        return result

    @app.get("/carts", response_model=list[CartItem], tags=["Carts"])
    async def list_cart(
        email: str | None = None, identity: IdentityContext = Depends(authenticated)
    ) -> list[CartItem]:
        owner = email or identity.email
        if owner != identity.email:
            raise Forbidden("Callers can only read their own cart")

        result: list[CartItem] = await run_in_threadpool(app.state.carts.list_for_email, owner)
        return result

    @app.delete("/carts/{cart_id}", response_model=DeleteResult, tags=["Carts"])
    async def remove_from_cart(
        cart_id: str, identity: IdentityContext = Depends(authenticated)
    ) -> DeleteResult:
        native_id = to_native_id(cart_id)
        cart_item = await run_in_threadpool(app.state.carts.get, native_id)
        if cart_item is None:
            return DeleteResult(deleted_count=0)

        await app.state.gate.ensure_owner_or_role(identity, cart_item.email)
        result: DeleteResult = await run_in_threadpool(app.state.carts.delete, native_id)
        return result

    # Payments

    @app.post("/payment-intents", response_model=PaymentIntentResponse, tags=["Payments"])
    async def create_payment_intent(
        payload: PaymentIntentRequest, identity: IdentityContext = Depends(authenticated)
    ) -> PaymentIntentResponse:
        if app.state.payment_authority is None:
            raise PaymentAuthorityUnavailable()

        intent: PaymentIntentResponse = await app.state.payment_authority.create_payment_intent(
            price=payload.price, email=identity.email
        )
        return intent

    @app.post("/payments", response_model=ReconciliationResult, tags=["Payments"])
    async def record_payment(
        payload: PaymentCreate, identity: IdentityContext = Depends(authenticated)
    ) -> ReconciliationResult:
        """Record a completed payment and clear the cart items it paid for."""
        if payload.email != identity.email:
            raise Forbidden("Payments can only be recorded for the caller")

        result: ReconciliationResult = await app.state.reconciler.reconcile(payload)
        return result

    @app.get("/payments/{email}", response_model=list[Payment], tags=["Payments"])
    async def list_payments(
        email: str, _identity: IdentityContext = Depends(self_only)
    ) -> list[Payment]:
        result: list[Payment] = await run_in_threadpool(app.state.payments.list_for_email, email)
        return result

    @app.patch("/payments/{payment_id}", response_model=UpdateResult, tags=["Payments"])
    async def update_payment_status(
        payment_id: str,
        payload: PaymentStatusUpdate,
        identity: IdentityContext = Depends(authenticated),
    ) -> UpdateResult:
        """Set a payment's status. Allowed for the paying user and for admins."""
        payment = await run_in_threadpool(app.state.payments.get, to_native_id(payment_id))
        if payment is None:
            raise NotFound(f"Payment {payment_id} not found")

        await app.state.gate.ensure_owner_or_role(identity, payment.email)
        result: UpdateResult = await app.state.reconciler.update_status(payment, payload.status)
        return result

    @app.post(
        "/payments/{payment_id}/settlement",
        response_model=ReconciliationResult,
        tags=["Payments"],
    )
    async def settle_payment(
        payment_id: str, _identity: IdentityContext = Depends(admin_only)
    ) -> ReconciliationResult:
        """Finish clearing the cart of a payment left pending settlement."""
        result: ReconciliationResult = await app.state.reconciler.resume_settlement(payment_id)
        return result

    # Dashboard

    @app.get("/admin-stats", response_model=OverviewStats, tags=["Dashboard"])
    async def admin_stats(_identity: IdentityContext = Depends(admin_only)) -> OverviewStats:
        result: OverviewStats = await app.state.aggregator.overview()
        return result

    @app.get("/order-stats", response_model=list[CategoryStats], tags=["Dashboard"])
    async def order_stats(
        _identity: IdentityContext = Depends(admin_only),
    ) -> list[CategoryStats]:
        result: list[CategoryStats] = await app.state.aggregator.category_breakdown()
        return result

    return app
