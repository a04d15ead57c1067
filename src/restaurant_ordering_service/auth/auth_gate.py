"""Request authentication and authorization guards.

A route declares an ordered list of guards. Each guard inspects the request's identity
context and either lets it pass or returns a ``Rejection``. Evaluation stops at the first
rejection, so nothing after it runs:

    unauthenticated --authenticated()--> authenticated --role()/self_match()--> authorized

Guards that depend on the caller's identity reject with 401 when they are reached
before authentication succeeded.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from fastapi import Request
from fastapi.concurrency import run_in_threadpool

from restaurant_ordering_service.auth.token_service import TokenClaims, TokenService
from restaurant_ordering_service.exceptions import Forbidden, InvalidToken
from restaurant_ordering_service.models.user_models import Role, User
from restaurant_ordering_service.observability.metrics import record_auth_rejection
from restaurant_ordering_service.repositories.ordering_repositories import UserRepository

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    AUTHORIZED = "authorized"


@dataclass
class IdentityContext:
    """Identity information accumulated while a request passes its guards."""

    authorization: str | None = None
    path_params: dict[str, str] = field(default_factory=dict)
    state: AuthState = AuthState.UNAUTHENTICATED
    claims: TokenClaims | None = None
    user: User | None = None

    @property
    def email(self) -> str | None:
        return self.claims.email if self.claims else None


@dataclass(frozen=True)
class Rejection:
    """Why a guard stopped a request. ``reason`` is for logs only."""

    status_code: int
    reason: str

    def to_error(self) -> InvalidToken | Forbidden:
        if self.status_code == 401:
            return InvalidToken(self.reason)
        return Forbidden(self.reason)


Guard = Callable[[IdentityContext], Awaitable[Rejection | None]]


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class AuthGate:
    """Builds guards and evaluates guard lists for requests."""

    def __init__(self, token_service: TokenService, user_repository: UserRepository) -> None:
        """Initialize the gate.

        Args:
            token_service: Verifies bearer tokens
            user_repository: Looks up users for role checks
        """
        self.token_service = token_service
        self.user_repository = user_repository

    def authenticated(self) -> Guard:
        """Guard requiring a valid bearer token."""

        async def require_authenticated(context: IdentityContext) -> Rejection | None:
            token = extract_bearer_token(context.authorization)
            if token is None:
                return Rejection(401, "missing bearer credential")

            try:
                context.claims = self.token_service.verify(token)
            except InvalidToken as e:
                return Rejection(401, str(e))

            context.state = AuthState.AUTHENTICATED
            return None

        return require_authenticated

    def role(self, role: Role) -> Guard:
        """Guard requiring the authenticated user to hold ``role``."""

        async def require_role(context: IdentityContext) -> Rejection | None:
            if context.state == AuthState.UNAUTHENTICATED or context.email is None:
                return Rejection(401, "role check before authentication")

            user = await run_in_threadpool(self.user_repository.get_by_email, context.email)
            if user is None:
                return Rejection(403, "no user for authenticated email")
            if user.role != role:
                return Rejection(403, f"role {role.value} required")

            context.user = user
            context.state = AuthState.AUTHORIZED
            return None

        return require_role

    def self_match(self, param: str = "email") -> Guard:
        """Guard requiring the path parameter ``param`` to equal the authenticated email."""

        async def require_self(context: IdentityContext) -> Rejection | None:
            if context.state == AuthState.UNAUTHENTICATED or context.email is None:
                return Rejection(401, "identity check before authentication")

            if context.path_params.get(param) != context.email:
                return Rejection(403, f"path parameter {param} does not match caller")

            context.state = AuthState.AUTHORIZED
            return None

        return require_self

    async def evaluate(self, context: IdentityContext, guards: Sequence[Guard]) -> Rejection | None:
        """Run guards in order, stopping at the first rejection."""
        for guard in guards:
            rejection = await guard(context)
            if rejection is not None:
                logger.warning(
                    f"Request rejected with {rejection.status_code}: {rejection.reason}"
                )
                record_auth_rejection(rejection.status_code)
                return rejection
        return None

    def dependency(self, *guards: Guard) -> Callable[[Request], Awaitable[IdentityContext]]:
        """Wrap a guard list as a FastAPI dependency.

        On rejection the dependency raises ``InvalidToken`` or ``Forbidden``, which stops
        the request before the route handler runs. Clients only see the generic message.
        """

        async def guarded(request: Request) -> IdentityContext:
            context = IdentityContext(
                authorization=request.headers.get("Authorization"),
                path_params=dict(request.path_params),
            )
            rejection = await self.evaluate(context, guards)
            if rejection is not None:
                raise rejection.to_error()
            return context

        return guarded

    async def ensure_owner_or_role(
        self, context: IdentityContext, owner_email: str, role: Role = Role.ADMIN
    ) -> None:
        """Check that the caller owns a resource or holds ``role``.

        Raises:
            InvalidToken: If the context is not authenticated
            Forbidden: If the caller is neither the owner nor holds the role
        """
        if context.email is None:
            raise InvalidToken()
        if context.email == owner_email:
            return

        user = context.user or await run_in_threadpool(
            self.user_repository.get_by_email, context.email
        )
        if user is None or user.role != role:
            record_auth_rejection(403)
            raise Forbidden(f"{context.email} may not act on a resource owned by another user")
