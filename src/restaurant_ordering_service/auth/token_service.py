"""Identity token issuing and verification.

Tokens are JWTs signed with a secret held only in the service configuration.
"""

import logging
from datetime import UTC, datetime
from typing import Any

import jwt
from pydantic import BaseModel

from restaurant_ordering_service.config import Settings
from restaurant_ordering_service.exceptions import InvalidToken

logger = logging.getLogger(__name__)


class TokenClaims(BaseModel):
    """Decoded identity token payload."""

    email: str
    iat: int
    exp: int


class TokenService:
    """Issues and verifies signed identity tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256", ttl_seconds: int = 3600) -> None:
        """Initialize the token service.

        Args:
            secret: Signing secret
            algorithm: JWT algorithm
            ttl_seconds: Lifetime of issued tokens

        Raises:
            ValueError: If the secret is empty
        """
        if not secret:
            raise ValueError("A token signing secret must be provided")

        self._secret = secret
        self.algorithm = algorithm
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret=settings.token_secret,
            algorithm=settings.token_algorithm,
            ttl_seconds=settings.token_ttl_seconds,
        )

    def issue(self, claims: dict[str, Any]) -> str:
        """Sign a claim set with issue and expiry times.

        Args:
            claims: Claims to sign, must contain ``email``

        Returns:
            str: Encoded token

        Raises:
            ValueError: If ``email`` is missing
        """
        if not claims.get("email"):
            raise ValueError("Token claims must include an email")

        issued_at = int(datetime.now(UTC).timestamp())
        payload = {**claims, "iat": issued_at, "exp": issued_at + self.ttl_seconds}
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Verify a token and return its claims.

        Args:
            token: Encoded token

        Returns:
            TokenClaims: Decoded claims

        Raises:
            InvalidToken: If the token is malformed, badly signed, expired or has no email
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "email"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidToken("Token expired") from e
        except jwt.InvalidTokenError as e:
            raise InvalidToken(f"Invalid token: {type(e).__name__}") from e

        return TokenClaims(
            email=payload["email"],
            iat=payload.get("iat", 0),
            exp=payload["exp"],
        )
