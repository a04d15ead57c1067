"""Service configuration.

All runtime configuration is read from the environment exactly once, at startup,
into an immutable ``Settings`` instance that is passed to the components that need it.
"""

import os
from dataclasses import dataclass, field


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    """Immutable service configuration.

    Attributes:
        token_secret: Secret used to sign identity tokens (never logged)
        token_algorithm: JWT signing algorithm
        token_ttl_seconds: Lifetime of an issued token
        aws_region: Region of the DynamoDB tables
        dynamodb_endpoint: Optional local DynamoDB endpoint
        users_table: Users table name (keyed by email)
        menu_table: Menu table name
        carts_table: Carts table name
        payments_table: Payments table name
        use_transactions: Whether reconciliation uses DynamoDB transactions
        stripe_secret_key: Payment authority key, None disables payment intents
        payment_currency: Currency for payment intents
        cors_allow_origins: Origins allowed by the CORS middleware
        log_level: Root log level
        environment: Deployment environment name
    """

    token_secret: str = field(repr=False)
    token_algorithm: str = "HS256"
    token_ttl_seconds: int = 3600
    aws_region: str = "us-east-1"
    dynamodb_endpoint: str | None = None
    users_table: str = "bistro-users"
    menu_table: str = "bistro-menu"
    carts_table: str = "bistro-carts"
    payments_table: str = "bistro-payments"
    use_transactions: bool = True
    stripe_secret_key: str | None = field(default=None, repr=False)
    payment_currency: str = "usd"
    cors_allow_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"
    environment: str = "development"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Returns:
            Settings populated from the environment

        Raises:
            ValueError: If ACCESS_TOKEN_SECRET is not set
        """
        token_secret = os.getenv("ACCESS_TOKEN_SECRET")
        if not token_secret:
            raise ValueError("ACCESS_TOKEN_SECRET must be set in environment")

        origins = os.getenv("CORS_ALLOW_ORIGINS", "*")

        return cls(
            token_secret=token_secret,
            token_algorithm=os.getenv("TOKEN_ALGORITHM", "HS256"),
            token_ttl_seconds=int(os.getenv("TOKEN_TTL_SECONDS", "3600")),
            aws_region=os.getenv("AWS_REGION", "us-east-1"),
            dynamodb_endpoint=os.getenv("DYNAMODB_ENDPOINT") or None,
            users_table=os.getenv("DYNAMODB_USERS_TABLE", "bistro-users"),
            menu_table=os.getenv("DYNAMODB_MENU_TABLE", "bistro-menu"),
            carts_table=os.getenv("DYNAMODB_CARTS_TABLE", "bistro-carts"),
            payments_table=os.getenv("DYNAMODB_PAYMENTS_TABLE", "bistro-payments"),
            use_transactions=_env_flag("USE_DYNAMODB_TRANSACTIONS", "true"),
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY") or None,
            payment_currency=os.getenv("PAYMENT_CURRENCY", "usd"),
            cors_allow_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            environment=os.getenv("ENVIRONMENT", "development"),
        )
