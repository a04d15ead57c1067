"""Main application entry point for the restaurant ordering service.

This module provides the FastAPI application factory and configuration
for running the service locally or in production.
"""

import logging
import os
from typing import Any

import boto3
from fastapi import FastAPI

from restaurant_ordering_service.auth.token_service import TokenService
from restaurant_ordering_service.config import Settings
from restaurant_ordering_service.handlers.api_handler import create_app
from restaurant_ordering_service.observability import configure_logging, setup_observability
from restaurant_ordering_service.services.analytics_aggregator import AnalyticsAggregator
from restaurant_ordering_service.services.payment_authority import PaymentAuthorityClient
from restaurant_ordering_service.services.payment_reconciler import PaymentReconciler
from restaurant_ordering_service.store.resource_store import ResourceStore

logger = logging.getLogger(__name__)


def get_dynamodb_resource(settings: Settings) -> Any:
    """Create DynamoDB resource with appropriate configuration.

    Args:
        settings: Service configuration

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    if settings.dynamodb_endpoint:
        # Local DynamoDB accepts any credentials
        logger.info(f"Using local DynamoDB at {settings.dynamodb_endpoint}")
        return boto3.resource(
            "dynamodb",
            endpoint_url=settings.dynamodb_endpoint,
            region_name=settings.aws_region,
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID", "dummy"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY", "dummy"),
        )

    logger.info(f"Using AWS DynamoDB in region {settings.aws_region}")
    # Production - boto3 will use default credential chain (IAM role, env vars, etc.)
    return boto3.resource("dynamodb", region_name=settings.aws_region)


def create_payment_authority(settings: Settings) -> PaymentAuthorityClient | None:
    """Create the Stripe client when a secret key is configured."""
    if not settings.stripe_secret_key:
        logger.warning("STRIPE_SECRET_KEY not configured - payment intents are disabled")
        return None

    logger.info(f"Payment authority configured with currency {settings.payment_currency}")
    return PaymentAuthorityClient(
        secret_key=settings.stripe_secret_key,
        currency=settings.payment_currency,
    )


def create_application(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application with all dependencies.

    This factory function:
    1. Loads settings and configures logging
    2. Creates the DynamoDB-backed resource store
    3. Creates the token, reconciliation and analytics services
    4. Creates the FastAPI app and sets up observability

    Args:
        settings: Configuration to use, read from the environment when omitted

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    logger.info("Initializing restaurant ordering service...")

    store = ResourceStore.from_settings(get_dynamodb_resource(settings), settings)
    logger.info(
        f"Store configured - users: {settings.users_table}, menu: {settings.menu_table}, "
        f"carts: {settings.carts_table}, payments: {settings.payments_table}"
    )

    token_service = TokenService.from_settings(settings)
    reconciler = PaymentReconciler(store=store, use_transactions=settings.use_transactions)
    aggregator = AnalyticsAggregator(store=store)

    logger.info(
        f"Services initialized - reconciliation uses "
        f"{'transactions' if settings.use_transactions else 'settlement records'}"
    )

    app = create_app(
        store=store,
        token_service=token_service,
        reconciler=reconciler,
        aggregator=aggregator,
        payment_authority=create_payment_authority(settings),
        cors_allow_origins=settings.cors_allow_origins,
    )
    setup_observability(app, environment=settings.environment)

    logger.info("Restaurant ordering service initialized successfully")
    return app


# Create the FastAPI application instance (only when not in test mode)
# This prevents the app from being created during test collection
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = create_application()
else:
    # Create a placeholder app for test imports
    app = FastAPI()


if __name__ == "__main__":
    """Run the application with uvicorn when executed directly."""
    import uvicorn

    port = int(os.getenv("PORT", "5000"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting development server on {host}:{port}")
    logger.info(f"API documentation available at http://{host}:{port}/docs")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
