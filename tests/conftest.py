"""Shared pytest fixtures and configuration for all tests."""

import os

# Keep main.py and lambda_handler.py from building the real application on import
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import UTC, datetime  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402

from restaurant_ordering_service.auth.token_service import TokenService  # noqa: E402
from restaurant_ordering_service.config import Settings  # noqa: E402
from restaurant_ordering_service.models.payment_models import (  # noqa: E402
    Payment,
    PaymentStatus,
    SettlementState,
)

ADMIN_EMAIL = "admin@bistro.test"
GUEST_EMAIL = "guest@bistro.test"

DRINK_ID = "0b7a6f0e-8f0c-4c43-9d5a-1b1e5c1f0a01"
MAIN_ID = "0b7a6f0e-8f0c-4c43-9d5a-1b1e5c1f0a02"
CART_ID_1 = "5e1d2c3b-4a59-4e68-8f7a-9b0c1d2e3f01"
CART_ID_2 = "5e1d2c3b-4a59-4e68-8f7a-9b0c1d2e3f02"
PAYMENT_ID = "9c8b7a69-5847-4362-9150-a1b2c3d4e5f6"


@pytest.fixture
def settings() -> Settings:
    """Fixture providing test configuration."""
    return Settings(token_secret="test-secret", environment="test")


@pytest.fixture
def token_service() -> TokenService:
    """Fixture providing a token service with a known secret."""
    return TokenService(secret="test-secret", ttl_seconds=3600)


@pytest.fixture
def admin_email() -> str:
    return ADMIN_EMAIL


@pytest.fixture
def guest_email() -> str:
    return GUEST_EMAIL


@pytest.fixture
def mock_menu_items() -> list[dict]:
    """Fixture providing menu items as stored in DynamoDB."""
    return [
        {
            "id": DRINK_ID,
            "name": "Lemonade",
            "category": "drinks",
            "price": Decimal("5"),
            "recipe": "Fresh lemons, sugar, water",
        },
        {
            "id": MAIN_ID,
            "name": "Roast Chicken",
            "category": "mains",
            "price": Decimal("12"),
            "recipe": "Half chicken with herbs",
            "image": "https://example.com/chicken.jpg",
        },
    ]


@pytest.fixture
def mock_payment() -> Payment:
    """Fixture providing a settled, pending payment for both menu items."""
    return Payment(
        id=PAYMENT_ID,
        email=GUEST_EMAIL,
        price=Decimal("17"),
        transaction_id="pi_3Nabc123",
        cart_ids=[CART_ID_1, CART_ID_2],
        menu_item_ids=[DRINK_ID, MAIN_ID],
        status=PaymentStatus.PENDING,
        settlement=SettlementState.SETTLED,
        timestamp=datetime(2024, 1, 15, 10, 30, tzinfo=UTC),
    )
