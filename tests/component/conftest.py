"""Fixtures wiring the API to an in-memory DynamoDB."""

import pytest
from fastapi.testclient import TestClient

from restaurant_ordering_service.auth.token_service import TokenService
from restaurant_ordering_service.handlers.api_handler import create_app
from restaurant_ordering_service.services.analytics_aggregator import AnalyticsAggregator
from restaurant_ordering_service.services.payment_reconciler import PaymentReconciler
from restaurant_ordering_service.store.resource_store import ResourceStore
from tests.component.fake_dynamodb import TABLE_KEYS, FakeDynamoDB


@pytest.fixture
def fake_dynamodb() -> FakeDynamoDB:
    return FakeDynamoDB(TABLE_KEYS)


@pytest.fixture
def store(fake_dynamodb: FakeDynamoDB) -> ResourceStore:
    return ResourceStore(
        dynamodb_resource=fake_dynamodb,
        users_table="test-users",
        menu_table="test-menu",
        carts_table="test-carts",
        payments_table="test-payments",
    )


def build_client(
    store: ResourceStore, token_service: TokenService, use_transactions: bool
) -> TestClient:
    app = create_app(
        store=store,
        token_service=token_service,
        reconciler=PaymentReconciler(store=store, use_transactions=use_transactions),
        aggregator=AnalyticsAggregator(store=store),
    )
    return TestClient(app)


@pytest.fixture
def client(store: ResourceStore, token_service: TokenService) -> TestClient:
    """API client over the in-memory store, reconciling with transactions."""
    return build_client(store, token_service, use_transactions=True)


@pytest.fixture
def settlement_client(store: ResourceStore, token_service: TokenService) -> TestClient:
    """API client over the in-memory store, reconciling with settlement records."""
    return build_client(store, token_service, use_transactions=False)
