"""Unit tests for ResourceStore and identifier helpers."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from restaurant_ordering_service.config import Settings
from restaurant_ordering_service.exceptions import InvalidId, StoreFailure
from restaurant_ordering_service.store.identifiers import new_id, to_native_id, to_native_ids
from restaurant_ordering_service.store.pipeline import Group, Lookup, Sum, Unwind
from restaurant_ordering_service.store.resource_store import MENU, PAYMENTS, ResourceStore


@pytest.mark.unit
class TestIdentifiers:
    """Tests for identifier translation."""

    def test_new_id_is_native(self) -> None:
        value = new_id()
        assert to_native_id(value) == value

    def test_to_native_id_normalizes(self) -> None:
        assert (
            to_native_id("0B7A6F0E8F0C4C439D5A1B1E5C1F0A01")
            == "0b7a6f0e-8f0c-4c43-9d5a-1b1e5c1f0a01"
        )

    @pytest.mark.parametrize("value", ["", "abc", "507f1f77bcf86cd799439011", "1234"])
    def test_to_native_id_rejects_malformed(self, value: str) -> None:
        with pytest.raises(InvalidId):
            to_native_id(value)

    def test_to_native_ids_dedupes_in_order(self) -> None:
        first, second = new_id(), new_id()

        assert to_native_ids([second, first, second]) == [second, first]

    def test_to_native_ids_fails_on_any_malformed(self) -> None:
        with pytest.raises(InvalidId):
            to_native_ids([new_id(), "bad"])


@pytest.mark.unit
class TestResourceStore:
    """Test suite for ResourceStore."""

    @pytest.fixture
    def mock_dynamodb(self) -> MagicMock:
        dynamodb = MagicMock()
        dynamodb.Table.side_effect = lambda name: MagicMock(name=name)
        return dynamodb

    @pytest.fixture
    def store(self, mock_dynamodb: MagicMock) -> ResourceStore:
        return ResourceStore(
            dynamodb_resource=mock_dynamodb,
            users_table="test-users",
            menu_table="test-menu",
            carts_table="test-carts",
            payments_table="test-payments",
        )

    def test_collections(self, store: ResourceStore) -> None:
        """Test that users are keyed by email and everything else by id."""
        assert store.users.key_name == "email"
        assert store.menu.key_name == "id"
        assert store.collection(MENU) is store.menu
        assert store.collection(PAYMENTS) is store.payments

    def test_unknown_collection(self, store: ResourceStore) -> None:
        with pytest.raises(ValueError):
            store.collection("orders")

    def test_from_settings(self, mock_dynamodb: MagicMock) -> None:
        settings = Settings(token_secret="x", carts_table="carts-dev")

        store = ResourceStore.from_settings(mock_dynamodb, settings)

        assert store.carts.table_name == "carts-dev"
        assert store.users.table_name == "bistro-users"

    def test_aggregate_reads_lookup_collection_once(self, store: ResourceStore) -> None:
        """Test that a collection joined twice is only scanned once per run."""
        store.payments.table.scan.return_value = {
            "Items": [{"id": "p1", "menu_item_ids": ["m1", "m1"]}]
        }
        store.menu.table.scan.return_value = {
            "Items": [{"id": "m1", "category": "soup", "price": Decimal("4")}]
        }

        rows = store.aggregate(
            PAYMENTS,
            [
                Unwind("menu_item_ids"),
                Lookup(MENU, "menu_item_ids", "id", "menu_item"),
                Lookup(MENU, "menu_item_ids", "id", "again"),
                Unwind("menu_item"),
                Group("menu_item.category", {"revenue": Sum("menu_item.price")}),
            ],
        )

        assert rows == [{"key": "soup", "revenue": Decimal("8")}]
        store.menu.table.scan.assert_called_once()

    def test_transact_write(self, store: ResourceStore, mock_dynamodb: MagicMock) -> None:
        """Test that puts are conditioned and items are serialized."""
        store.transact_write(
            puts=[(store.payments, {"id": "p1", "price": Decimal("17")})],
            deletes=[(store.carts, "c1"), (store.carts, "c2")],
        )

        actions = mock_dynamodb.meta.client.transact_write_items.call_args.kwargs["TransactItems"]
        assert len(actions) == 3
        put = actions[0]["Put"]
        assert put["TableName"] == "test-payments"
        assert put["Item"] == {"id": {"S": "p1"}, "price": {"N": "17"}}
        assert put["ConditionExpression"] == "attribute_not_exists(#key)"
        assert actions[1] == {"Delete": {"TableName": "test-carts", "Key": {"id": {"S": "c1"}}}}

    def test_transact_write_conditions_deletes_on_owner(
        self, store: ResourceStore, mock_dynamodb: MagicMock
    ) -> None:
        """Test that deletes only match items absent or held by the given owner."""
        store.transact_write(
            puts=[(store.payments, {"id": "p1"})],
            deletes=[(store.carts, "c1")],
            delete_owner=("email", "guest@bistro.test"),
        )

        actions = mock_dynamodb.meta.client.transact_write_items.call_args.kwargs["TransactItems"]
        assert actions[1] == {
            "Delete": {
                "TableName": "test-carts",
                "Key": {"id": {"S": "c1"}},
                "ConditionExpression": "attribute_not_exists(#key) OR #owner = :owner",
                "ExpressionAttributeNames": {"#key": "id", "#owner": "email"},
                "ExpressionAttributeValues": {":owner": {"S": "guest@bistro.test"}},
            }
        }

    def test_transact_write_too_large(self, store: ResourceStore, mock_dynamodb: MagicMock) -> None:
        with pytest.raises(ValueError):
            store.transact_write(puts=[], deletes=[(store.carts, f"c{i}") for i in range(101)])

        mock_dynamodb.meta.client.transact_write_items.assert_not_called()

    def test_transact_write_cancelled(self, store: ResourceStore, mock_dynamodb: MagicMock) -> None:
        mock_dynamodb.meta.client.transact_write_items.side_effect = ClientError(
            {"Error": {"Code": "TransactionCanceledException", "Message": "cancelled"}},
            "TransactWriteItems",
        )

        with pytest.raises(StoreFailure):
            store.transact_write(puts=[(store.payments, {"id": "p1"})], deletes=[])
