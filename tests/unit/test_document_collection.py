"""Unit tests for DocumentCollection."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from restaurant_ordering_service.exceptions import StoreFailure
from restaurant_ordering_service.store.document_collection import DocumentCollection


def client_error(code: str, operation: str = "PutItem") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.mark.unit
class TestDocumentCollection:
    """Test suite for DocumentCollection."""

    @pytest.fixture
    def mock_dynamodb(self) -> MagicMock:
        """Create a mock DynamoDB resource."""
        return MagicMock()

    @pytest.fixture
    def table(self, mock_dynamodb: MagicMock) -> MagicMock:
        return mock_dynamodb.Table.return_value

    @pytest.fixture
    def collection(self, mock_dynamodb: MagicMock) -> DocumentCollection:
        return DocumentCollection(dynamodb_resource=mock_dynamodb, table_name="test-menu")

    def test_initialization(self, mock_dynamodb: MagicMock) -> None:
        """Test that the collection binds its table."""
        collection = DocumentCollection(mock_dynamodb, "test-users", key_name="email")

        assert collection.table_name == "test-users"
        assert collection.key("a@b.c") == {"email": "a@b.c"}
        mock_dynamodb.Table.assert_called_once_with("test-users")

    def test_find_one(self, collection: DocumentCollection, table: MagicMock) -> None:
        table.get_item.return_value = {"Item": {"id": "m1", "name": "Soup"}}

        assert collection.find_one("m1") == {"id": "m1", "name": "Soup"}
        table.get_item.assert_called_once_with(Key={"id": "m1"})

    def test_find_one_missing(self, collection: DocumentCollection, table: MagicMock) -> None:
        table.get_item.return_value = {}

        assert collection.find_one("missing") is None

    def test_find_one_store_error(self, collection: DocumentCollection, table: MagicMock) -> None:
        table.get_item.side_effect = client_error("InternalServerError", "GetItem")

        with pytest.raises(StoreFailure):
            collection.find_one("m1")

    def test_find_by_index_follows_pages(
        self, collection: DocumentCollection, table: MagicMock
    ) -> None:
        """Test that index queries read every page."""
        table.query.side_effect = [
            {"Items": [{"id": "c1"}], "LastEvaluatedKey": {"id": "c1"}},
            {"Items": [{"id": "c2"}]},
        ]

        items = collection.find_by_index("email-index", "email", "guest@bistro.test")

        assert [item["id"] for item in items] == ["c1", "c2"]
        first_call = table.query.call_args_list[0].kwargs
        assert first_call["IndexName"] == "email-index"
        assert first_call["ExpressionAttributeNames"] == {"#attr": "email"}
        assert first_call["ExpressionAttributeValues"] == {":value": "guest@bistro.test"}
        assert table.query.call_args_list[1].kwargs["ExclusiveStartKey"] == {"id": "c1"}

    def test_find_many_retries_unprocessed_keys(
        self, collection: DocumentCollection, mock_dynamodb: MagicMock
    ) -> None:
        """Test that unprocessed keys are requested again."""
        mock_dynamodb.batch_get_item.side_effect = [
            {
                "Responses": {"test-menu": [{"id": "m1"}]},
                "UnprocessedKeys": {"test-menu": {"Keys": [{"id": "m2"}]}},
            },
            {"Responses": {"test-menu": [{"id": "m2"}]}, "UnprocessedKeys": {}},
        ]

        items = collection.find_many(["m1", "m2", "m3"])

        assert [item["id"] for item in items] == ["m1", "m2"]
        assert mock_dynamodb.batch_get_item.call_count == 2

    def test_find_many_chunks_keys(
        self, collection: DocumentCollection, mock_dynamodb: MagicMock
    ) -> None:
        mock_dynamodb.batch_get_item.return_value = {"Responses": {"test-menu": []}}

        collection.find_many([f"m{i}" for i in range(150)])

        assert mock_dynamodb.batch_get_item.call_count == 2

    def test_scan_all(self, collection: DocumentCollection, table: MagicMock) -> None:
        table.scan.side_effect = [
            {"Items": [{"id": "m1"}], "LastEvaluatedKey": {"id": "m1"}},
            {"Items": [{"id": "m2"}]},
        ]

        assert [item["id"] for item in collection.scan_all()] == ["m1", "m2"]

    def test_insert_one(self, collection: DocumentCollection, table: MagicMock) -> None:
        result = collection.insert_one({"id": "m1", "name": "Soup"})

        assert result.inserted_id == "m1"
        table.put_item.assert_called_once_with(Item={"id": "m1", "name": "Soup"})

    def test_insert_one_unique_conflict(
        self, collection: DocumentCollection, table: MagicMock
    ) -> None:
        """Test that a unique insert over an existing key writes nothing and reports a null id."""
        table.put_item.side_effect = client_error("ConditionalCheckFailedException")

        result = collection.insert_one({"id": "m1"}, unique=True)

        assert result.inserted_id is None
        kwargs = table.put_item.call_args.kwargs
        assert kwargs["ConditionExpression"] == "attribute_not_exists(#key)"
        assert kwargs["ExpressionAttributeNames"] == {"#key": "id"}

    def test_insert_one_store_error(self, collection: DocumentCollection, table: MagicMock) -> None:
        table.put_item.side_effect = client_error("ProvisionedThroughputExceededException")

        with pytest.raises(StoreFailure):
            collection.insert_one({"id": "m1"}, unique=True)

    def test_update_one_modifies(self, collection: DocumentCollection, table: MagicMock) -> None:
        table.update_item.return_value = {"Attributes": {"id": "m1", "price": Decimal("5")}}

        result = collection.update_one("m1", {"price": Decimal("6")})

        assert result.matched_count == 1
        assert result.modified_count == 1
        kwargs = table.update_item.call_args.kwargs
        assert kwargs["UpdateExpression"] == "SET #f0 = :v0"
        assert kwargs["ExpressionAttributeNames"] == {"#key": "id", "#f0": "price"}
        assert kwargs["ExpressionAttributeValues"] == {":v0": Decimal("6")}
        assert kwargs["ConditionExpression"] == "attribute_exists(#key)"

    def test_update_one_same_value_is_not_modified(
        self, collection: DocumentCollection, table: MagicMock
    ) -> None:
        """Test that setting a field to its current value reports no modification."""
        table.update_item.return_value = {"Attributes": {"id": "m1", "price": Decimal("5")}}

        result = collection.update_one("m1", {"price": Decimal("5")})

        assert result.matched_count == 1
        assert result.modified_count == 0

    def test_update_one_missing_document(
        self, collection: DocumentCollection, table: MagicMock
    ) -> None:
        """Test that patching a missing document creates nothing."""
        table.update_item.side_effect = client_error("ConditionalCheckFailedException", "UpdateItem")

        result = collection.update_one("missing", {"price": Decimal("6")})

        assert result.matched_count == 0
        assert result.modified_count == 0

    def test_update_one_empty_patch(self, collection: DocumentCollection, table: MagicMock) -> None:
        table.get_item.return_value = {"Item": {"id": "m1"}}

        result = collection.update_one("m1", {})

        assert result.matched_count == 1
        assert result.modified_count == 0
        table.update_item.assert_not_called()

    def test_delete_one(self, collection: DocumentCollection, table: MagicMock) -> None:
        table.delete_item.return_value = {"Attributes": {"id": "m1"}}

        result = collection.delete_one("m1")

        assert result.deleted_count == 1
        assert result.deleted_ids == ["m1"]

    def test_delete_one_missing(self, collection: DocumentCollection, table: MagicMock) -> None:
        table.delete_item.return_value = {}

        assert collection.delete_one("missing").deleted_count == 0

    def test_delete_many_counts_existing_only(
        self, collection: DocumentCollection, table: MagicMock, mock_dynamodb: MagicMock
    ) -> None:
        """Test that keys that do not exist are not counted as deleted."""
        mock_dynamodb.batch_get_item.return_value = {"Responses": {"test-menu": [{"id": "m1"}]}}
        batch = table.batch_writer.return_value.__enter__.return_value

        result = collection.delete_many(["m1", "m2"])

        assert result.deleted_count == 1
        assert result.deleted_ids == ["m1"]
        assert batch.delete_item.call_count == 2

    def test_delete_many_empty(self, collection: DocumentCollection, table: MagicMock) -> None:
        result = collection.delete_many([])

        assert result.deleted_count == 0
        table.batch_writer.assert_not_called()

    def test_estimated_count_describes_table_each_call(
        self, collection: DocumentCollection, mock_dynamodb: MagicMock
    ) -> None:
        """Counts follow DescribeTable rather than the resource's cached attribute."""
        describe_table = mock_dynamodb.meta.client.describe_table
        describe_table.side_effect = [
            {"Table": {"ItemCount": 3}},
            {"Table": {"ItemCount": 50}},
        ]

        assert collection.estimated_count() == 3
        assert collection.estimated_count() == 50
        assert describe_table.call_count == 2
        describe_table.assert_called_with(TableName="test-menu")

    def test_estimated_count_store_error(
        self, collection: DocumentCollection, mock_dynamodb: MagicMock
    ) -> None:
        mock_dynamodb.meta.client.describe_table.side_effect = client_error(
            "ResourceNotFoundException", "DescribeTable"
        )

        with pytest.raises(StoreFailure):
            collection.estimated_count()
