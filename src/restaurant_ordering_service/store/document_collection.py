"""Generic document collection backed by a DynamoDB table.

Each collection wraps one table and exposes the small set of document operations the
service relies on: keyed find, index query, full scan, insert, field-set patch, delete,
bulk delete and an approximate count. DynamoDB errors are logged and re-raised as
``StoreFailure``; conditional-check failures are reported through the result objects.
"""

import logging
from typing import Any

from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

from restaurant_ordering_service.exceptions import StoreFailure
from restaurant_ordering_service.store.results import DeleteResult, InsertResult, UpdateResult

logger = logging.getLogger(__name__)

# BatchGetItem accepts at most 100 keys per request
BATCH_GET_LIMIT = 100


def _is_conditional_failure(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class DocumentCollection:
    """A named collection of documents stored in one DynamoDB table.

    Documents are plain dicts. ``key_name`` is the table's partition key; every document
    additionally carries an ``id`` attribute.
    """

    def __init__(
        self,
        dynamodb_resource: DynamoDBServiceResource,
        table_name: str,
        key_name: str = "id",
    ) -> None:
        """Initialize collection.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
            key_name: Partition key attribute of the table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.key_name = key_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def key(self, value: str) -> dict[str, Any]:
        """Build the primary key for a document."""
        return {self.key_name: value}

    def find_one(self, key_value: str) -> dict[str, Any] | None:
        """Fetch a document by primary key.

        Returns:
            The document, or None if it does not exist
        """
        try:
            response = self.table.get_item(Key=self.key(key_value))
        except ClientError as e:
            logger.error(f"Failed to get document from {self.table_name}: {e}")
            raise StoreFailure(f"get_item failed on {self.table_name}") from e

        return response.get("Item")

    def find_by_index(self, index_name: str, attribute: str, value: Any) -> list[dict[str, Any]]:
        """Equality lookup through a global secondary index.

        Args:
            index_name: Name of the index
            attribute: Partition key attribute of the index
            value: Value to match

        Returns:
            list: Matching documents (empty list if none)
        """
        kwargs: dict[str, Any] = {
            "IndexName": index_name,
            "KeyConditionExpression": "#attr = :value",
            "ExpressionAttributeNames": {"#attr": attribute},
            "ExpressionAttributeValues": {":value": value},
        }
        items: list[dict[str, Any]] = []

        try:
            while True:
                response = self.table.query(**kwargs)
                items.extend(response.get("Items", []))
                if "LastEvaluatedKey" not in response:
                    break
                kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
        except ClientError as e:
            logger.error(f"Failed to query {self.table_name}.{index_name}: {e}")
            raise StoreFailure(f"query failed on {self.table_name}") from e

        return items

    def find_many(self, key_values: list[str]) -> list[dict[str, Any]]:
        """Fetch every existing document among the given keys."""
        items: list[dict[str, Any]] = []

        try:
            for start in range(0, len(key_values), BATCH_GET_LIMIT):
                chunk = key_values[start : start + BATCH_GET_LIMIT]
                request: dict[str, Any] = {
                    self.table_name: {"Keys": [self.key(value) for value in chunk]}
                }
                while request:
                    response = self.dynamodb.batch_get_item(RequestItems=request)
                    items.extend(response.get("Responses", {}).get(self.table_name, []))
                    request = response.get("UnprocessedKeys") or {}
        except ClientError as e:
            logger.error(f"Failed to batch get from {self.table_name}: {e}")
            raise StoreFailure(f"batch_get_item failed on {self.table_name}") from e

        return items

    def scan_all(self) -> list[dict[str, Any]]:
        """Read every document in the collection."""
        kwargs: dict[str, Any] = {}
        items: list[dict[str, Any]] = []

        try:
            while True:
                response = self.table.scan(**kwargs)
                items.extend(response.get("Items", []))
                if "LastEvaluatedKey" not in response:
                    break
                kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
        except ClientError as e:
            logger.error(f"Failed to scan {self.table_name}: {e}")
            raise StoreFailure(f"scan failed on {self.table_name}") from e

        return items

    def insert_one(self, item: dict[str, Any], unique: bool = False) -> InsertResult:
        """Insert a document.

        Args:
            item: Document to write, must contain the key attribute and ``id``
            unique: Refuse to overwrite an existing document with the same key

        Returns:
            InsertResult with the document id, or a null id if ``unique`` was
            requested and the key already exists
        """
        kwargs: dict[str, Any] = {"Item": item}
        if unique:
            kwargs["ConditionExpression"] = "attribute_not_exists(#key)"
            kwargs["ExpressionAttributeNames"] = {"#key": self.key_name}

        try:
            self.table.put_item(**kwargs)
        except ClientError as e:
            if unique and _is_conditional_failure(e):
                logger.info(f"Document already exists in {self.table_name}, insert skipped")
                return InsertResult(inserted_id=None)
            logger.error(f"Failed to put document into {self.table_name}: {e}")
            raise StoreFailure(f"put_item failed on {self.table_name}") from e

        return InsertResult(inserted_id=item["id"])

    def update_one(self, key_value: str, patch: dict[str, Any]) -> UpdateResult:
        """Set fields on an existing document.

        The update never creates a document: patching a missing key reports
        ``matched_count == 0``.

        Args:
            key_value: Primary key of the document
            patch: Field values to set

        Returns:
            UpdateResult describing whether the document existed and changed
        """
        if not patch:
            matched = 1 if self.find_one(key_value) is not None else 0
            return UpdateResult(matched_count=matched, modified_count=0)

        names: dict[str, str] = {"#key": self.key_name}
        values: dict[str, Any] = {}
        assignments: list[str] = []
        for index, (field, value) in enumerate(patch.items()):
            names[f"#f{index}"] = field
            values[f":v{index}"] = value
            assignments.append(f"#f{index} = :v{index}")

        try:
            response = self.table.update_item(
                Key=self.key(key_value),
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression="attribute_exists(#key)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_OLD",
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                return UpdateResult(matched_count=0, modified_count=0)
            logger.error(f"Failed to update document in {self.table_name}: {e}")
            raise StoreFailure(f"update_item failed on {self.table_name}") from e

        old = response.get("Attributes", {})
        modified = any(old.get(field) != value for field, value in patch.items())
        return UpdateResult(matched_count=1, modified_count=1 if modified else 0)

    def delete_one(self, key_value: str) -> DeleteResult:
        """Delete a document by primary key."""
        try:
            response = self.table.delete_item(Key=self.key(key_value), ReturnValues="ALL_OLD")
        except ClientError as e:
            logger.error(f"Failed to delete document from {self.table_name}: {e}")
            raise StoreFailure(f"delete_item failed on {self.table_name}") from e

        if "Attributes" not in response:
            return DeleteResult(deleted_count=0)
        return DeleteResult(deleted_count=1, deleted_ids=[key_value])

    def delete_many(self, key_values: list[str]) -> DeleteResult:
        """Delete every document whose key is in ``key_values`` with one batch write.

        Keys that do not exist are ignored, so repeating a bulk delete is a no-op.

        Returns:
            DeleteResult listing the keys that existed before the delete
        """
        if not key_values:
            return DeleteResult(deleted_count=0)

        existing = [item[self.key_name] for item in self.find_many(key_values)]

        try:
            with self.table.batch_writer() as batch:
                for value in key_values:
                    batch.delete_item(Key=self.key(value))
        except ClientError as e:
            logger.error(f"Failed to batch delete from {self.table_name}: {e}")
            raise StoreFailure(f"batch delete failed on {self.table_name}") from e

        return DeleteResult(deleted_count=len(existing), deleted_ids=existing)

    def estimated_count(self) -> int:
        """Approximate number of documents.

        DynamoDB refreshes ``ItemCount`` roughly every six hours. The table is described on
        every call because the resource caches ``item_count`` after its first load.
        """
        try:
            response = self.dynamodb.meta.client.describe_table(TableName=self.table_name)
            return int(response["Table"]["ItemCount"])
        except ClientError as e:
            logger.error(f"Failed to describe {self.table_name}: {e}")
            raise StoreFailure(f"describe_table failed on {self.table_name}") from e
