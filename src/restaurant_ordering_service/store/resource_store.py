"""Resource store: the four document collections of the ordering service.

Besides handing out collections, the store runs aggregation pipelines and multi-document
transactional writes across collections.
"""

import logging
from typing import Any

from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource

from restaurant_ordering_service.config import Settings
from restaurant_ordering_service.exceptions import StoreFailure
from restaurant_ordering_service.store.document_collection import DocumentCollection
from restaurant_ordering_service.store.pipeline import Row, Stage, run_pipeline

logger = logging.getLogger(__name__)

# TransactWriteItems accepts at most 100 actions
MAX_TRANSACTION_ITEMS = 100

USERS = "users"
MENU = "menu"
CARTS = "carts"
PAYMENTS = "payments"


class ResourceStore:
    """Access point for the users, menu, carts and payments collections.

    Users are keyed by email so that the table enforces email uniqueness; every other
    collection is keyed by ``id``.
    """

    def __init__(
        self,
        dynamodb_resource: DynamoDBServiceResource,
        users_table: str,
        menu_table: str,
        carts_table: str,
        payments_table: str,
    ) -> None:
        """Initialize the store.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            users_table: Users table name
            menu_table: Menu table name
            carts_table: Carts table name
            payments_table: Payments table name
        """
        self.dynamodb = dynamodb_resource
        self.users = DocumentCollection(dynamodb_resource, users_table, key_name="email")
        self.menu = DocumentCollection(dynamodb_resource, menu_table)
        self.carts = DocumentCollection(dynamodb_resource, carts_table)
        self.payments = DocumentCollection(dynamodb_resource, payments_table)
        self._collections = {
            USERS: self.users,
            MENU: self.menu,
            CARTS: self.carts,
            PAYMENTS: self.payments,
        }
        self._serializer = TypeSerializer()

    @classmethod
    def from_settings(
        cls, dynamodb_resource: DynamoDBServiceResource, settings: Settings
    ) -> "ResourceStore":
        return cls(
            dynamodb_resource=dynamodb_resource,
            users_table=settings.users_table,
            menu_table=settings.menu_table,
            carts_table=settings.carts_table,
            payments_table=settings.payments_table,
        )

    def collection(self, name: str) -> DocumentCollection:
        """Return a collection by name.

        Raises:
            ValueError: If the collection is unknown
        """
        try:
            return self._collections[name]
        except KeyError:
            raise ValueError(f"Unknown collection: {name}") from None

    def aggregate(self, collection_name: str, stages: list[Stage]) -> list[Row]:
        """Run an aggregation pipeline over a collection.

        Collections referenced by lookup stages are read at most once per run.

        Args:
            collection_name: Source collection
            stages: Ordered pipeline stages

        Returns:
            list: Rows produced by the last stage
        """
        loaded: dict[str, list[Row]] = {}

        def resolve(name: str) -> list[Row]:
            if name not in loaded:
                loaded[name] = self.collection(name).scan_all()
            return loaded[name]

        rows = resolve(collection_name)
        return run_pipeline(list(rows), stages, resolve)

    def transact_write(
        self,
        puts: list[tuple[DocumentCollection, dict[str, Any]]],
        deletes: list[tuple[DocumentCollection, str]],
        delete_owner: tuple[str, Any] | None = None,
    ) -> None:
        """Apply puts and deletes across collections as one all-or-nothing write.

        Every put is conditioned on its key not existing yet. With ``delete_owner`` set to
        ``(attribute, value)``, every delete is conditioned on the item being absent or
        holding that value, so the whole write is cancelled if any item has another owner.

        Args:
            puts: (collection, document) pairs to insert
            deletes: (collection, key value) pairs to delete
            delete_owner: Optional (attribute, value) every deleted item must carry

        Raises:
            ValueError: If the write exceeds the transaction size limit
            StoreFailure: If the transaction is cancelled or fails
        """
        if len(puts) + len(deletes) > MAX_TRANSACTION_ITEMS:
            raise ValueError(
                f"Transaction of {len(puts) + len(deletes)} items exceeds {MAX_TRANSACTION_ITEMS}"
            )

        actions: list[dict[str, Any]] = []
        for collection, item in puts:
            actions.append(
                {
                    "Put": {
                        "TableName": collection.table_name,
                        "Item": self._serialize(item),
                        "ConditionExpression": "attribute_not_exists(#key)",
                        "ExpressionAttributeNames": {"#key": collection.key_name},
                    }
                }
            )
        for collection, key_value in deletes:
            delete: dict[str, Any] = {
                "TableName": collection.table_name,
                "Key": self._serialize(collection.key(key_value)),
            }
            if delete_owner is not None:
                attribute, value = delete_owner
                delete["ConditionExpression"] = "attribute_not_exists(#key) OR #owner = :owner"
                delete["ExpressionAttributeNames"] = {"#key": collection.key_name, "#owner": attribute}
                delete["ExpressionAttributeValues"] = self._serialize({":owner": value})
            actions.append({"Delete": delete})

        try:
            self.dynamodb.meta.client.transact_write_items(TransactItems=actions)
        except ClientError as e:
            logger.error(f"Transactional write of {len(actions)} items failed: {e}")
            raise StoreFailure("transact_write_items failed") from e

    def _serialize(self, item: dict[str, Any]) -> dict[str, Any]:
        return {name: self._serializer.serialize(value) for name, value in item.items()}
