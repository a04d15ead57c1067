"""Typed repositories over the ordering service collections.

Repositories translate between store documents and models. Store failures propagate
as ``StoreFailure``; missing documents are reported as None or zero-count results.
"""

import logging

from restaurant_ordering_service.models.menu_models import (
    CartItem,
    CartItemCreate,
    MenuItem,
    MenuItemCreate,
    MenuItemUpdate,
)
from restaurant_ordering_service.models.payment_models import Payment
from restaurant_ordering_service.models.user_models import Role, User, UserCreate
from restaurant_ordering_service.store.document_collection import DocumentCollection
from restaurant_ordering_service.store.identifiers import new_id
from restaurant_ordering_service.store.results import DeleteResult, InsertResult, UpdateResult

logger = logging.getLogger(__name__)

USER_ID_INDEX = "id-index"
EMAIL_INDEX = "email-index"


class UserRepository:
    """Repository for user records.

    The users collection is keyed by email; a global secondary index on ``id`` serves
    lookups by user id.
    """

    def __init__(self, collection: DocumentCollection) -> None:
        self.collection = collection

    def get_by_email(self, email: str) -> User | None:
        item = self.collection.find_one(email)
        return User.from_dynamodb_item(item) if item else None

    def get_by_id(self, user_id: str) -> User | None:
        items = self.collection.find_by_index(USER_ID_INDEX, "id", user_id)
        return User.from_dynamodb_item(items[0]) if items else None

    def list_users(self) -> list[User]:
        return [User.from_dynamodb_item(item) for item in self.collection.scan_all()]

    def insert_if_absent(self, payload: UserCreate) -> InsertResult:
        """Create a guest user unless the email is already registered.

        Uniqueness is enforced by a conditional put on the email key, so concurrent
        sign-ins for one email create a single row.

        Args:
            payload: Sign-in payload

        Returns:
            InsertResult with the new id, or a null id when the user already exists
        """
        user = User(id=new_id(), email=payload.email, name=payload.name, role=Role.GUEST)
        result = self.collection.insert_one(user.to_dynamodb_item(), unique=True)

        if result.inserted_id is None:
            return InsertResult(inserted_id=None, message="User already exists")

        logger.info(f"Registered user {result.inserted_id}")
        return result

    def make_admin(self, user_id: str) -> UpdateResult:
        """Elevate a user to the admin role. Elevating an admin again changes nothing."""
        user = self.get_by_id(user_id)
        if user is None:
            return UpdateResult(matched_count=0, modified_count=0)

        return self.collection.update_one(user.email, {"role": Role.ADMIN.value})

    def delete(self, user_id: str) -> DeleteResult:
        user = self.get_by_id(user_id)
        if user is None:
            return DeleteResult(deleted_count=0)

        result = self.collection.delete_one(user.email)
        return DeleteResult(
            deleted_count=result.deleted_count,
            deleted_ids=[user_id] if result.deleted_count else [],
        )


class MenuRepository:
    """Repository for menu items."""

    def __init__(self, collection: DocumentCollection) -> None:
        self.collection = collection

    def list_items(self) -> list[MenuItem]:
        return [MenuItem.from_dynamodb_item(item) for item in self.collection.scan_all()]

    def get_item(self, item_id: str) -> MenuItem | None:
        item = self.collection.find_one(item_id)
        return MenuItem.from_dynamodb_item(item) if item else None

    def create(self, payload: MenuItemCreate) -> MenuItem:
        menu_item = MenuItem(id=new_id(), **payload.model_dump())
        self.collection.insert_one(menu_item.to_dynamodb_item(), unique=True)
        return menu_item

    def update(self, item_id: str, payload: MenuItemUpdate) -> UpdateResult:
        return self.collection.update_one(item_id, payload.model_dump(exclude_unset=True))

    def delete(self, item_id: str) -> DeleteResult:
        # Payments keep their menu item ids; the reference is never cascaded
        return self.collection.delete_one(item_id)


class CartRepository:
    """Repository for cart items, indexed by owner email."""

    def __init__(self, collection: DocumentCollection) -> None:
        self.collection = collection

    def list_for_email(self, email: str) -> list[CartItem]:
        items = self.collection.find_by_index(EMAIL_INDEX, "email", email)
        return [CartItem.from_dynamodb_item(item) for item in items]

    def get(self, cart_id: str) -> CartItem | None:
        item = self.collection.find_one(cart_id)
        return CartItem.from_dynamodb_item(item) if item else None

    def add(self, payload: CartItemCreate) -> InsertResult:
        cart_item = CartItem(id=new_id(), **payload.model_dump())
        return self.collection.insert_one(cart_item.to_dynamodb_item(), unique=True)

    def delete(self, cart_id: str) -> DeleteResult:
        return self.collection.delete_one(cart_id)


class PaymentRepository:
    """Read access to payment records. Writes go through the payment reconciler."""

    def __init__(self, collection: DocumentCollection) -> None:
        self.collection = collection

    def get(self, payment_id: str) -> Payment | None:
        item = self.collection.find_one(payment_id)
        return Payment.from_dynamodb_item(item) if item else None

    def list_for_email(self, email: str) -> list[Payment]:
        items = self.collection.find_by_index(EMAIL_INDEX, "email", email)
        payments = [Payment.from_dynamodb_item(item) for item in items]
        return sorted(payments, key=lambda p: p.timestamp, reverse=True)
