"""Payment reconciliation: record a payment and clear the cart items it paid for."""

import logging
import time
from datetime import UTC, datetime

from fastapi.concurrency import run_in_threadpool

from restaurant_ordering_service.exceptions import (
    Forbidden,
    InvalidStatusTransition,
    NotFound,
    StoreFailure,
)
from restaurant_ordering_service.models.payment_models import (
    Payment,
    PaymentCreate,
    PaymentStatus,
    ReconciliationResult,
    SettlementState,
)
from restaurant_ordering_service.observability.decorators import traced
from restaurant_ordering_service.observability.metrics import (
    record_payment_reconciled,
    record_reconciliation_duration,
    record_reconciliation_failure,
)
from restaurant_ordering_service.store.identifiers import new_id, to_native_id, to_native_ids
from restaurant_ordering_service.store.resource_store import MAX_TRANSACTION_ITEMS, ResourceStore
from restaurant_ordering_service.store.results import DeleteResult, InsertResult, UpdateResult

logger = logging.getLogger(__name__)

TRANSACTION_MODE = "transaction"
SETTLEMENT_MODE = "settlement"


class PaymentReconciler:
    """Records payments and removes the purchased cart items as one logical unit.

    Two strategies are used:

    - transaction: the payment put and every cart delete are committed in a single
      DynamoDB transaction, so either both happen or neither does.
    - settlement: used when transactions are disabled or the cart is too large for one
      transaction. The payment is written as ``pending_settlement``, the cart items are
      bulk-deleted, then the payment is flipped to ``settled``. A failure in between
      leaves a visible ``pending_settlement`` record that ``resume_settlement`` completes.

    Reconciliations are not de-duplicated: replaying one records a second payment and
    deletes nothing.
    """

    def __init__(self, store: ResourceStore, use_transactions: bool = True) -> None:
        """Initialize the reconciler.

        Args:
            store: Resource store holding the payments and carts collections
            use_transactions: Whether to prefer DynamoDB transactions
        """
        self.store = store
        self.use_transactions = use_transactions

    @traced("reconcile_payment")
    async def reconcile(self, payment: PaymentCreate) -> ReconciliationResult:
        """Record a payment and delete the cart items it covers.

        Cart ids are validated, and every cart item still present must belong to the
        paying user, before anything is written.

        Args:
            payment: Completed payment reported by the client

        Returns:
            ReconciliationResult with the stored payment, the insert result and the
            delete result

        Raises:
            InvalidId: If any cart id is malformed
            Forbidden: If any cart item belongs to another user
            StoreFailure: If the store fails; in settlement mode the payment may remain
                recorded as ``pending_settlement``
        """
        cart_ids = to_native_ids(payment.cart_ids)
        in_transaction = self.use_transactions and len(cart_ids) + 1 <= MAX_TRANSACTION_ITEMS
        mode = TRANSACTION_MODE if in_transaction else SETTLEMENT_MODE

        record = Payment(
            id=new_id(),
            email=payment.email,
            price=payment.price,
            transaction_id=payment.transaction_id,
            cart_ids=cart_ids,
            menu_item_ids=list(payment.menu_item_ids),
            status=payment.status,
            settlement=SettlementState.SETTLED if in_transaction else SettlementState.PENDING_SETTLEMENT,
            timestamp=datetime.now(UTC),
        )

        started = time.perf_counter()
        try:
            existing = await run_in_threadpool(self._load_owned_cart_items, record)
            if in_transaction:
                result = await run_in_threadpool(self._reconcile_in_transaction, record, existing)
            else:
                result = await run_in_threadpool(self._reconcile_with_settlement, record)
        except StoreFailure as e:
            record_reconciliation_failure(mode, type(e).__name__)
            raise

        record_reconciliation_duration(mode, time.perf_counter() - started)
        record_payment_reconciled(mode, result.delete_result.deleted_count)
        logger.info(
            f"Recorded payment {record.id} ({mode}), "
            f"cleared {result.delete_result.deleted_count} of {len(cart_ids)} cart items"
        )
        return result

    def _load_owned_cart_items(self, record: Payment) -> list[str]:
        items = self.store.carts.find_many(record.cart_ids)
        foreign = [item["id"] for item in items if item.get("email") != record.email]
        if foreign:
            logger.warning(
                f"Payment by {record.email} refused: cart items {foreign} belong to another user"
            )
            raise Forbidden(f"Cart items {foreign} do not belong to {record.email}")
        return [item["id"] for item in items]

    def _reconcile_in_transaction(
        self, record: Payment, existing: list[str]
    ) -> ReconciliationResult:
        # Each delete also requires the payer to still own the item
        self.store.transact_write(
            puts=[(self.store.payments, record.to_dynamodb_item())],
            deletes=[(self.store.carts, cart_id) for cart_id in record.cart_ids],
            delete_owner=("email", record.email),
        )

        return ReconciliationResult(
            payment=record,
            insert_result=InsertResult(inserted_id=record.id),
            delete_result=DeleteResult(deleted_count=len(existing), deleted_ids=existing),
            removed_cart_ids=existing,
        )

    def _reconcile_with_settlement(self, record: Payment) -> ReconciliationResult:
        insert_result = self.store.payments.insert_one(record.to_dynamodb_item(), unique=True)
        delete_result = self._settle(record)

        return ReconciliationResult(
            payment=record.model_copy(update={"settlement": SettlementState.SETTLED}),
            insert_result=insert_result,
            delete_result=delete_result,
            removed_cart_ids=delete_result.deleted_ids,
        )

    def _settle(self, payment: Payment) -> DeleteResult:
        try:
            delete_result = self.store.carts.delete_many(payment.cart_ids)
            self.store.payments.update_one(
                payment.id, {"settlement": SettlementState.SETTLED.value}
            )
        except StoreFailure:
            logger.error(f"Payment {payment.id} recorded but not settled; resume its settlement")
            raise

        return delete_result

    @traced("resume_settlement", record_args=("payment_id",))
    async def resume_settlement(self, payment_id: str) -> ReconciliationResult:
        """Finish clearing the cart items of a ``pending_settlement`` payment.

        Safe to call repeatedly: a settled payment is returned unchanged.

        Args:
            payment_id: Payment to settle

        Returns:
            ReconciliationResult; ``insert_result`` has a null id since nothing is inserted

        Raises:
            InvalidId: If the payment id is malformed
            NotFound: If the payment does not exist
        """
        native_id = to_native_id(payment_id)
        item = await run_in_threadpool(self.store.payments.find_one, native_id)
        if item is None:
            raise NotFound(f"Payment {native_id} not found")

        payment = Payment.from_dynamodb_item(item)
        if payment.settlement == SettlementState.SETTLED:
            return ReconciliationResult(
                payment=payment,
                insert_result=InsertResult(inserted_id=None, message="Payment already settled"),
                delete_result=DeleteResult(deleted_count=0),
            )

        try:
            delete_result = await run_in_threadpool(self._settle, payment)
        except StoreFailure as e:
            record_reconciliation_failure(SETTLEMENT_MODE, type(e).__name__)
            raise

        logger.info(f"Settled payment {native_id}, cleared {delete_result.deleted_count} cart items")
        return ReconciliationResult(
            payment=payment.model_copy(update={"settlement": SettlementState.SETTLED}),
            insert_result=InsertResult(inserted_id=None),
            delete_result=delete_result,
            removed_cart_ids=delete_result.deleted_ids,
        )

    async def update_status(self, payment: Payment, status: PaymentStatus) -> UpdateResult:
        """Set the status of a payment. Setting the current status again is a no-op.

        Raises:
            InvalidStatusTransition: If a received payment would go back to pending
        """
        if payment.status == PaymentStatus.RECEIVED and status == PaymentStatus.PENDING:
            raise InvalidStatusTransition(f"Payment {payment.id} was already received")

        result = await run_in_threadpool(
            self.store.payments.update_one, payment.id, {"status": status.value}
        )
        if result.modified_count:
            logger.info(f"Payment {payment.id} status set to {status.value}")
        return result
