"""Payment and reconciliation models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_serializer

from restaurant_ordering_service.store.results import DeleteResult, InsertResult


class PaymentStatus(str, Enum):
    """Order fulfilment status of a payment."""

    PENDING = "pending"
    RECEIVED = "received"


class SettlementState(str, Enum):
    """Whether the cart items paid for have been cleared."""

    PENDING_SETTLEMENT = "pending_settlement"
    SETTLED = "settled"


class PaymentCreate(BaseModel):
    """A completed charge reported by the client after the payment authority confirmed it."""

    email: str = Field(..., min_length=1, description="Paying user email")
    price: Decimal = Field(..., ge=0, description="Total amount charged")
    transaction_id: str = Field(..., min_length=1, description="Payment authority transaction id")
    cart_ids: list[str] = Field(default_factory=list, description="Cart items paid for")
    menu_item_ids: list[str] = Field(default_factory=list, description="Menu items purchased")
    status: PaymentStatus = Field(default=PaymentStatus.PENDING, description="Initial status")


class Payment(PaymentCreate):
    """A stored payment record. Append-only apart from status and settlement."""

    id: str = Field(..., description="Store-generated identifier")
    settlement: SettlementState = Field(..., description="Cart clearing state")
    timestamp: datetime = Field(..., description="When the payment was recorded")

    @field_serializer("price", when_used="json")
    def serialize_price(self, price: Decimal) -> float:
        return float(price)

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        return {
            "id": self.id,
            "email": self.email,
            "price": self.price,
            "transaction_id": self.transaction_id,
            "cart_ids": list(self.cart_ids),
            "menu_item_ids": list(self.menu_item_ids),
            "status": self.status.value,
            "settlement": self.settlement.value,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Payment":
        """Create Payment from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Payment: Parsed model instance
        """
        return cls(
            id=item["id"],
            email=item["email"],
            price=item["price"],
            transaction_id=item["transaction_id"],
            cart_ids=list(item.get("cart_ids", [])),
            menu_item_ids=list(item.get("menu_item_ids", [])),
            status=PaymentStatus(item.get("status", PaymentStatus.PENDING.value)),
            settlement=SettlementState(item.get("settlement", SettlementState.SETTLED.value)),
            timestamp=datetime.fromisoformat(item["timestamp"]),
        )


class PaymentStatusUpdate(BaseModel):
    """Status patch for a payment."""

    status: PaymentStatus


class ReconciliationResult(BaseModel):
    """Outcome of recording a payment and clearing its cart items."""

    payment: Payment
    insert_result: InsertResult
    delete_result: DeleteResult
    removed_cart_ids: list[str] = Field(default_factory=list)


class PaymentIntentRequest(BaseModel):
    """Amount to authorize with the payment authority."""

    price: Decimal = Field(..., gt=0, description="Amount in major currency units")


class PaymentIntentResponse(BaseModel):
    """Client-usable secret for confirming the charge."""

    client_secret: str
    payment_intent_id: str
    amount: int
