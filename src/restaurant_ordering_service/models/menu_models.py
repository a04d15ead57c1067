"""Menu and cart models.

Prices are kept as ``Decimal`` so they can be written to DynamoDB unchanged, and are
rendered as plain JSON numbers in API responses.
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_serializer


class MenuItemCreate(BaseModel):
    """Payload for creating a menu item."""

    name: str = Field(..., min_length=1, description="Item name")
    category: str = Field(..., min_length=1, description="Menu category, e.g. 'salad'")
    price: Decimal = Field(..., ge=0, description="Item price")
    recipe: str | None = Field(None, description="Recipe or description")
    image: str | None = Field(None, description="Image URL")


class MenuItemUpdate(BaseModel):
    """Partial update for a menu item. Unset fields are left untouched."""

    name: str | None = Field(None, min_length=1)
    category: str | None = Field(None, min_length=1)
    price: Decimal | None = Field(None, ge=0)
    recipe: str | None = None
    image: str | None = None


class MenuItem(MenuItemCreate):
    """Menu item model."""

    id: str = Field(..., description="Store-generated identifier")

    @field_serializer("price", when_used="json")
    def serialize_price(self, price: Decimal) -> float:
        return float(price)

    def to_dynamodb_item(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "MenuItem":
        return cls(**item)


class CartItemCreate(BaseModel):
    """Payload for adding a menu item to a buyer's cart."""

    email: str = Field(..., min_length=1, description="Cart owner email")
    menu_item_id: str = Field(..., description="Referenced menu item")
    name: str | None = Field(None, description="Menu item name at time of adding")
    image: str | None = Field(None, description="Menu item image at time of adding")
    price: Decimal = Field(..., ge=0, description="Price at time of adding")


class CartItem(CartItemCreate):
    """A single entry in a buyer's cart."""

    id: str = Field(..., description="Store-generated identifier")

    @field_serializer("price", when_used="json")
    def serialize_price(self, price: Decimal) -> float:
        return float(price)

    def to_dynamodb_item(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "CartItem":
        return cls(**item)
