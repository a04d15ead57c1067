"""User and role models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Role(str, Enum):
    """Roles a user can hold. Roles only escalate, guest to admin."""

    GUEST = "guest"
    ADMIN = "admin"


class UserCreate(BaseModel):
    """Payload sent on first sign-in."""

    email: str = Field(..., min_length=1, description="User email, unique across users")
    name: str | None = Field(None, description="Display name")


class User(BaseModel):
    """A registered user.

    Stored in DynamoDB keyed by email so that the table itself enforces uniqueness.
    """

    id: str = Field(..., description="Store-generated user identifier")
    email: str = Field(..., min_length=1, description="User email")
    name: str | None = Field(None, description="Display name")
    role: Role = Field(default=Role.GUEST, description="Current role")

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "id": self.id,
            "email": self.email,
            "role": self.role.value,
        }

        if self.name is not None:
            item["name"] = self.name

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "User":
        """Create User from DynamoDB item.

        Items written before roles existed carry no role and are treated as guests.
        """
        return cls(
            id=item["id"],
            email=item["email"],
            name=item.get("name"),
            role=Role(item.get("role", Role.GUEST.value)),
        )
