"""Dashboard report models."""

from pydantic import BaseModel, Field


class OverviewStats(BaseModel):
    """Headline numbers for the admin dashboard.

    Counts are table item-count estimates and may lag behind recent writes.
    """

    users: int = Field(..., ge=0)
    menu_items: int = Field(..., ge=0)
    orders: int = Field(..., ge=0)
    revenue: float = Field(default=0.0, ge=0)


class CategoryStats(BaseModel):
    """Units sold and revenue for one menu category."""

    category: str
    quantity: int = Field(..., ge=0)
    revenue: float = Field(..., ge=0)
