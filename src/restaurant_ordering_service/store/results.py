"""Write results returned by store operations and echoed to API clients."""

from pydantic import BaseModel, Field


class InsertResult(BaseModel):
    """Result of an insert. ``inserted_id`` is None when nothing was written."""

    inserted_id: str | None = None
    message: str | None = None


class UpdateResult(BaseModel):
    """Result of a single-document patch."""

    matched_count: int = Field(default=0, ge=0)
    modified_count: int = Field(default=0, ge=0)


class DeleteResult(BaseModel):
    """Result of a single or bulk delete."""

    deleted_count: int = Field(default=0, ge=0)
    deleted_ids: list[str] = Field(default_factory=list)
