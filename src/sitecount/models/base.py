"""Base Pydantic models with local storage serialization."""

from datetime import datetime, timezone
from typing import Any, Self

from pydantic import BaseModel as PydanticBaseModel, ConfigDict, Field
from ulid import ULID


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return str(ULID())


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


class BaseModel(PydanticBaseModel):
    """Base model for records persisted in the local store.

    Records are kept as JSON-compatible dicts so any string key-value
    backend can hold them.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        validate_assignment=True,
    )

    id: str = Field(default_factory=generate_ulid)
    created_at: datetime = Field(default_factory=utc_now)

    def to_storage(self) -> dict[str, Any]:
        """Serialize model to a JSON-compatible dict.

        None values are dropped to keep stored entries small.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_storage(cls, item: dict[str, Any]) -> Self:
        """Deserialize a stored dict to a model instance."""
        return cls.model_validate(item)
