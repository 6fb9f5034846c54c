"""Base pydantic model for persisted documents with camelCase field names."""

import uuid

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .errors import ValidationError


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire and in stored JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def new_id() -> str:
    return str(uuid.uuid4())


def parse_id(value: str | None, label: str = "ID") -> str:
    """Validate an entity id, raising ValidationError on a malformed value."""
    try:
        return str(uuid.UUID(str(value)))
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid {label}") from exc
