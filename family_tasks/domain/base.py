"""Shared base model for persisted documents."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Model whose JSON shape uses camelCase keys (startDate, executorIds, ...).

    Python code uses snake_case attribute names; either form is accepted on input.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        """Dump to the camelCase JSON-compatible dict stored on disk."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
