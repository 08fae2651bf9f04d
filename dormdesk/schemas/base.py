"""Shared configuration for backend payload schemas."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BackendModel(BaseModel):
    """Base schema for payloads exchanged with the property-management backend.

    The backend speaks camelCase JSON; attributes stay snake_case.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )
