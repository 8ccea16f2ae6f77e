"""
Shared schema configuration.

The wire format is camelCase (publishedYear, displayName, createdAt) while
Python attributes stay snake_case. alias_generator maps one to the other;
populate_by_name lets clients send either spelling, and FastAPI serializes
response models by alias.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    """Plain acknowledgement, e.g. after logout."""

    message: str
