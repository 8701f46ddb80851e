"""Base class for schemas read back from stored rows."""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict


class SchemaBase(BaseModel):
    """Read schema populated from ORM attributes.

    Only declared fields are copied, so columns left off a schema (tokens,
    store bookkeeping) never leave the service layer.
    """

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    @classmethod
    def from_row(cls, row: Any) -> Self:
        return cls.model_validate(row)
