"""Shared pydantic configuration for request bodies."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RequestModel(BaseModel):
    """
    camelCase on the wire, snake_case in Python.

    Unknown fields (including any client-supplied tenantId) are dropped.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )

    def changes(self) -> dict:
        """Fields the client actually sent, keyed by column name."""
        return self.model_dump(exclude_unset=True)


def reject_null(value):
    """Before-validator body for update fields that may be omitted but not cleared."""
    if value is None:
        raise ValueError("cannot be null")
    return value
