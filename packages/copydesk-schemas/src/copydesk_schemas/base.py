"""Base schema configuration for copydesk Pydantic models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with shared validation defaults.

    Note: extra="ignore" lets clients send additional fields without failing
    validation. Strings are not stripped because documents keep their exact
    whitespace.
    """

    model_config = ConfigDict(
        extra="ignore",  # Drop extra fields instead of failing
        validate_assignment=True,
        validate_default=True,
        use_enum_values=True,
    )
