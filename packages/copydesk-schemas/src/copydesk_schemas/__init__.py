"""Pydantic schemas shared across copydesk packages."""

from copydesk_schemas.version import VERSION

__all__ = ["VERSION"]
