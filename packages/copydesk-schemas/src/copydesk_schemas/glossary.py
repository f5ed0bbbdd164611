"""Glossary schemas for enforced translation terms."""

from __future__ import annotations

from pydantic import Field

from copydesk_schemas.base import BaseSchema


class GlossaryEntry(BaseSchema):
    """Source term with its required translation per language."""

    source: str = Field(..., min_length=1, description="Source-language term")
    targets: dict[str, str] = Field(
        default_factory=dict, description="Target terms keyed by language code"
    )
    comment: str | None = Field(None, description="Usage note")


class Glossary(BaseSchema):
    """Collection of glossary entries."""

    entries: list[GlossaryEntry] = Field(
        default_factory=list, description="Glossary entries"
    )
