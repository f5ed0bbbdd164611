"""Request body schemas for batch operations."""

from __future__ import annotations

from pydantic import Field, field_validator, model_validator

from copydesk_schemas.base import BaseSchema
from copydesk_schemas.primitives import ItemId, JobType, JsonValue, LanguageCode


def _dedupe(values: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


class ProductRow(BaseSchema):
    """Parsed product row."""

    name: str = Field(..., min_length=1, description="Product name")
    description: str = Field("", description="Product description")
    attributes: dict[str, JsonValue] | None = Field(
        None, description="Structured product attributes"
    )
    tone_hint: str | None = Field(None, description="Tone of voice hint")


class UIStringRow(BaseSchema):
    """Parsed UI-string row."""

    key: str = Field(..., min_length=1, description="UI string key")
    values: dict[str, str] = Field(
        default_factory=dict, description="Localized values keyed by locale tag"
    )


class CreateUploadRequest(BaseSchema):
    """Request body for registering an upload with already-parsed rows."""

    name: str = Field(..., min_length=1, description="Upload display name")
    job_type: JobType = Field(..., description="Row kind")
    products: list[ProductRow] = Field(
        default_factory=list, description="Product rows"
    )
    ui_strings: list[UIStringRow] = Field(
        default_factory=list, description="UI-string rows"
    )

    @model_validator(mode="after")
    def validate_rows(self) -> CreateUploadRequest:
        """Ensure rows match the declared job type.

        Returns:
            CreateUploadRequest: Validated request.

        Raises:
            ValueError: If rows of the other kind are supplied.
        """
        if self.job_type == JobType.PRODUCT_TEXTS and self.ui_strings:
            raise ValueError("product uploads must not contain ui_strings")
        if self.job_type == JobType.UI_STRINGS and self.products:
            raise ValueError("ui_strings uploads must not contain products")
        return self


class CreateBatchRequest(BaseSchema):
    """Request body for creating a batch from an upload."""

    name: str = Field(..., min_length=1, description="Batch display name")
    item_ids: list[ItemId] | None = Field(None, description="Explicit member ids")
    indices: list[int] | None = Field(
        None, description="Member positions in upload creation order"
    )
    target_langs: list[LanguageCode] = Field(
        default_factory=list, description="Default translation targets"
    )

    @field_validator("target_langs")
    @classmethod
    def _dedupe_langs(cls, value: list[str]) -> list[str]:
        return _dedupe(value)


class ProcessRequest(BaseSchema):
    """Request body for starting a batch run."""

    optimize: bool = Field(False, description="Rewrite items before translating")
    target_langs: list[LanguageCode] | None = Field(
        None, description="Translation targets, batch defaults when omitted"
    )
    indices: list[int] | None = Field(
        None, description="Selected positions in batch creation order"
    )
    item_ids: list[ItemId] | None = Field(None, description="Selected item ids")

    @field_validator("target_langs")
    @classmethod
    def _dedupe_langs(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return _dedupe(value)

    @model_validator(mode="after")
    def validate_selection(self) -> ProcessRequest:
        """Ensure at most one selection form is supplied.

        Returns:
            ProcessRequest: Validated request.

        Raises:
            ValueError: If both indices and item_ids are supplied.
        """
        if self.indices is not None and self.item_ids is not None:
            raise ValueError("provide either indices or item_ids, not both")
        return self


class RegenerateRequest(BaseSchema):
    """Request body for re-running the rewrite step."""

    item_ids: list[ItemId] | None = Field(
        None, description="Items to regenerate, every member when omitted"
    )


class DiagnosticRequest(BaseSchema):
    """Request body for the gateway diagnostic."""

    name: str | None = Field(None, description="Product name for the diagnostic")
    text: str | None = Field(None, description="Description for the diagnostic")
