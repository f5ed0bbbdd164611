"""Work item, batch, and upload schemas."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field, model_validator

from copydesk_schemas.base import BaseSchema
from copydesk_schemas.primitives import (
    BatchId,
    BatchStatus,
    ItemId,
    ItemStatus,
    JobType,
    JsonValue,
    LanguageCode,
    LeaseToken,
    Timestamp,
    UploadId,
)


class ProductItem(BaseSchema):
    """Product row that is rewritten and translated."""

    kind: Literal["product"] = Field("product", description="Item variant tag")
    id: ItemId = Field(..., description="Item identifier")
    upload_id: UploadId = Field(..., description="Owning upload identifier")
    sequence: int = Field(..., ge=0, description="Row position within the upload")
    created_at: Timestamp = Field(..., description="Creation timestamp")
    source_name: str = Field(..., description="Product name from the source row")
    source_text: str = Field("", description="Product description to optimize")
    attributes: dict[str, JsonValue] | None = Field(
        None, description="Structured product attributes"
    )
    tone_hint: str | None = Field(None, description="Optional tone of voice hint")
    optimized_text: str | None = Field(None, description="Rewritten description")
    translations: dict[str, str] = Field(
        default_factory=dict, description="Translated text keyed by language code"
    )
    status: ItemStatus = Field(ItemStatus.PENDING, description="Current status")
    error_message: str | None = Field(None, description="Failure reason if errored")


class UIStringItem(BaseSchema):
    """UI string row translated between locales."""

    kind: Literal["ui_string"] = Field("ui_string", description="Item variant tag")
    id: ItemId = Field(..., description="Item identifier")
    upload_id: UploadId = Field(..., description="Owning upload identifier")
    sequence: int = Field(..., ge=0, description="Row position within the upload")
    created_at: Timestamp = Field(..., description="Creation timestamp")
    key: str = Field(..., min_length=1, description="UI string key")
    values: dict[str, str] = Field(
        default_factory=dict, description="Localized values keyed by locale tag"
    )
    status: ItemStatus = Field(ItemStatus.PENDING, description="Current status")
    error_message: str | None = Field(None, description="Failure reason if errored")


WorkItem = Annotated[ProductItem | UIStringItem, Field(discriminator="kind")]


class Upload(BaseSchema):
    """Ingestion unit owning items and batches."""

    id: UploadId = Field(..., description="Upload identifier")
    name: str = Field(..., min_length=1, description="Display name")
    job_type: JobType = Field(..., description="Row kind carried by the upload")
    total_count: int = Field(..., ge=0, description="Number of parsed rows")
    created_at: Timestamp = Field(..., description="Creation timestamp")


class Batch(BaseSchema):
    """Fixed-membership grouping of items from one upload."""

    id: BatchId = Field(..., description="Batch identifier")
    upload_id: UploadId = Field(..., description="Owning upload identifier")
    name: str = Field(..., min_length=1, description="Display name")
    job_type: JobType = Field(..., description="Row kind of the member items")
    status: BatchStatus = Field(BatchStatus.PENDING, description="Batch status")
    item_ids: list[ItemId] = Field(
        default_factory=list, description="Member item ids in creation order"
    )
    target_langs: list[LanguageCode] = Field(
        default_factory=list, description="Default translation targets"
    )
    created_at: Timestamp = Field(..., description="Creation timestamp")
    updated_at: Timestamp | None = Field(None, description="Last status change")

    @model_validator(mode="after")
    def validate_membership(self) -> Batch:
        """Ensure batch membership has no duplicates.

        Returns:
            Batch: Validated batch.

        Raises:
            ValueError: If an item id appears more than once.
        """
        if len(set(self.item_ids)) != len(self.item_ids):
            raise ValueError("item_ids must be unique")
        return self


class BatchLease(BaseSchema):
    """Exclusive ownership token for one batch run."""

    batch_id: BatchId = Field(..., description="Leased batch identifier")
    token: LeaseToken = Field(..., description="Lease owner token")
    acquired_at: Timestamp = Field(..., description="Acquisition timestamp")
    renewed_at: Timestamp | None = Field(None, description="Last renewal timestamp")
