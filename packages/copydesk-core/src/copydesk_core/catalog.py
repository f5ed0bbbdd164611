"""Upload registration, batch creation, and cascading deletion."""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from uuid import uuid4

from copydesk_core.aggregator import compute_snapshot
from copydesk_core.ports.orchestrator import (
    OrchestrationErrorCode,
    orchestration_error,
)
from copydesk_core.ports.storage import RecordStoreProtocol
from copydesk_core.selection import resolve_indices, resolve_item_ids
from copydesk_schemas.items import Batch, ProductItem, UIStringItem, Upload
from copydesk_schemas.primitives import (
    LANGUAGE_CODE_PATTERN,
    BatchStatus,
    ItemStatus,
    JobType,
    LanguageCode,
    Timestamp,
    UploadId,
    utc_timestamp,
)
from copydesk_schemas.requests import CreateBatchRequest, CreateUploadRequest
from copydesk_schemas.responses import BatchOverview, ItemStatusEntry, UploadSummary


class Catalog:
    """Create and remove uploads and batches in the record store."""

    def __init__(
        self,
        store: RecordStoreProtocol,
        clock: Callable[[], Timestamp] | None = None,
    ) -> None:
        """Initialize the catalog.

        Args:
            store: Record store.
            clock: Optional timestamp provider.
        """
        self._store = store
        self._clock = clock or utc_timestamp

    async def create_upload(self, request: CreateUploadRequest) -> Upload:
        """Register an upload and create its items as pending.

        Args:
            request: Upload name, job type, and parsed rows.

        Returns:
            Upload: Stored upload.
        """
        created_at = self._clock()
        upload_id = uuid4()
        items: list[ProductItem | UIStringItem] = []
        if request.job_type == JobType.PRODUCT_TEXTS:
            for sequence, row in enumerate(request.products):
                items.append(
                    ProductItem(
                        id=uuid4(),
                        upload_id=upload_id,
                        sequence=sequence,
                        created_at=created_at,
                        source_name=row.name,
                        source_text=row.description,
                        attributes=row.attributes,
                        tone_hint=row.tone_hint,
                    )
                )
        else:
            for sequence, ui_row in enumerate(request.ui_strings):
                items.append(
                    UIStringItem(
                        id=uuid4(),
                        upload_id=upload_id,
                        sequence=sequence,
                        created_at=created_at,
                        key=ui_row.key,
                        values=dict(ui_row.values),
                    )
                )
        upload = Upload(
            id=upload_id,
            name=request.name,
            job_type=request.job_type,
            total_count=len(items),
            created_at=created_at,
        )
        await self._store.save_upload(upload)
        await self._store.save_items(items)
        return upload

    async def create_batch(
        self, upload_id: UploadId, request: CreateBatchRequest
    ) -> Batch:
        """Create a batch whose membership is fixed from now on.

        Args:
            upload_id: Owning upload identifier.
            request: Batch name, member selection, and default languages.

        Returns:
            Batch: Stored batch.

        Raises:
            OrchestrationError: If the upload is unknown or the selection is empty.
        """
        upload = await self._require_upload(upload_id)
        items = await self._store.list_items_for_upload(upload.id)
        ordered_ids = [item.id for item in items]
        if request.indices is not None:
            selected = set(resolve_indices(ordered_ids, request.indices))
        elif request.item_ids is not None:
            selected = set(resolve_item_ids(ordered_ids, request.item_ids))
        else:
            selected = set(ordered_ids)
        # Membership keeps creation order regardless of request order.
        member_ids = [item_id for item_id in ordered_ids if item_id in selected]
        if not member_ids:
            raise orchestration_error(
                OrchestrationErrorCode.INVALID_SELECTION,
                "A batch needs at least one item",
                field="item_ids",
            )
        batch = Batch(
            id=uuid4(),
            upload_id=upload.id,
            name=request.name,
            job_type=upload.job_type,
            status=BatchStatus.PENDING,
            item_ids=member_ids,
            target_langs=request.target_langs,
            created_at=self._clock(),
        )
        await self._store.save_batch(batch)
        return batch

    async def delete_upload(self, upload_id: UploadId) -> None:
        """Delete an upload together with its batches and items.

        Args:
            upload_id: Upload identifier.

        Raises:
            OrchestrationError: If the upload is unknown.
        """
        await self._require_upload(upload_id)
        await self._store.delete_upload(upload_id)

    async def list_batches(self) -> list[BatchOverview]:
        """List every batch, newest first, with the status of each member.

        Returns:
            list[BatchOverview]: Batches with member statuses.
        """
        overviews: list[BatchOverview] = []
        for batch in await self._store.list_batches(None):
            items = await self._store.list_items_for_batch(batch.id)
            overviews.append(
                BatchOverview(
                    batch=batch,
                    items=[
                        ItemStatusEntry(id=item.id, status=ItemStatus(item.status))
                        for item in items
                    ],
                )
            )
        return overviews

    async def summarize_upload(
        self,
        upload_id: UploadId,
        languages: Sequence[str] | None = None,
    ) -> UploadSummary:
        """Count statuses and filled translations across an upload.

        Args:
            upload_id: Upload identifier.
            languages: Languages to count, or None for every language its
                batches target.

        Returns:
            UploadSummary: Counts over all items of the upload.

        Raises:
            OrchestrationError: If the upload is unknown or a language code is
                malformed.
        """
        upload = await self._require_upload(upload_id)
        if languages is None:
            languages = await self._batch_languages(upload.id)
        langs = _validate_languages(languages)
        items = await self._store.list_items_for_upload(upload.id)
        snapshot = compute_snapshot(items)
        if upload.job_type == JobType.PRODUCT_TEXTS:
            optimized = sum(
                1
                for item in items
                if isinstance(item, ProductItem)
                and item.optimized_text
                and item.optimized_text.strip()
            )
        else:
            optimized = snapshot.counts.completed
        return UploadSummary(
            upload_id=upload.id,
            job_type=upload.job_type,
            total_rows=len(items),
            optimized_count=optimized,
            counts=snapshot.counts,
            translation_languages=langs,
            translation_counts={
                lang: sum(1 for item in items if _has_language(item, lang))
                for lang in langs
            },
        )

    async def _batch_languages(self, upload_id: UploadId) -> list[str]:
        batches = await self._store.list_batches(upload_id)
        languages: list[str] = []
        for batch in reversed(batches):
            for lang in batch.target_langs:
                if lang not in languages:
                    languages.append(lang)
        return languages

    async def _require_upload(self, upload_id: UploadId) -> Upload:
        upload = await self._store.get_upload(upload_id)
        if upload is None:
            raise orchestration_error(
                OrchestrationErrorCode.UPLOAD_NOT_FOUND,
                "Upload not found",
                field="upload_id",
                provided=str(upload_id),
            )
        return upload


def _validate_languages(languages: Sequence[str]) -> list[LanguageCode]:
    langs: list[LanguageCode] = []
    for lang in languages:
        if not re.fullmatch(LANGUAGE_CODE_PATTERN, lang):
            raise orchestration_error(
                OrchestrationErrorCode.INVALID_REQUEST,
                "Languages must be two-letter lowercase codes",
                field="langs",
                provided=lang,
            )
        if lang not in langs:
            langs.append(lang)
    return langs


def _has_language(item: ProductItem | UIStringItem, lang: str) -> bool:
    if isinstance(item, ProductItem):
        return bool(item.translations.get(lang, "").strip())
    return any(
        text.strip()
        for locale, text in item.values.items()
        if locale.lower() == lang or locale.lower().startswith(f"{lang}-")
    )
