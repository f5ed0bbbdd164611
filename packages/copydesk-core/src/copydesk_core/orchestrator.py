"""Batch orchestrator driving items through the gateway one at a time."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from uuid import uuid4

from copydesk_core.format_guard import clean_translation_format
from copydesk_core.gateway import TextGateway
from copydesk_core.ports.orchestrator import (
    LogSinkProtocol,
    OrchestrationErrorCode,
    build_batch_completed_log,
    build_batch_started_log,
    build_item_log,
    build_lease_rejected_log,
    orchestration_error,
)
from copydesk_core.ports.storage import (
    RecordStoreProtocol,
    StorageError,
    StorageErrorCode,
)
from copydesk_core.prompts import build_prompt_values
from copydesk_core.selection import resolve_selection
from copydesk_core.signals import ChangeSignal
from copydesk_core.state_machine import transition_fields
from copydesk_core.text_transforms import apply_glossary
from copydesk_schemas.events import ItemEvent
from copydesk_schemas.glossary import GlossaryEntry
from copydesk_schemas.items import Batch, ProductItem, UIStringItem
from copydesk_schemas.llm import RewriteDocument
from copydesk_schemas.logs import LogEntry
from copydesk_schemas.primitives import (
    BatchId,
    BatchStatus,
    ItemId,
    ItemStatus,
    JobType,
    JsonValue,
    LanguageCode,
    LogLevel,
    Timestamp,
    utc_timestamp,
)
from copydesk_schemas.requests import ProcessRequest

logger = logging.getLogger(__name__)

UI_SOURCE_LOCALES = ("sv-SE", "en-US")
_BATCH_STATUS_ORDER = (BatchStatus.PENDING, BatchStatus.RUNNING, BatchStatus.COMPLETED)


class RunKind(StrEnum):
    """Kinds of batch runs."""

    PROCESS = "process"
    REGENERATE = "regenerate"


class ItemOutcome(StrEnum):
    """Final result of one item within a run."""

    COMPLETED = "completed"
    OPTIMIZED = "optimized"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class RunPlan:
    """Resolved, leased unit of work for one batch run."""

    batch_id: BatchId
    job_type: JobType
    item_ids: tuple[ItemId, ...]
    optimize: bool
    target_langs: tuple[LanguageCode, ...]
    lease_token: str
    kind: RunKind = RunKind.PROCESS
    batch_name: str = ""


@dataclass
class BatchRunSummary:
    """Outcome counts for a finished run."""

    batch_id: BatchId
    outcomes: dict[ItemId, ItemOutcome] = field(default_factory=dict)

    def count(self, outcome: ItemOutcome) -> int:
        """Return the number of items with the given outcome."""
        return sum(1 for value in self.outcomes.values() if value == outcome)


class BatchOrchestrator:
    """Run selected batch items sequentially with per-item failure isolation."""

    def __init__(
        self,
        store: RecordStoreProtocol,
        gateway: TextGateway,
        *,
        log_sink: LogSinkProtocol | None = None,
        signal: ChangeSignal | None = None,
        glossary: Sequence[GlossaryEntry] | None = None,
        clock: Callable[[], Timestamp] | None = None,
        token_factory: Callable[[], str] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Record store shared with progress observers.
            gateway: Text generation gateway.
            log_sink: Optional structured log sink.
            signal: Optional change hub published after each item write.
            glossary: Glossary applied to translation output.
            clock: Optional timestamp provider.
            token_factory: Optional lease token provider.
        """
        self._store = store
        self._gateway = gateway
        self._log_sink = log_sink
        self._signal = signal
        self._glossary = list(glossary or [])
        self._clock = clock or utc_timestamp
        self._token_factory = token_factory or (lambda: uuid4().hex)

    async def prepare_run(self, batch_id: BatchId, request: ProcessRequest) -> RunPlan:
        """Validate a process request, resolve its selection, and take the lease.

        Args:
            batch_id: Batch identifier.
            request: Phases and selection.

        Returns:
            RunPlan: Leased plan ready for execute.

        Raises:
            OrchestrationError: If the batch is unknown, the request is invalid,
                nothing is selected, or another run holds the lease.
        """
        batch = await self._require_batch(batch_id)
        target_langs = tuple(
            request.target_langs
            if request.target_langs is not None
            else batch.target_langs
        )
        _validate_phases(batch, request.optimize, target_langs)
        item_ids = await self._resolve_items(
            batch, indices=request.indices, item_ids=request.item_ids
        )
        token = await self._acquire_lease(batch.id)
        return RunPlan(
            batch_id=batch.id,
            job_type=JobType(batch.job_type),
            item_ids=tuple(item_ids),
            optimize=request.optimize,
            target_langs=target_langs,
            lease_token=token,
            batch_name=batch.name,
        )

    async def prepare_regenerate(
        self, batch_id: BatchId, item_ids: Sequence[ItemId] | None = None
    ) -> RunPlan:
        """Plan a rewrite-only run that re-enters already processed items.

        Args:
            batch_id: Batch identifier.
            item_ids: Items to regenerate, or None for every member.

        Returns:
            RunPlan: Leased plan ready for execute.

        Raises:
            OrchestrationError: If the batch is unknown, holds UI strings,
                nothing is selected, or another run holds the lease.
        """
        batch = await self._require_batch(batch_id)
        if batch.job_type != JobType.PRODUCT_TEXTS:
            raise orchestration_error(
                OrchestrationErrorCode.INVALID_REQUEST,
                "Regeneration is only supported for product texts",
                batch_id=batch.id,
                field="job_type",
                provided=str(batch.job_type),
            )
        resolved = await self._resolve_items(batch, indices=None, item_ids=item_ids)
        token = await self._acquire_lease(batch.id)
        return RunPlan(
            batch_id=batch.id,
            job_type=JobType.PRODUCT_TEXTS,
            item_ids=tuple(resolved),
            optimize=True,
            target_langs=(),
            lease_token=token,
            kind=RunKind.REGENERATE,
            batch_name=batch.name,
        )

    async def execute(self, plan: RunPlan) -> BatchRunSummary:
        """Process every planned item, then complete the batch and release the lease.

        Item failures are recorded on the item and never raised.

        Args:
            plan: Plan returned by prepare_run or prepare_regenerate.

        Returns:
            BatchRunSummary: Per-item outcomes.
        """
        summary = BatchRunSummary(batch_id=plan.batch_id)
        try:
            if plan.kind == RunKind.PROCESS:
                await self._advance_batch(plan.batch_id, BatchStatus.RUNNING)
            await self._emit_log(
                build_batch_started_log(
                    self._clock(),
                    plan.batch_id,
                    len(plan.item_ids),
                    plan.optimize,
                    list(plan.target_langs),
                )
            )
            for item_id in plan.item_ids:
                await self._store.renew_lease(plan.batch_id, plan.lease_token)
                summary.outcomes[item_id] = await self._run_item(plan, item_id)
            if plan.kind == RunKind.PROCESS:
                await self._advance_batch(plan.batch_id, BatchStatus.COMPLETED)
        finally:
            await self._store.release_lease(plan.batch_id, plan.lease_token)
        await self._emit_log(
            build_batch_completed_log(
                self._clock(),
                plan.batch_id,
                completed=summary.count(ItemOutcome.COMPLETED)
                + summary.count(ItemOutcome.OPTIMIZED),
                failed=summary.count(ItemOutcome.FAILED),
                skipped=summary.count(ItemOutcome.SKIPPED),
            )
        )
        return summary

    async def run(
        self,
        batch_id: BatchId,
        selection: Sequence[ItemId] | None = None,
        *,
        optimize: bool = False,
        target_langs: Sequence[LanguageCode] | None = None,
    ) -> BatchRunSummary:
        """Prepare and execute a run in one call.

        Args:
            batch_id: Batch identifier.
            selection: Item ids to process, or None for the whole batch.
            optimize: Whether to rewrite items.
            target_langs: Translation targets, batch defaults when None.

        Returns:
            BatchRunSummary: Per-item outcomes.
        """
        request = ProcessRequest(
            optimize=optimize,
            target_langs=list(target_langs) if target_langs is not None else None,
            item_ids=list(selection) if selection is not None else None,
        )
        plan = await self.prepare_run(batch_id, request)
        return await self.execute(plan)

    async def _run_item(self, plan: RunPlan, item_id: ItemId) -> ItemOutcome:
        item = await self._store.find_item(item_id)
        if item is None:
            await self._emit_item_log(
                plan.batch_id, item_id, ItemEvent.SKIPPED, "Item no longer exists"
            )
            return ItemOutcome.SKIPPED
        try:
            if plan.kind == RunKind.REGENERATE:
                return await self._regenerate_product(plan, item)
            if isinstance(item, ProductItem):
                return await self._process_product(plan, item)
            return await self._process_ui_string(plan, item)
        except Exception as exc:
            return await self._fail_item(plan, item_id, _describe(exc))

    async def _process_product(self, plan: RunPlan, item: ProductItem) -> ItemOutcome:
        await self._emit_item_log(
            plan.batch_id, item.id, ItemEvent.STARTED, "Processing product"
        )
        reentry = item.status != ItemStatus.PENDING
        source_text = item.optimized_text or item.source_text
        if plan.optimize:
            item = await self._transition(
                plan, item, ItemStatus.OPTIMIZING, reentry=reentry
            )
            optimized = await self._gateway.rewrite(
                _rewrite_document(item),
                context=await self._prompt_context(plan, item),
            )
            item = await self._transition(
                plan, item, ItemStatus.OPTIMIZED, optimized_text=optimized
            )
            source_text = optimized
            reentry = False
        if not plan.target_langs:
            await self._transition(plan, item, ItemStatus.COMPLETED, reentry=reentry)
            return await self._complete(plan, item.id)

        item = await self._transition(
            plan, item, ItemStatus.TRANSLATING, reentry=reentry
        )
        translations = dict(item.translations)
        translated = await self._translate_all(plan, item.id, source_text)
        if not translated:
            return await self._fail_item(plan, item.id, "All translations failed")
        translations.update(translated)
        await self._transition(
            plan,
            item,
            ItemStatus.COMPLETED,
            translations=_json_dict(translations),
        )
        return await self._complete(plan, item.id)

    async def _process_ui_string(
        self, plan: RunPlan, item: UIStringItem
    ) -> ItemOutcome:
        await self._emit_item_log(
            plan.batch_id, item.id, ItemEvent.STARTED, "Processing UI string"
        )
        reentry = item.status != ItemStatus.PENDING
        item = await self._transition(
            plan, item, ItemStatus.PROCESSING, reentry=reentry
        )
        source_text = _ui_source_text(item.values)
        if not source_text.strip():
            await self._transition(plan, item, ItemStatus.COMPLETED)
            return await self._complete(plan, item.id)
        translated = await self._translate_all(plan, item.id, source_text)
        if not translated:
            return await self._fail_item(plan, item.id, "All translations failed")
        values = dict(item.values)
        for lang, text in translated.items():
            values[map_target_locale(lang, values.keys())] = text
        await self._transition(
            plan, item, ItemStatus.COMPLETED, values=_json_dict(values)
        )
        return await self._complete(plan, item.id)

    async def _regenerate_product(
        self, plan: RunPlan, item: ProductItem | UIStringItem
    ) -> ItemOutcome:
        if not isinstance(item, ProductItem) or item.status == ItemStatus.PENDING:
            await self._emit_item_log(
                plan.batch_id,
                item.id,
                ItemEvent.SKIPPED,
                "Only processed products can be regenerated",
            )
            return ItemOutcome.SKIPPED
        await self._emit_item_log(
            plan.batch_id, item.id, ItemEvent.STARTED, "Regenerating product"
        )
        item = await self._transition(
            plan, item, ItemStatus.OPTIMIZING, reentry=True
        )
        try:
            optimized = await self._gateway.rewrite(
                _rewrite_document(item),
                context=await self._prompt_context(plan, item),
            )
        except Exception as exc:
            return await self._fail_item(
                plan, item.id, f"Regeneration failed: {_describe(exc)}"
            )
        await self._transition(
            plan, item, ItemStatus.OPTIMIZED, optimized_text=optimized
        )
        await self._emit_item_log(
            plan.batch_id, item.id, ItemEvent.COMPLETED, "Product regenerated"
        )
        return ItemOutcome.OPTIMIZED

    async def _translate_all(
        self, plan: RunPlan, item_id: ItemId, source_text: str
    ) -> dict[str, str]:
        results: dict[str, str] = {}
        for lang in plan.target_langs:
            try:
                raw = await self._gateway.translate(source_text, lang)
            except Exception as exc:
                await self._emit_item_log(
                    plan.batch_id,
                    item_id,
                    ItemEvent.TRANSLATION_FAILED,
                    f"Translation to {lang} failed",
                    data={"target_lang": lang, "error": _describe(exc)},
                    level=LogLevel.WARN,
                )
                continue
            glossed = apply_glossary(raw, self._glossary, lang)
            results[lang] = clean_translation_format(source_text, glossed)
        return results

    async def _transition(
        self,
        plan: RunPlan,
        item: ProductItem | UIStringItem,
        target: ItemStatus,
        *,
        reentry: bool = False,
        **fields: JsonValue,
    ) -> ProductItem | UIStringItem:
        updates = transition_fields(item, target, reentry=reentry, **fields)
        updated = await self._store.update_item_fields(item.id, updates)
        self._publish(plan.batch_id)
        return updated

    async def _fail_item(
        self, plan: RunPlan, item_id: ItemId, message: str
    ) -> ItemOutcome:
        try:
            current = await self._store.find_item(item_id)
            if current is not None:
                updates = transition_fields(
                    current,
                    ItemStatus.ERROR,
                    reentry=True,
                    error_message=message,
                )
                await self._store.update_item_fields(item_id, updates)
                self._publish(plan.batch_id)
        except (StorageError, ValueError):
            logger.exception("Could not record failure for item %s", item_id)
        await self._emit_item_log(
            plan.batch_id,
            item_id,
            ItemEvent.FAILED,
            message,
            level=LogLevel.ERROR,
        )
        return ItemOutcome.FAILED

    async def _complete(self, plan: RunPlan, item_id: ItemId) -> ItemOutcome:
        await self._emit_item_log(
            plan.batch_id, item_id, ItemEvent.COMPLETED, "Item completed"
        )
        return ItemOutcome.COMPLETED

    async def _prompt_context(
        self, plan: RunPlan, item: ProductItem
    ) -> dict[str, str]:
        upload = await self._store.get_upload(item.upload_id)
        return build_prompt_values(
            item,
            job_type=JobType.PRODUCT_TEXTS,
            upload_name=upload.name if upload else None,
            batch_name=plan.batch_name,
        )

    async def _require_batch(self, batch_id: BatchId) -> Batch:
        batch = await self._store.get_batch(batch_id)
        if batch is None:
            raise orchestration_error(
                OrchestrationErrorCode.BATCH_NOT_FOUND,
                "Batch not found",
                batch_id=batch_id,
            )
        return batch

    async def _resolve_items(
        self,
        batch: Batch,
        *,
        indices: Sequence[int] | None,
        item_ids: Sequence[ItemId] | None,
    ) -> list[ItemId]:
        resolved = await resolve_selection(
            self._store, batch.id, indices=indices, item_ids=item_ids
        )
        if resolved is None:
            members = await self._store.list_items_for_batch(batch.id)
            resolved = [item.id for item in members]
        if not resolved:
            raise orchestration_error(
                OrchestrationErrorCode.INVALID_SELECTION,
                "No items selected for processing",
                batch_id=batch.id,
            )
        return resolved

    async def _acquire_lease(self, batch_id: BatchId) -> str:
        token = self._token_factory()
        try:
            await self._store.acquire_lease(batch_id, token)
        except StorageError as exc:
            if exc.info.code != StorageErrorCode.CONFLICT:
                raise
            await self._emit_log(build_lease_rejected_log(self._clock(), batch_id))
            raise orchestration_error(
                OrchestrationErrorCode.LEASE_CONFLICT,
                "Batch is already being processed",
                batch_id=batch_id,
                reason=exc.info.message,
            ) from exc
        return token

    async def _advance_batch(self, batch_id: BatchId, target: BatchStatus) -> None:
        batch = await self._store.get_batch(batch_id)
        if batch is None:
            return
        current = BatchStatus(batch.status)
        if _BATCH_STATUS_ORDER.index(target) <= _BATCH_STATUS_ORDER.index(current):
            return
        await self._store.save_batch(
            batch.model_copy(update={"status": target, "updated_at": self._clock()})
        )

    def _publish(self, batch_id: BatchId) -> None:
        if self._signal is not None:
            self._signal.publish(batch_id)

    async def _emit_item_log(
        self,
        batch_id: BatchId,
        item_id: ItemId,
        event: ItemEvent,
        message: str,
        data: dict[str, JsonValue] | None = None,
        level: LogLevel = LogLevel.INFO,
    ) -> None:
        await self._emit_log(
            build_item_log(
                self._clock(), batch_id, item_id, event, message, data, level
            )
        )

    async def _emit_log(self, entry: LogEntry) -> None:
        if self._log_sink is None:
            return
        await self._log_sink.emit_log(entry)


def map_target_locale(lang: LanguageCode, existing: Iterable[str]) -> str:
    """Pick the locale key a translated UI value is stored under.

    An existing ``xx-XX`` key wins, then any existing key starting with
    ``xx-``, and otherwise a new ``xx-XX`` key is used.

    Args:
        lang: Two-letter target language code.
        existing: Locale keys already present on the item.

    Returns:
        str: Locale key for the translation.
    """
    locales = list(existing)
    canonical = f"{lang}-{lang.upper()}"
    for locale in locales:
        if locale.lower() == canonical.lower():
            return locale
    for locale in locales:
        if locale.lower().startswith(f"{lang}-"):
            return locale
    return canonical


def _validate_phases(
    batch: Batch, optimize: bool, target_langs: Sequence[LanguageCode]
) -> None:
    if batch.job_type == JobType.UI_STRINGS:
        if optimize:
            raise orchestration_error(
                OrchestrationErrorCode.INVALID_REQUEST,
                "Optimization is not supported for UI strings",
                batch_id=batch.id,
                field="optimize",
                provided="true",
            )
        if not target_langs:
            raise orchestration_error(
                OrchestrationErrorCode.INVALID_REQUEST,
                "At least one target language must be selected for UI strings",
                batch_id=batch.id,
                field="target_langs",
            )
        return
    if not optimize and not target_langs:
        raise orchestration_error(
            OrchestrationErrorCode.INVALID_REQUEST,
            "Select optimization, at least one target language, or both",
            batch_id=batch.id,
            field="target_langs",
        )


def _rewrite_document(item: ProductItem) -> RewriteDocument:
    return RewriteDocument(
        name=item.source_name,
        text=item.source_text,
        attributes=item.attributes,
        tone_hint=item.tone_hint,
    )


def _ui_source_text(values: dict[str, str]) -> str:
    for locale in UI_SOURCE_LOCALES:
        if values.get(locale):
            return values[locale]
    return ""


def _json_dict(values: dict[str, str]) -> dict[str, JsonValue]:
    return {key: value for key, value in values.items()}


def _describe(exc: BaseException) -> str:
    message = str(exc).strip()
    return message or type(exc).__name__
