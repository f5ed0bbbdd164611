"""Generative text gateway with retry, timeout, and stub fallback."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Sequence

from copydesk_core.ports.llm import (
    ChatRuntimeProtocol,
    GatewayError,
    GatewayErrorCode,
    GatewayErrorInfo,
)
from copydesk_core.prompts import (
    PromptTemplates,
    build_rewrite_messages,
    build_translate_messages,
)
from copydesk_core.stub import stub_rewrite, stub_translate
from copydesk_core.text_transforms import build_glossary_context
from copydesk_schemas.config import GatewayConfig
from copydesk_schemas.glossary import GlossaryEntry
from copydesk_schemas.llm import (
    ChatCompletionRequest,
    ChatMessage,
    GatewayResult,
    LlmDiagnostic,
    RewriteDocument,
)
from copydesk_schemas.primitives import GatewayMode, GatewayOperation

logger = logging.getLogger(__name__)

DIAGNOSTIC_NAME = "Demo Produkt"
DIAGNOSTIC_TEXT = "Detta är en demo–beskrivning för diagnostik."
SOURCE_LANGUAGE = "sv"

type SleepFn = Callable[[float], Awaitable[None]]


class TextGateway:
    """Rewrite and translate documents through a live backend or the stub."""

    def __init__(
        self,
        config: GatewayConfig,
        runtime: ChatRuntimeProtocol | None = None,
        *,
        api_key: str | None = None,
        templates: PromptTemplates | None = None,
        glossary: Sequence[GlossaryEntry] | None = None,
        sleep: SleepFn = asyncio.sleep,
        jitter: Callable[[], float] = random.random,
    ) -> None:
        """Initialize the gateway.

        Args:
            config: Gateway configuration including the resolved mode.
            runtime: Chat completion runtime used in live mode.
            api_key: Backend credential.
            templates: Prompt templates, defaults when omitted.
            glossary: Glossary entries injected into translation prompts.
            sleep: Awaitable sleep used between attempts.
            jitter: Source of random fractions for backoff jitter.
        """
        self._config = config
        self._runtime = runtime
        self._api_key = api_key or None
        self._templates = templates or PromptTemplates()
        self._glossary = list(glossary or [])
        self._sleep = sleep
        self._jitter = jitter

    @property
    def has_key(self) -> bool:
        """Whether a backend credential is configured."""
        return self._api_key is not None

    @property
    def mode(self) -> GatewayMode:
        """Process-wide mode: live only with a key, a runtime, and live config."""
        if (
            self._config.mode == GatewayMode.LIVE
            and self._api_key is not None
            and self._runtime is not None
        ):
            return GatewayMode.LIVE
        return GatewayMode.STUB

    @property
    def config(self) -> GatewayConfig:
        """Gateway configuration."""
        return self._config

    async def rewrite(
        self, document: RewriteDocument, *, context: dict[str, str] | None = None
    ) -> str:
        """Rewrite a single product document.

        Args:
            document: Product document.
            context: Extra prompt token values.

        Returns:
            str: Rewritten text.
        """
        result = await self.rewrite_with_report(document, context=context)
        return result.text

    async def translate(self, text: str, target_lang: str) -> str:
        """Translate a document into one target language.

        Args:
            text: Source text.
            target_lang: Two-letter target language code.

        Returns:
            str: Translated text.
        """
        result = await self.translate_with_report(text, target_lang)
        return result.text

    async def rewrite_with_report(
        self, document: RewriteDocument, *, context: dict[str, str] | None = None
    ) -> GatewayResult:
        """Rewrite a document and report which mode produced the text.

        Args:
            document: Product document.
            context: Extra prompt token values.

        Returns:
            GatewayResult: Rewritten text with provenance.
        """
        system, user = build_rewrite_messages(document, self._templates, context)
        request = self._build_request(
            model=self._config.model_optimize,
            temperature=self._config.temperature_optimize,
            system=system,
            user=user,
        )
        return await self._dispatch(
            GatewayOperation.REWRITE, request, lambda: stub_rewrite(document)
        )

    async def translate_with_report(self, text: str, target_lang: str) -> GatewayResult:
        """Translate a document and report which mode produced the text.

        Args:
            text: Source text.
            target_lang: Two-letter target language code.

        Returns:
            GatewayResult: Translated text with provenance.
        """
        glossary_context = build_glossary_context(
            self._glossary, SOURCE_LANGUAGE, target_lang
        )
        system, user = build_translate_messages(
            text, target_lang, self._templates, glossary_context
        )
        request = self._build_request(
            model=self._config.model_translate,
            temperature=self._config.temperature_translate,
            system=system,
            user=user,
        )
        return await self._dispatch(
            GatewayOperation.TRANSLATE,
            request,
            lambda: stub_translate(text, target_lang),
        )

    async def diagnose(
        self, name: str | None = None, text: str | None = None
    ) -> LlmDiagnostic:
        """Run one ad-hoc rewrite to verify backend connectivity.

        Args:
            name: Product name for the diagnostic.
            text: Description for the diagnostic.

        Returns:
            LlmDiagnostic: Mode that produced the result and a preview.
        """
        document = RewriteDocument(
            name=name or DIAGNOSTIC_NAME, text=text or DIAGNOSTIC_TEXT
        )
        result = await self.rewrite_with_report(document)
        return LlmDiagnostic(
            mode=result.mode,
            configured_mode=self.mode,
            has_key=self.has_key,
            model=self._config.model_optimize,
            attempts=result.attempts,
            preview=_truncate_text(result.text),
        )

    def _build_request(
        self, *, model: str, temperature: float, system: str, user: str
    ) -> ChatCompletionRequest:
        return ChatCompletionRequest(
            model=model,
            messages=[
                ChatMessage(role="system", content=system),
                ChatMessage(role="user", content=user),
            ],
            temperature=temperature,
            max_tokens=self._config.max_tokens,
        )

    async def _dispatch(
        self,
        operation: GatewayOperation,
        request: ChatCompletionRequest,
        fallback: Callable[[], str],
    ) -> GatewayResult:
        if self.mode != GatewayMode.LIVE:
            return GatewayResult(
                operation=operation,
                text=fallback(),
                mode=GatewayMode.STUB,
                attempts=0,
            )
        text, attempts, last_error = await self._run_with_retry(request)
        if text is not None:
            return GatewayResult(
                operation=operation,
                text=text,
                mode=GatewayMode.LIVE,
                attempts=attempts,
            )
        reason = _format_error(last_error)
        logger.warning(
            "Live %s failed after %d attempt(s), using stub: %s",
            operation,
            attempts,
            reason,
        )
        return GatewayResult(
            operation=operation,
            text=fallback(),
            mode=GatewayMode.STUB,
            attempts=attempts,
            fallback_reason=reason,
        )

    async def _run_with_retry(
        self, request: ChatCompletionRequest
    ) -> tuple[str | None, int, GatewayError | None]:
        retry = self._config.retry
        attempts = 0
        last_error: GatewayError | None = None
        while attempts < retry.max_attempts:
            attempts += 1
            try:
                text = await self._attempt(request)
            except GatewayError as exc:
                last_error = exc
                logger.warning(
                    "Live attempt %d/%d for %s failed: %s",
                    attempts,
                    retry.max_attempts,
                    request.model,
                    exc,
                )
                if not exc.retryable or attempts >= retry.max_attempts:
                    break
                await self._sleep(retry.delay_s(attempts, self._jitter()))
            else:
                return text, attempts, None
        return None, attempts, last_error

    async def _attempt(self, request: ChatCompletionRequest) -> str:
        runtime = self._runtime
        api_key = self._api_key
        if runtime is None or api_key is None:
            raise GatewayError(
                GatewayErrorInfo(
                    code=GatewayErrorCode.TRANSPORT,
                    message="Live runtime is not configured",
                    retryable=False,
                )
            )
        timeout_s = self._config.timeout_s
        try:
            async with asyncio.timeout(timeout_s):
                return await runtime.complete(
                    request, api_key=api_key, timeout_s=timeout_s
                )
        except GatewayError:
            raise
        except TimeoutError as exc:
            raise GatewayError(
                GatewayErrorInfo(
                    code=GatewayErrorCode.TIMEOUT,
                    message=f"Request timed out after {timeout_s}s",
                    retryable=True,
                )
            ) from exc
        except Exception as exc:
            raise GatewayError(
                GatewayErrorInfo(
                    code=GatewayErrorCode.TRANSPORT,
                    message=f"{type(exc).__name__}: {exc}",
                    retryable=True,
                )
            ) from exc


def _format_error(error: GatewayError | None) -> str:
    if error is None:
        return "Unknown error"
    return f"{error.info.code}: {error}"


def _truncate_text(text: str, limit: int = 200) -> str:
    if len(text) <= limit:
        return text
    return text[:limit]
