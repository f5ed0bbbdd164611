"""Unit tests for the text gateway retry, timeout, and fallback policy."""

from __future__ import annotations

import asyncio
import json

import httpx
import respx

from copydesk_core.gateway import TextGateway
from copydesk_core.ports.llm import ChatRuntimeProtocol
from copydesk_core.stub import stub_rewrite, stub_translate
from copydesk_llm import OpenAICompatibleRuntime
from copydesk_schemas.config import GatewayConfig
from copydesk_schemas.glossary import GlossaryEntry
from copydesk_schemas.llm import ChatCompletionRequest, RewriteDocument
from copydesk_schemas.primitives import GatewayMode

BASE_URL = "https://llm.test/v1"
COMPLETIONS_URL = f"{BASE_URL}/chat/completions"
DOCUMENT = RewriteDocument(name="Termos", text="Håller värmen i tolv timmar.")


class _SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class _RecordingRuntime(ChatRuntimeProtocol):
    def __init__(self, reply: str = "Live text") -> None:
        self.requests: list[ChatCompletionRequest] = []
        self.reply = reply

    async def complete(
        self, request: ChatCompletionRequest, *, api_key: str, timeout_s: float
    ) -> str:
        self.requests.append(request)
        return self.reply


class _SlowRuntime(ChatRuntimeProtocol):
    def __init__(self) -> None:
        self.calls = 0

    async def complete(
        self, request: ChatCompletionRequest, *, api_key: str, timeout_s: float
    ) -> str:
        self.calls += 1
        await asyncio.sleep(1.0)
        return "too late"


def _completion(content: str) -> httpx.Response:
    return httpx.Response(
        200, json={"choices": [{"message": {"role": "assistant", "content": content}}]}
    )


def _live_gateway(
    sleep: _SleepRecorder,
    runtime: ChatRuntimeProtocol | None = None,
    **config: object,
) -> TextGateway:
    return TextGateway(
        GatewayConfig(mode=GatewayMode.LIVE, base_url=BASE_URL, **config),
        runtime or OpenAICompatibleRuntime(BASE_URL),
        api_key="sk-test",
        sleep=sleep,
        jitter=lambda: 0.0,
    )


async def test_server_errors_exhaust_three_attempts_then_use_stub() -> None:
    """Three 500 responses lead to exactly three attempts and the stub text."""
    sleep = _SleepRecorder()
    gateway = _live_gateway(sleep)
    with respx.mock(assert_all_called=True) as router:
        route = router.post(COMPLETIONS_URL).mock(return_value=httpx.Response(500))
        result = await gateway.rewrite_with_report(DOCUMENT)

    assert route.call_count == 3
    assert result.mode == GatewayMode.STUB
    assert result.attempts == 3
    assert result.text == stub_rewrite(DOCUMENT)
    assert result.fallback_reason is not None
    assert "http_status" in result.fallback_reason
    assert sleep.delays == [0.4, 0.8]


async def test_client_error_is_not_retried() -> None:
    """A 404 leads to one attempt and an immediate stub fallback."""
    sleep = _SleepRecorder()
    gateway = _live_gateway(sleep)
    with respx.mock(assert_all_called=True) as router:
        route = router.post(COMPLETIONS_URL).mock(return_value=httpx.Response(404))
        text = await gateway.translate("Hej", "da")

    assert route.call_count == 1
    assert text == stub_translate("Hej", "da")
    assert sleep.delays == []


async def test_retry_recovers_after_transient_failure() -> None:
    """A success after a 503 returns the live text."""
    sleep = _SleepRecorder()
    gateway = _live_gateway(sleep)
    with respx.mock(assert_all_called=True) as router:
        route = router.post(COMPLETIONS_URL).mock(
            side_effect=[httpx.Response(503), _completion("  Ny text  ")]
        )
        result = await gateway.rewrite_with_report(DOCUMENT)

    assert route.call_count == 2
    assert result.mode == GatewayMode.LIVE
    assert result.text == "Ny text"
    assert result.attempts == 2
    assert sleep.delays == [0.4]


async def test_live_request_body_and_auth() -> None:
    """Rewrites post the configured model, temperature, and token limit."""
    gateway = _live_gateway(_SleepRecorder())
    with respx.mock(assert_all_called=True) as router:
        route = router.post(COMPLETIONS_URL).mock(return_value=_completion("Ok"))
        await gateway.rewrite(DOCUMENT)

    sent = route.calls.last.request
    body = json.loads(sent.content)
    assert sent.headers["Authorization"] == "Bearer sk-test"
    assert body["model"] == "gpt-4o-mini"
    assert body["temperature"] == 0.2
    assert body["max_tokens"] == 900
    assert [message["role"] for message in body["messages"]] == ["system", "user"]


async def test_transport_errors_are_retried() -> None:
    """Connection failures count as retryable attempts."""
    sleep = _SleepRecorder()
    gateway = _live_gateway(sleep)
    with respx.mock(assert_all_called=True) as router:
        route = router.post(COMPLETIONS_URL).mock(
            side_effect=httpx.ConnectError("refused")
        )
        result = await gateway.translate_with_report("Hej", "en")

    assert route.call_count == 3
    assert result.mode == GatewayMode.STUB
    assert result.fallback_reason is not None
    assert "transport" in result.fallback_reason


async def test_empty_content_is_retried_as_invalid_response() -> None:
    """Responses without content are retried like transient failures."""
    gateway = _live_gateway(_SleepRecorder())
    with respx.mock(assert_all_called=True) as router:
        route = router.post(COMPLETIONS_URL).mock(return_value=_completion("   "))
        result = await gateway.rewrite_with_report(DOCUMENT)

    assert route.call_count == 3
    assert result.mode == GatewayMode.STUB


async def test_attempt_timeout_is_retried() -> None:
    """Attempts exceeding the timeout are abandoned and retried."""
    runtime = _SlowRuntime()
    gateway = _live_gateway(_SleepRecorder(), runtime, timeout_s=0.01)

    result = await gateway.rewrite_with_report(DOCUMENT)

    assert runtime.calls == 3
    assert result.mode == GatewayMode.STUB
    assert result.fallback_reason is not None
    assert "timeout" in result.fallback_reason


async def test_stub_mode_never_calls_runtime() -> None:
    """Without live configuration the stub answers immediately."""
    runtime = _RecordingRuntime()
    gateway = TextGateway(GatewayConfig(mode=GatewayMode.STUB), runtime, api_key="k")

    result = await gateway.rewrite_with_report(DOCUMENT)

    assert runtime.requests == []
    assert result.mode == GatewayMode.STUB
    assert result.attempts == 0


async def test_live_mode_without_key_falls_back_to_stub() -> None:
    """A live configuration without a credential runs in stub mode."""
    runtime = _RecordingRuntime()
    gateway = TextGateway(GatewayConfig(mode=GatewayMode.LIVE), runtime, api_key="")

    assert gateway.mode == GatewayMode.STUB
    assert not gateway.has_key
    assert await gateway.translate("Hej", "da") == stub_translate("Hej", "da")
    assert runtime.requests == []


async def test_translate_prompt_includes_glossary_rules() -> None:
    """Glossary rules for the target language reach the system prompt."""
    runtime = _RecordingRuntime("Termokande")
    gateway = TextGateway(
        GatewayConfig(mode=GatewayMode.LIVE),
        runtime,
        api_key="sk-test",
        glossary=[GlossaryEntry(source="termos", targets={"da": "termokande"})],
    )

    text = await gateway.translate("termos", "da")

    assert text == "Termokande"
    request = runtime.requests[0]
    assert request.temperature == 0.0
    assert '"termos" => "termokande"' in request.messages[0].content


async def test_diagnose_reports_fallback_mode() -> None:
    """Diagnostics expose that a live configuration produced stub output."""
    gateway = _live_gateway(_SleepRecorder())
    with respx.mock(assert_all_called=True) as router:
        router.post(COMPLETIONS_URL).mock(return_value=httpx.Response(401))
        diagnostic = await gateway.diagnose()

    assert diagnostic.configured_mode == GatewayMode.LIVE
    assert diagnostic.mode == GatewayMode.STUB
    assert diagnostic.has_key
    assert diagnostic.attempts == 1
    assert len(diagnostic.preview) == 200
    assert diagnostic.preview.startswith("Titel (SEO/UX-optimerad)\nDemo Produkt")


class _CrashingRuntime(ChatRuntimeProtocol):
    def __init__(self) -> None:
        self.calls = 0

    async def complete(
        self, request: ChatCompletionRequest, *, api_key: str, timeout_s: float
    ) -> str:
        self.calls += 1
        raise RuntimeError("runtime exploded")


async def test_unexpected_runtime_errors_are_retried_then_use_stub() -> None:
    """Arbitrary runtime exceptions count as retryable transport failures."""
    sleep = _SleepRecorder()
    runtime = _CrashingRuntime()
    gateway = _live_gateway(sleep, runtime)

    result = await gateway.rewrite_with_report(DOCUMENT)

    assert runtime.calls == 3
    assert result.mode == GatewayMode.STUB
    assert result.attempts == 3
    assert result.text == stub_rewrite(DOCUMENT)
    assert result.fallback_reason is not None
    assert "transport" in result.fallback_reason
    assert "RuntimeError" in result.fallback_reason
    assert sleep.delays == [0.4, 0.8]


async def test_invalid_url_falls_back_to_stub() -> None:
    """A base URL httpx rejects at request time still yields stub text."""
    broken_url = "http://exa mple.com"
    gateway = TextGateway(
        GatewayConfig(mode=GatewayMode.LIVE, base_url=broken_url),
        OpenAICompatibleRuntime(broken_url),
        api_key="sk-test",
        sleep=_SleepRecorder(),
        jitter=lambda: 0.0,
    )

    with respx.mock():
        text = await gateway.translate("Hej", "en")

    assert text == stub_translate("Hej", "en")
