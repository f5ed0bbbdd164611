"""Unit tests for the OpenAI-compatible chat completion runtime."""

from __future__ import annotations

import httpx
import pytest
import respx

from copydesk_core.ports.llm import GatewayError, GatewayErrorCode
from copydesk_llm import OpenAICompatibleRuntime
from copydesk_schemas.llm import ChatCompletionRequest, ChatMessage

BASE_URL = "https://llm.test/v1/"
COMPLETIONS_URL = "https://llm.test/v1/chat/completions"
REQUEST = ChatCompletionRequest(
    model="gpt-4o-mini",
    messages=[
        ChatMessage(role="system", content="Du är en översättare."),
        ChatMessage(role="user", content="Hej"),
    ],
    temperature=0.0,
    max_tokens=900,
)


async def _complete(runtime: OpenAICompatibleRuntime) -> str:
    return await runtime.complete(REQUEST, api_key="sk-test", timeout_s=5.0)


def test_runtime_builds_completions_url() -> None:
    """Trailing slashes on the base URL are ignored."""
    assert OpenAICompatibleRuntime(BASE_URL).url == COMPLETIONS_URL


async def test_runtime_returns_trimmed_content() -> None:
    """The first choice's content is returned without surrounding whitespace."""
    with respx.mock(assert_all_called=True) as router:
        router.post(COMPLETIONS_URL).mock(
            return_value=httpx.Response(
                200, json={"choices": [{"message": {"content": "\n Hej!\n"}}]}
            )
        )
        text = await _complete(OpenAICompatibleRuntime(BASE_URL))

    assert text == "Hej!"


async def test_runtime_uses_injected_client() -> None:
    """An injected client is reused instead of a per-call client."""
    with respx.mock(assert_all_called=True) as router:
        route = router.post(COMPLETIONS_URL).mock(
            return_value=httpx.Response(
                200, json={"choices": [{"message": {"content": "Ok"}}]}
            )
        )
        async with httpx.AsyncClient() as client:
            runtime = OpenAICompatibleRuntime(BASE_URL, http_client=client)
            assert await _complete(runtime) == "Ok"
            assert await _complete(runtime) == "Ok"

    assert route.call_count == 2


@pytest.mark.parametrize(
    ("status_code", "retryable"),
    [(400, False), (401, False), (404, False), (429, False), (500, True), (503, True)],
)
async def test_runtime_maps_status_codes(status_code: int, retryable: bool) -> None:
    """Client errors are final and server errors are retryable."""
    with respx.mock(assert_all_called=True) as router:
        router.post(COMPLETIONS_URL).mock(
            return_value=httpx.Response(status_code, text="nope")
        )
        with pytest.raises(GatewayError) as exc_info:
            await _complete(OpenAICompatibleRuntime(BASE_URL))

    info = exc_info.value.info
    assert info.code == GatewayErrorCode.HTTP_STATUS
    assert info.retryable is retryable
    assert info.details is not None
    assert info.details.status_code == status_code
    assert info.details.body_preview == "nope"


async def test_runtime_maps_timeouts() -> None:
    """httpx timeouts become retryable timeout errors."""
    with respx.mock(assert_all_called=True) as router:
        router.post(COMPLETIONS_URL).mock(side_effect=httpx.ReadTimeout("slow"))
        with pytest.raises(GatewayError) as exc_info:
            await _complete(OpenAICompatibleRuntime(BASE_URL))

    assert exc_info.value.info.code == GatewayErrorCode.TIMEOUT
    assert exc_info.value.retryable


async def test_runtime_rejects_malformed_payload() -> None:
    """Responses without choices are retryable invalid responses."""
    with respx.mock(assert_all_called=True) as router:
        router.post(COMPLETIONS_URL).mock(
            return_value=httpx.Response(200, json={"choices": []})
        )
        with pytest.raises(GatewayError) as exc_info:
            await _complete(OpenAICompatibleRuntime(BASE_URL))

    assert exc_info.value.info.code == GatewayErrorCode.INVALID_RESPONSE
    assert exc_info.value.retryable


async def test_runtime_rejects_non_json_body() -> None:
    """A 200 with a non-JSON body is an invalid response."""
    with respx.mock(assert_all_called=True) as router:
        router.post(COMPLETIONS_URL).mock(
            return_value=httpx.Response(200, text="<html>")
        )
        with pytest.raises(GatewayError) as exc_info:
            await _complete(OpenAICompatibleRuntime(BASE_URL))

    assert exc_info.value.info.code == GatewayErrorCode.INVALID_RESPONSE
