"""OpenAI-compatible chat completion runtime powered by httpx."""

from __future__ import annotations

import httpx

from copydesk_core.ports.llm import (
    ChatRuntimeProtocol,
    GatewayError,
    GatewayErrorCode,
    GatewayErrorDetails,
    GatewayErrorInfo,
)
from copydesk_schemas.llm import ChatCompletionRequest

_PREVIEW_LIMIT = 300


class OpenAICompatibleRuntime(ChatRuntimeProtocol):
    """Chat completion runtime for OpenAI-compatible endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the runtime.

        Args:
            base_url: Endpoint base URL, e.g. ``https://api.openai.com/v1``.
            http_client: Optional pre-configured HTTP client. If None, a client
                is created per request.
        """
        self._url = f"{base_url.rstrip('/')}/chat/completions"
        self._http_client = http_client

    @property
    def url(self) -> str:
        """Chat completions URL."""
        return self._url

    async def complete(
        self,
        request: ChatCompletionRequest,
        *,
        api_key: str,
        timeout_s: float,
    ) -> str:
        """Run one completion attempt and return the message content.

        Args:
            request: Chat completion request body.
            api_key: Bearer credential.
            timeout_s: Request timeout in seconds.

        Returns:
            str: Trimmed content of the first choice.

        Raises:
            GatewayError: On transport failure, timeout, non-2xx status, or
                a response without message content.
        """
        if self._http_client is not None:
            return await self._complete_with_client(
                self._http_client, request, api_key=api_key, timeout_s=timeout_s
            )
        async with httpx.AsyncClient(timeout=timeout_s) as client:
            return await self._complete_with_client(
                client, request, api_key=api_key, timeout_s=timeout_s
            )

    async def _complete_with_client(
        self,
        client: httpx.AsyncClient,
        request: ChatCompletionRequest,
        *,
        api_key: str,
        timeout_s: float,
    ) -> str:
        try:
            response = await client.post(
                self._url,
                json=request.model_dump(mode="json"),
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                },
                timeout=timeout_s,
            )
        except httpx.TimeoutException as exc:
            raise self._error(
                GatewayErrorCode.TIMEOUT,
                f"Request timed out after {timeout_s}s",
                retryable=True,
                model=request.model,
            ) from exc
        except httpx.HTTPError as exc:
            raise self._error(
                GatewayErrorCode.TRANSPORT,
                str(exc) or type(exc).__name__,
                retryable=True,
                model=request.model,
            ) from exc

        if response.status_code >= 400:
            raise self._error(
                GatewayErrorCode.HTTP_STATUS,
                f"HTTP {response.status_code}",
                retryable=response.status_code >= 500,
                model=request.model,
                status_code=response.status_code,
                body=response.text,
            )
        return self._extract_content(response, request.model)

    def _extract_content(self, response: httpx.Response, model: str) -> str:
        try:
            payload = response.json()
            content = payload["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise self._error(
                GatewayErrorCode.INVALID_RESPONSE,
                "Response did not contain message content",
                retryable=True,
                model=model,
                status_code=response.status_code,
                body=response.text,
            ) from exc
        if not isinstance(content, str) or not content.strip():
            raise self._error(
                GatewayErrorCode.INVALID_RESPONSE,
                "Response message content was empty",
                retryable=True,
                model=model,
                status_code=response.status_code,
                body=response.text,
            )
        return content.strip()

    def _error(
        self,
        code: GatewayErrorCode,
        message: str,
        *,
        retryable: bool,
        model: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> GatewayError:
        return GatewayError(
            GatewayErrorInfo(
                code=code,
                message=message,
                retryable=retryable,
                details=GatewayErrorDetails(
                    status_code=status_code,
                    model=model,
                    url=self._url,
                    body_preview=body[:_PREVIEW_LIMIT] if body else None,
                ),
            )
        )
