"""Chat completion runtime protocol and gateway errors."""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol, runtime_checkable

from pydantic import Field

from copydesk_schemas.base import BaseSchema
from copydesk_schemas.llm import ChatCompletionRequest
from copydesk_schemas.responses import ErrorDetails, ErrorResponse


class GatewayErrorCode(StrEnum):
    """Failure categories for a single live attempt."""

    HTTP_STATUS = "http_status"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    INVALID_RESPONSE = "invalid_response"


class GatewayErrorDetails(BaseSchema):
    """Detailed live attempt failure context."""

    status_code: int | None = Field(None, description="HTTP status code")
    model: str | None = Field(None, description="Requested model")
    url: str | None = Field(None, description="Request URL")
    body_preview: str | None = Field(None, description="Truncated response body")


class GatewayErrorInfo(BaseSchema):
    """Structured live attempt failure."""

    code: GatewayErrorCode = Field(..., description="Gateway error code")
    message: str = Field(..., min_length=1, description="Error message")
    retryable: bool = Field(..., description="Whether another attempt may help")
    details: GatewayErrorDetails | None = Field(None, description="Error details")

    def to_error_response(self) -> ErrorResponse:
        """Convert gateway error info to the standard error response schema.

        Returns:
            ErrorResponse: Standard response error payload.
        """
        details: ErrorDetails | None = None
        if self.details is not None and self.details.status_code is not None:
            details = ErrorDetails(
                field="status_code",
                provided=str(self.details.status_code),
                valid_options=None,
            )
        return ErrorResponse(code=self.code, message=self.message, details=details)


class GatewayError(Exception):
    """Live backend failure with structured details."""

    def __init__(self, info: GatewayErrorInfo) -> None:
        """Initialize the gateway error.

        Args:
            info: Structured gateway error information.
        """
        super().__init__(info.message)
        self.info = info

    @property
    def retryable(self) -> bool:
        """Whether the failed attempt may succeed if repeated."""
        return self.info.retryable


@runtime_checkable
class ChatRuntimeProtocol(Protocol):
    """Protocol for dispatching chat completion requests."""

    async def complete(
        self,
        request: ChatCompletionRequest,
        *,
        api_key: str,
        timeout_s: float,
    ) -> str:
        """Run one completion attempt and return the message content.

        Raises:
            GatewayError: When the attempt fails.
        """
        raise NotImplementedError
