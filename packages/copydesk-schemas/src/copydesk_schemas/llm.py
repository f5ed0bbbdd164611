"""Gateway diagnostic and result schemas."""

from __future__ import annotations

from pydantic import Field

from copydesk_schemas.base import BaseSchema
from copydesk_schemas.primitives import GatewayMode, GatewayOperation, JsonValue


class ChatMessage(BaseSchema):
    """Single chat completion message."""

    role: str = Field(..., min_length=1, description="Message role")
    content: str = Field(..., description="Message content")


class ChatCompletionRequest(BaseSchema):
    """Request body for an OpenAI-compatible chat completion."""

    model: str = Field(..., min_length=1, description="Model identifier")
    messages: list[ChatMessage] = Field(..., min_length=1, description="Messages")
    temperature: float = Field(..., ge=0, le=2, description="Sampling temperature")
    max_tokens: int = Field(..., ge=1, description="Completion token limit")


class GatewayResult(BaseSchema):
    """Text produced by the gateway along with how it was produced."""

    operation: GatewayOperation = Field(..., description="Gateway operation")
    text: str = Field(..., description="Produced text")
    mode: GatewayMode = Field(..., description="Mode that produced the text")
    attempts: int = Field(..., ge=0, description="Live attempts made")
    fallback_reason: str | None = Field(
        None, description="Why the live result was replaced by the stub"
    )


class LlmDiagnostic(BaseSchema):
    """Result of an ad-hoc rewrite used to verify backend connectivity."""

    mode: GatewayMode = Field(..., description="Mode that produced the result")
    configured_mode: GatewayMode = Field(..., description="Mode from configuration")
    has_key: bool = Field(..., description="Whether an API key is configured")
    model: str = Field(..., min_length=1, description="Rewrite model identifier")
    attempts: int = Field(..., ge=0, description="Live attempts made")
    preview: str = Field(..., description="Truncated result preview")


class RewriteDocument(BaseSchema):
    """Product document sent to the rewrite operation."""

    name: str = Field(..., description="Product name")
    text: str = Field("", description="Source description")
    attributes: dict[str, JsonValue] | None = Field(
        None, description="Structured product attributes"
    )
    tone_hint: str | None = Field(None, description="Optional tone of voice hint")
