"""Chat completion runtime adapters for copydesk."""

from copydesk_llm.openai_runtime import OpenAICompatibleRuntime

__all__ = ["OpenAICompatibleRuntime"]
