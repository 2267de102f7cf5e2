"""
Anthropic Provider Implementation

Adapter for Anthropic Claude using the official Anthropic Python SDK.
Page images are sent as base64 image content blocks.
"""

from __future__ import annotations

import base64
from typing import Any, Dict, List, Optional

from multiai.providers.base import BaseProvider
from multiai.providers.interfaces import (
    EvaluationTask,
    ExtractionTask,
    FailureKind,
    ProviderConfig,
)
from multiai.providers.prompts import EXTRACTION_INSTRUCTION, build_evaluation_prompt


class AnthropicProvider(BaseProvider):
    """Provider for Anthropic Claude models using the official async SDK."""

    DEFAULT_VISION_MODEL = "claude-3-5-sonnet-20241022"
    DEFAULT_TEXT_MODEL = "claude-3-5-sonnet-20241022"

    def __init__(self, config: ProviderConfig):
        super().__init__(config)

        try:
            import anthropic
        except ImportError as exc:
            raise ImportError(
                "anthropic package not installed. Install it with: pip install anthropic"
            ) from exc

        self._anthropic_module = anthropic

        if not config.has_credentials:
            raise ValueError(
                "Anthropic API key not provided. Set ANTHROPIC_API_KEY environment variable or pass api_key in config"
            )

        client_kwargs: Dict[str, Any] = {
            "api_key": config.api_key,
            "max_retries": 0,
            "timeout": config.timeout_seconds,
        }
        if config.api_base_url:
            client_kwargs["base_url"] = config.api_base_url

        self.client = anthropic.AsyncAnthropic(**client_kwargs)

    @property
    def name(self) -> str:
        return "claude"

    async def _extract_impl(self, task: ExtractionTask) -> str:
        content: List[Dict[str, Any]] = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": task.mime_type,
                    "data": base64.b64encode(task.image_bytes).decode("ascii"),
                },
            },
            {"type": "text", "text": EXTRACTION_INSTRUCTION},
        ]
        return await self._create_message(self.vision_model, content)

    async def _evaluate_impl(self, task: EvaluationTask) -> str:
        return await self._create_message(self.text_model, build_evaluation_prompt(task))

    async def _create_message(self, model: Optional[str], content: Any) -> str:
        message = await self.client.messages.create(
            model=model,
            max_tokens=self.config.max_output_tokens,
            temperature=self.config.temperature,
            messages=[{"role": "user", "content": content}],
        )
        return "".join(
            block.text for block in message.content if getattr(block, "type", None) == "text"
        )

    def _determine_failure_kind(self, error: Exception) -> Optional[FailureKind]:
        anthropic = self._anthropic_module

        if isinstance(error, anthropic.RateLimitError):
            return FailureKind.RATE_LIMITED
        if isinstance(error, anthropic.APITimeoutError):
            return FailureKind.TIMEOUT
        if isinstance(error, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
            return FailureKind.AUTH_FAILURE
        if isinstance(error, anthropic.APIError):
            return FailureKind.NETWORK_FAILURE
        return None


__all__ = ["AnthropicProvider"]
