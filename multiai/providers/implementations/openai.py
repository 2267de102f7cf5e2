"""
OpenAI Provider Implementation

Adapter for OpenAI models via the official OpenAI Python SDK. Page images
are sent as base64 data URLs in a multimodal chat message.
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
from multiai.providers.prompts import (
    EVALUATION_SYSTEM_MESSAGE,
    EXTRACTION_INSTRUCTION,
    build_evaluation_prompt,
)


class OpenAIProvider(BaseProvider):
    """Provider for OpenAI GPT models using the official async SDK."""

    DEFAULT_VISION_MODEL = "gpt-4o"
    DEFAULT_TEXT_MODEL = "gpt-4o"

    def __init__(self, config: ProviderConfig):
        super().__init__(config)

        try:
            import openai
        except ImportError as exc:  # pragma: no cover - dependency guard
            raise ImportError(
                "openai package not installed. Install it with: pip install openai"
            ) from exc

        self._openai_module = openai

        if not config.has_credentials:
            raise ValueError(
                "OpenAI API key not provided. Set OPENAI_API_KEY environment variable or pass api_key in config"
            )

        client_kwargs: Dict[str, Any] = {
            "api_key": config.api_key,
            # One outbound call per invocation
            "max_retries": 0,
            "timeout": config.timeout_seconds,
        }
        if config.api_base_url:
            client_kwargs["base_url"] = config.api_base_url

        self.async_client = openai.AsyncOpenAI(**client_kwargs)

    @property
    def name(self) -> str:
        return "openai"

    async def _extract_impl(self, task: ExtractionTask) -> str:
        encoded = base64.b64encode(task.image_bytes).decode("ascii")
        messages: List[Dict[str, Any]] = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": EXTRACTION_INSTRUCTION},
                    {
                        "type": "image_url",
                        "image_url": {
                            "url": f"data:{task.mime_type};base64,{encoded}",
                            "detail": "high",
                        },
                    },
                ],
            }
        ]
        return await self._complete(self.vision_model, messages)

    async def _evaluate_impl(self, task: EvaluationTask) -> str:
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": EVALUATION_SYSTEM_MESSAGE},
            {"role": "user", "content": build_evaluation_prompt(task)},
        ]
        return await self._complete(self.text_model, messages)

    async def _complete(self, model: Optional[str], messages: List[Dict[str, Any]]) -> str:
        completion = await self.async_client.chat.completions.create(
            model=model,
            messages=messages,
            max_tokens=self.config.max_output_tokens,
            temperature=self.config.temperature,
        )
        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""

    def _determine_failure_kind(self, error: Exception) -> Optional[FailureKind]:
        openai = self._openai_module

        if isinstance(error, openai.RateLimitError):
            return FailureKind.RATE_LIMITED
        if isinstance(error, openai.APITimeoutError):
            return FailureKind.TIMEOUT
        if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
            return FailureKind.AUTH_FAILURE
        if isinstance(error, openai.APIStatusError):
            if error.status_code == 429:
                return FailureKind.RATE_LIMITED
            return FailureKind.NETWORK_FAILURE
        if isinstance(error, openai.APIError):
            return FailureKind.NETWORK_FAILURE
        return None


__all__ = ["OpenAIProvider"]
