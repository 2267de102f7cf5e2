"""
Google Gemini Provider Implementation

Adapter for Google Gemini models via the official Google Generative AI SDK,
sending page images as inline data.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from multiai.providers.base import BaseProvider
from multiai.providers.interfaces import (
    EvaluationTask,
    ExtractionTask,
    FailureKind,
    ProviderConfig,
)
from multiai.providers.prompts import EXTRACTION_INSTRUCTION, build_evaluation_prompt


class GeminiProvider(BaseProvider):
    """Provider for Google Gemini models via google-generativeai SDK."""

    DEFAULT_VISION_MODEL = "gemini-1.5-pro-latest"
    DEFAULT_TEXT_MODEL = "gemini-1.5-pro-latest"

    def __init__(self, config: ProviderConfig):
        super().__init__(config)

        try:
            import google.generativeai as genai
        except ImportError as exc:  # pragma: no cover - dependency guard
            raise ImportError(
                "google-generativeai package not installed. Install it with: pip install google-generativeai"
            ) from exc

        self.genai = genai

        if not config.has_credentials:
            raise ValueError(
                "Google API key not provided. Set GOOGLE_API_KEY environment variable or pass api_key in config"
            )

        self.genai.configure(api_key=config.api_key)

    @property
    def name(self) -> str:
        return "gemini"

    async def _extract_impl(self, task: ExtractionTask) -> str:
        model = self._create_model(self.vision_model)
        contents: List[Any] = [
            EXTRACTION_INSTRUCTION,
            {"mime_type": task.mime_type, "data": task.image_bytes},
        ]
        response = await model.generate_content_async(
            contents,
            request_options={"timeout": self.config.timeout_seconds},
        )
        return self._extract_text_from_response(response)

    async def _evaluate_impl(self, task: EvaluationTask) -> str:
        model = self._create_model(self.text_model)
        response = await model.generate_content_async(
            build_evaluation_prompt(task),
            request_options={"timeout": self.config.timeout_seconds},
        )
        return self._extract_text_from_response(response)

    def _create_model(self, model_name: Optional[str]) -> Any:
        generation_config: Dict[str, Any] = {
            "max_output_tokens": self.config.max_output_tokens,
            "temperature": self.config.temperature,
        }
        return self.genai.GenerativeModel(
            model_name=model_name,
            generation_config=generation_config,
        )

    def _extract_text_from_response(self, response: Any) -> str:
        try:
            text = response.text
        except ValueError:
            # Raised when the candidate was blocked or carries no text part
            text = ""
        if text:
            return text

        fragments: List[str] = []
        for candidate in getattr(response, "candidates", None) or []:
            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                part_text = getattr(part, "text", None)
                if part_text:
                    fragments.append(part_text)
        return "".join(fragments)

    def _determine_failure_kind(self, error: Exception) -> Optional[FailureKind]:
        from google.api_core import exceptions as google_exceptions

        if isinstance(error, google_exceptions.ResourceExhausted):
            return FailureKind.RATE_LIMITED
        if isinstance(error, google_exceptions.DeadlineExceeded):
            return FailureKind.TIMEOUT
        if isinstance(
            error,
            (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied),
        ):
            return FailureKind.AUTH_FAILURE
        if isinstance(error, google_exceptions.GoogleAPICallError):
            return FailureKind.NETWORK_FAILURE
        return None


__all__ = ["GeminiProvider"]
