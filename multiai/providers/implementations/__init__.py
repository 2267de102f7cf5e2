"""
Provider implementations for the supported LLM services

Exports:
    - GeminiProvider: Provider for Google Gemini models
    - OpenAIProvider: Provider for OpenAI models (GPT-4o)
    - AnthropicProvider: Provider for Anthropic Claude
"""

from multiai.providers.implementations.gemini import GeminiProvider
from multiai.providers.implementations.openai import OpenAIProvider
from multiai.providers.implementations.anthropic import AnthropicProvider

__all__ = [
    "GeminiProvider",
    "OpenAIProvider",
    "AnthropicProvider",
]
