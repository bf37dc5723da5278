# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Provider-specific implementations for different LLM services."""

from .base_provider import ProviderAdapter
from .anthropic import AnthropicProvider
from .google_rest import GeminiProvider
from .openai_compat import OpenAICompatibleProvider, openai_provider, groq_provider

__all__ = [
    "ProviderAdapter",
    "AnthropicProvider",
    "GeminiProvider",
    "OpenAICompatibleProvider",
    "openai_provider",
    "groq_provider",
]
