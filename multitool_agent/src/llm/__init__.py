# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""LLM integration module.

This module provides a unified interface for interacting with the supported
LLM providers: OpenAI, Groq, Google Gemini and Anthropic.
"""

import logging

from .base import Completion, CompletionOptions, TimingInfo
from .api import create_completion, get_provider

# Quieten LLM API call logs to make stdout more useful
logging.getLogger("httpx").setLevel(logging.WARNING)

__all__ = [
    "Completion",
    "CompletionOptions",
    "TimingInfo",
    "create_completion",
    "get_provider",
]
