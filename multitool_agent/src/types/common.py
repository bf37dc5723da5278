# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from enum import Enum


class ProviderName(str, Enum):
    """The provider backends a session can be configured with"""

    OPENAI = "openai"
    GROQ = "groq"
    GEMINI = "gemini"
    ANTHROPIC = "anthropic"


class Mode(str, Enum):
    """Operating modes; each one gets its own system preamble"""

    CHAT = "chat"
    RESEARCH = "research"


class ReportFormat(str, Enum):
    MD = "md"
    HTML = "html"
    PDF = "pdf"
