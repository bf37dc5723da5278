# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Runtime settings: which provider to talk to, with which credential and model,
and the bounds the agent loop and sandbox run under.

Settings can be provided via environment variables with the AGENT_ prefix, or
a .env file in the working directory.
"""

import re

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .types.common import ProviderName
from .types.errors import ConfigurationError

OPENAI_KEY_PATTERN = re.compile(r"^sk-[A-Za-z0-9]")

DEFAULT_MODELS: dict[ProviderName, str] = {
    ProviderName.OPENAI: "gpt-4o-mini",
    ProviderName.GROQ: "mixtral-8x7b-32768",
    ProviderName.GEMINI: "gemini-2.5-flash",
    ProviderName.ANTHROPIC: "claude-3-5-sonnet-latest",
}

MODEL_OPTIONS: dict[ProviderName, list[str]] = {
    ProviderName.OPENAI: ["gpt-4o-mini", "gpt-4o", "gpt-4.1-mini", "gpt-4.1"],
    ProviderName.GROQ: ["mixtral-8x7b-32768", "llama2-70b-4096", "gemma-7b-it"],
    ProviderName.ANTHROPIC: [
        "claude-3-5-sonnet-latest",
        "claude-3-opus-latest",
        "claude-3-haiku-latest",
    ],
    ProviderName.GEMINI: ["gemini-2.5-flash", "gemini-2.0-flash", "gemini-1.5-pro"],
}


class Settings(BaseSettings):
    """Configuration for an agent session."""

    model_config = SettingsConfigDict(
        env_prefix="AGENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    provider: ProviderName = ProviderName.OPENAI
    api_key: str = ""
    model: Optional[str] = None
    max_tokens: int = Field(default=800, ge=1)

    # Hard bound on request/response cycles per loop run
    max_turns: int = Field(default=8, ge=1)
    sandbox_timeout: float = Field(default=10.0, gt=0)
    # None leaves the transport default in place
    http_timeout: Optional[float] = None

    log_level: str = "INFO"

    @property
    def resolved_model(self) -> str:
        return self.model or DEFAULT_MODELS[self.provider]

    def validate_credentials(self) -> str:
        """Checks the credential for the configured provider and returns it trimmed.

        Raises:
            ConfigurationError: if the key is missing or obviously malformed
        """
        key = (self.api_key or "").strip()
        if not key:
            raise ConfigurationError(
                f"Missing API key/token for {self.provider.value}."
            )
        if self.provider == ProviderName.OPENAI and not OPENAI_KEY_PATTERN.match(key):
            raise ConfigurationError(
                'That does not look like an OpenAI key (should start with "sk-").'
            )
        return key


settings = Settings()
