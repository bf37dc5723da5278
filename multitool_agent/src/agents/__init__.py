# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
The agents module holds the agent loop. A session owns one conversation and
drives it through request/response cycles with a provider, dispatching the
tool calls the model makes along the way.
"""

from .session import AgentSession, RESEARCH_META

__all__ = ["AgentSession", "RESEARCH_META"]
