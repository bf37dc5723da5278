# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from ..types.common import Mode

CHAT_PREAMBLE = (
    "You are an interactive mentor. Always guide the user step by step, "
    "ask clarifying questions, and avoid dumping all information at once. "
    "Engage in back-and-forth conversation like a tutor."
)

RESEARCH_PREAMBLE = (
    "You are a research assistant. Gather sources with the search_academic and "
    "web_search tools, condense them with summarize, reconcile them with compare, "
    "and answer with a concise synthesis that cites the sources you used."
)

PREAMBLES: dict[Mode, str] = {
    Mode.CHAT: CHAT_PREAMBLE,
    Mode.RESEARCH: RESEARCH_PREAMBLE,
}


def get_preamble(mode: Mode) -> str:
    return PREAMBLES[Mode(mode)]
