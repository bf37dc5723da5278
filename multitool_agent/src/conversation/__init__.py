# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from .state import ConversationState
from .preambles import get_preamble, PREAMBLES

__all__ = ["ConversationState", "get_preamble", "PREAMBLES"]
