# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import logging

from pydantic import Field

from .base_tool import BaseTool

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

DUCKDUCKGO_URL = "https://api.duckduckgo.com/"


class WebSearch(BaseTool):
    TOOL_NAME = "web_search"
    TOOL_DESCRIPTION = """Search the web using DuckDuckGo's instant answer API.
Returns a short list of related topics, each with a title and a URL."""

    q: str = Field(..., description="The search query")
    num: int = Field(default=3, ge=1, le=10, description="How many results to return")

    async def run(self) -> list[dict]:
        params = {"q": self.q, "format": "json", "no_redirect": 1, "no_html": 1}
        async with self._context.http_client() as client:
            response = await client.get(DUCKDUCKGO_URL, params=params)
            response.raise_for_status()
            data = response.json()

        results = [
            {"title": t.get("Text"), "url": t.get("FirstURL")}
            for t in data.get("RelatedTopics", [])[: self.num]
        ]
        logger.info(f"Web search for {self.q!r} returned {len(results)} results")
        return results
