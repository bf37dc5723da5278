# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from typing import Any
from pydantic import Field

from .base_tool import BaseTool

SEMANTIC_SCHOLAR_URL = "https://api.semanticscholar.org/graph/v1/paper/search"


class SearchAcademic(BaseTool):
    TOOL_NAME = "search_academic"
    TOOL_DESCRIPTION = """Search Semantic Scholar for academic papers.
Returns titles, URLs, abstracts and publication years."""

    query: str = Field(..., description="The search query")
    num_results: int = Field(default=5, ge=1, description="Maximum number of papers")

    async def run(self) -> Any:
        params = {
            "query": self.query,
            "limit": self.num_results,
            "fields": "title,url,abstract,year",
        }
        async with self._context.http_client() as client:
            response = await client.get(SEMANTIC_SCHOLAR_URL, params=params)
            response.raise_for_status()
            return response.json()
