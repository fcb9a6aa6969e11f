"""
Semantic Scholar Academic Graph client.

API documentation: https://api.semanticscholar.org/api-docs/
Rate limit: 100 req/min with an API key, much lower without one.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from biomap.domain.research import Paper
from biomap.infrastructure.api_clients.base import APIClient
from biomap.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

BASE_URL = "https://api.semanticscholar.org/graph/v1"

SEARCH_FIELDS = [
    "paperId",
    "title",
    "abstract",
    "year",
    "authors",
    "citationCount",
    "venue",
    "publicationDate",
]
DETAIL_FIELDS = SEARCH_FIELDS + ["tldr"]


class SemanticScholarClient(APIClient):
    """Paper search and lookup with an injected response cache."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        cache: Optional[TTLCache] = None,
        base_url: str = BASE_URL,
        request_interval: float = 1.0,
    ):
        super().__init__(base_url, api_key=api_key, request_interval=request_interval)
        self.cache: TTLCache = cache if cache is not None else TTLCache(max_age=3600)

    async def _cached_get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        key = (endpoint, tuple(sorted(params.items())))
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Semantic Scholar cache hit: %s", endpoint)
            return cached
        data = await self.get(endpoint, params=params)
        self.cache.set(key, data)
        return data

    async def search_papers(
        self,
        query: str,
        limit: int = 20,
        fields: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        params = {
            "query": query,
            "limit": max(1, min(int(limit), 100)),
            "fields": ",".join(fields or SEARCH_FIELDS),
        }
        data = await self._cached_get("paper/search", params)
        results = data.get("data") if isinstance(data, dict) else None
        return [r for r in results or [] if isinstance(r, dict)]

    async def get_paper(
        self, paper_id: str, fields: Optional[Sequence[str]] = None
    ) -> Optional[Dict[str, Any]]:
        if not paper_id:
            return None
        data = await self._cached_get(f"paper/{paper_id}", {"fields": ",".join(fields or DETAIL_FIELDS)})
        return data or None


def to_paper(data: Dict[str, Any]) -> Paper:
    """Map an S2 search hit onto the workspace paper record."""
    paper = Paper.from_dict(data)
    if paper.paper_id:
        paper.url = f"https://www.semanticscholar.org/paper/{paper.paper_id}"
    paper.is_ai_generated = False
    return paper
