"""Collect candidate papers for a project, partition them, persist the map.

A map record always exists after a build attempt: failures are persisted as
``{clusters: [], totalPapers: 0, error}`` before being re-raised.
"""

from __future__ import annotations

import asyncio
import logging
import math
import random
from dataclasses import dataclass
from typing import List, Optional

from biomap.application.services.llm_service import LLMService
from biomap.application.services.partitioner import (
    BranchRanker,
    group_by_label,
    kmeans,
    overflow_labels,
)
from biomap.config import CLUSTER_STRATEGIES, Settings
from biomap.domain.errors import NotFoundError, UpstreamGenerationError
from biomap.domain.research import Branch, Paper, Project, ResearchMap
from biomap.infrastructure.api_clients.semantic_scholar import SemanticScholarClient, to_paper
from biomap.infrastructure.stores.workspace_store import WorkspaceStore

logger = logging.getLogger(__name__)

NO_PAPERS_MESSAGE = (
    "No papers were found for this project. Try a broader project description "
    "or rebuild the map later."
)
MAX_QUERY_CHARS = 80
KMEANS_MIN_K = 3
KMEANS_MAX_K = 5


@dataclass
class BuildOutcome:
    research_map: ResearchMap
    message: Optional[str] = None


def shorten_query(text: str) -> str:
    """First sentence of a long description, capped at ``MAX_QUERY_CHARS``."""
    query = (text or "").strip()
    if len(query) > 100:
        query = query.split(".")[0][:MAX_QUERY_CHARS]
    return query.strip()


def keyword_query(text: str, max_words: int = 4) -> str:
    words = [w for w in (text or "").split() if len(w) > 3]
    return " ".join(words[:max_words])


def choose_k(paper_count: int) -> int:
    return min(KMEANS_MAX_K, max(KMEANS_MIN_K, math.ceil(paper_count / 4)))


def fallback_abstract(paper: Paper) -> str:
    year = paper.year or "recent years"
    return (
        f"This research paper explores {paper.title.lower()}. Published in {year}, "
        "this work contributes to understanding in this field."
    )


class ResearchMapService:
    def __init__(
        self,
        store: WorkspaceStore,
        llm: LLMService,
        settings: Optional[Settings] = None,
        *,
        literature_client: Optional[SemanticScholarClient] = None,
        ranker: Optional[BranchRanker] = None,
        rng: Optional[random.Random] = None,
    ):
        self._store = store
        self._llm = llm
        self._settings = settings or Settings.from_env()
        self._literature_client = literature_client
        self._ranker = ranker
        self._rng = rng

    async def build(self, project_id: str, *, strategy: Optional[str] = None) -> BuildOutcome:
        project = self._store.get_project(project_id)
        if project is None:
            raise NotFoundError("Project not found")

        resolved = self._resolve_strategy(strategy)

        try:
            papers = await self._collect_papers(project)
            if not papers:
                logger.info("No candidate papers for project=%s", project_id)
                research_map = ResearchMap.failed(project_id, NO_PAPERS_MESSAGE, strategy=resolved)
                self._store.save_research_map(research_map)
                return BuildOutcome(research_map=research_map, message=NO_PAPERS_MESSAGE)

            await asyncio.to_thread(self._fill_missing_abstracts, papers)

            message = None
            if resolved == "kmeans":
                branches = await asyncio.to_thread(self._cluster_by_embedding, project, papers)
            else:
                max_groups = self._settings.max_groups
                branches = group_by_label(papers, max_groups=max_groups, ranker=self._ranker)
                dropped = overflow_labels(papers, max_groups=max_groups)
                if dropped:
                    message = f"{len(dropped)} approach group(s) beyond the first {max_groups} were not included"

            research_map = ResearchMap(
                project_id=project_id,
                clusters=branches,
                total_papers=sum(len(b.papers) for b in branches),
                strategy=resolved,
            )
            self._store.save_research_map(research_map)
            logger.info(
                "Research map built project=%s strategy=%s branches=%d papers=%d",
                project_id, resolved, len(branches), research_map.total_papers,
            )
            return BuildOutcome(research_map=research_map, message=message)
        except Exception as exc:
            error = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
            logger.warning("Research map build failed project=%s error=%s", project_id, error)
            self._store.save_research_map(ResearchMap.failed(project_id, error, strategy=resolved))
            if isinstance(exc, UpstreamGenerationError):
                raise
            raise UpstreamGenerationError(error) from exc

    def _resolve_strategy(self, strategy: Optional[str]) -> str:
        if strategy in CLUSTER_STRATEGIES:
            return strategy
        # literature hits carry no approach label to group on
        if self._settings.paper_source == "semantic_scholar":
            return "kmeans"
        return self._settings.cluster_strategy

    async def _collect_papers(self, project: Project) -> List[Paper]:
        if self._settings.paper_source == "semantic_scholar":
            return await self._search_literature(project)
        return await asyncio.to_thread(
            self._llm.generate_papers,
            summary=project.summary,
            description=project.description,
            count=self._settings.paper_count,
        )

    async def _search_literature(self, project: Project) -> List[Paper]:
        client = self._literature_client or SemanticScholarClient(
            api_key=self._settings.semantic_scholar_api_key
        )
        query = shorten_query(project.description or project.summary)
        try:
            hits = await client.search_papers(query, limit=20)
            if not hits:
                keywords = keyword_query(query)
                if keywords and keywords != query:
                    logger.info("No hits for %r, retrying with keywords %r", query, keywords)
                    hits = await client.search_papers(keywords, limit=20)
        finally:
            # the session is reopened lazily on the next request
            await client.close()
        return [to_paper(hit) for hit in hits if hit.get("title")]

    def _fill_missing_abstracts(self, papers: List[Paper]) -> None:
        for paper in papers:
            if paper.abstract:
                continue
            try:
                paper.abstract = self._llm.write_abstract(
                    title=paper.title,
                    year=paper.year,
                    authors=paper.authors,
                    venue=paper.venue,
                )
            except UpstreamGenerationError as exc:
                logger.warning("Abstract generation failed paper=%s error=%s", paper.paper_id, exc)
                paper.abstract = fallback_abstract(paper)

    def _cluster_by_embedding(self, project: Project, papers: List[Paper]) -> List[Branch]:
        reference = self._llm.embed(project.summary or project.description)
        for paper in papers:
            paper.embedding = self._llm.embed((paper.abstract or paper.title)[:1000])

        branches = kmeans(
            papers,
            choose_k(len(papers)),
            self._settings.kmeans_max_iterations,
            reference=reference,
            rng=self._rng,
        )
        for branch in branches:
            abstracts = [r.paper.abstract or r.paper.title for r in branch.papers[:3]]
            branch.label = self._llm.label_cluster(abstracts) or branch.label
        return branches
