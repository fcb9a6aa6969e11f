"""Process-wide singletons shared by the route modules.

Built lazily on first use so importing the app never touches the database or
the LLM provider. Tests replace ``_settings``, ``_store`` and ``_llm_service``
with ``monkeypatch.setattr``.
"""

from __future__ import annotations

import random
from typing import Optional

from biomap.application.services.chat_service import ChatService
from biomap.application.services.llm_service import LLMService
from biomap.application.services.research_map_service import ResearchMapService
from biomap.config import Settings
from biomap.infrastructure.api_clients.semantic_scholar import SemanticScholarClient
from biomap.infrastructure.llm.router import ModelRouter
from biomap.infrastructure.stores.workspace_store import WorkspaceStore
from biomap.utils.ttl_cache import TTLCache

_settings: Optional[Settings] = None
_store: Optional[WorkspaceStore] = None
_llm_service: Optional[LLMService] = None
_literature_cache: Optional[TTLCache] = None
_rng: Optional[random.Random] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def get_workspace_store() -> WorkspaceStore:
    global _store
    if _store is None:
        _store = WorkspaceStore.from_db_url(get_settings().db_url)
    return _store


def get_llm_service() -> LLMService:
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService(router=ModelRouter.from_settings(get_settings()))
    return _llm_service


def _get_literature_client() -> Optional[SemanticScholarClient]:
    """A fresh client per build; the response cache outlives it."""
    global _literature_cache
    settings = get_settings()
    if settings.paper_source != "semantic_scholar":
        return None
    if _literature_cache is None:
        _literature_cache = TTLCache(max_age=settings.s2_cache_ttl_seconds)
    return SemanticScholarClient(api_key=settings.semantic_scholar_api_key, cache=_literature_cache)


def get_research_map_service() -> ResearchMapService:
    return ResearchMapService(
        get_workspace_store(),
        get_llm_service(),
        get_settings(),
        literature_client=_get_literature_client(),
        rng=_rng,
    )


def get_chat_service() -> ChatService:
    settings = get_settings()
    return ChatService(
        get_workspace_store(),
        get_llm_service(),
        max_papers=settings.context_max_papers,
        max_notes=settings.context_max_notes,
    )
