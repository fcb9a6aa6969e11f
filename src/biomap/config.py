"""Runtime configuration.

``Settings.from_env()`` reads ``BIOMAP_*`` / provider environment variables.
A local ``.env`` is loaded by the API entrypoint before settings are built,
without overriding variables already set in the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from biomap.infrastructure.stores.sqlalchemy_db import DEFAULT_DB_URL

PAPER_SOURCES = ("llm", "semantic_scholar")
CLUSTER_STRATEGIES = ("label", "kmeans")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_choice(name: str, default: str, choices: tuple) -> str:
    raw = (os.getenv(name) or "").strip().lower()
    return raw if raw in choices else default


@dataclass
class Settings:
    db_url: str = DEFAULT_DB_URL

    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    chat_model: str = "gpt-4o"
    fast_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"

    paper_source: str = "llm"
    cluster_strategy: str = "label"
    max_groups: int = 5
    paper_count: int = 15
    kmeans_max_iterations: int = 10
    context_max_papers: int = 5
    context_max_notes: int = 5

    semantic_scholar_api_key: Optional[str] = None
    s2_cache_ttl_seconds: int = 3600

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            db_url=os.getenv("BIOMAP_DB_URL") or DEFAULT_DB_URL,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            chat_model=os.getenv("BIOMAP_CHAT_MODEL") or "gpt-4o",
            fast_model=os.getenv("BIOMAP_FAST_MODEL") or "gpt-4o-mini",
            embedding_model=os.getenv("BIOMAP_EMBEDDING_MODEL") or "text-embedding-3-small",
            paper_source=_env_choice("BIOMAP_PAPER_SOURCE", "llm", PAPER_SOURCES),
            cluster_strategy=_env_choice("BIOMAP_CLUSTER_STRATEGY", "label", CLUSTER_STRATEGIES),
            max_groups=_env_int("BIOMAP_MAX_GROUPS", 5),
            paper_count=_env_int("BIOMAP_PAPER_COUNT", 15),
            kmeans_max_iterations=_env_int("BIOMAP_KMEANS_MAX_ITERATIONS", 10),
            context_max_papers=_env_int("BIOMAP_CONTEXT_MAX_PAPERS", 5),
            context_max_notes=_env_int("BIOMAP_CONTEXT_MAX_NOTES", 5),
            semantic_scholar_api_key=os.getenv("SEMANTIC_SCHOLAR_API_KEY") or None,
            s2_cache_ttl_seconds=_env_int("BIOMAP_S2_CACHE_TTL_SECONDS", 3600),
        )
