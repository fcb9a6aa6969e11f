from __future__ import annotations

from typing import Dict, Optional

from biomap.config import Settings
from biomap.infrastructure.llm.providers.openai_provider import OpenAIProvider

# Grounded answers go to the stronger model; everything else to the fast one.
TASK_TIERS: Dict[str, str] = {
    "chat": "chat",
    "summary": "fast",
    "generation": "fast",
    "labeling": "fast",
    "extraction": "fast",
    "refine": "fast",
    "embedding": "fast",
    "default": "fast",
}


class ModelRouter:
    """Maps a task type to the provider that serves it."""

    def __init__(self, providers: Dict[str, OpenAIProvider], task_tiers: Optional[Dict[str, str]] = None):
        if "fast" not in providers:
            raise ValueError("ModelRouter requires a 'fast' provider")
        self._providers = providers
        self._task_tiers = dict(task_tiers or TASK_TIERS)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelRouter":
        common = dict(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            embedding_model=settings.embedding_model,
        )
        return cls(
            {
                "chat": OpenAIProvider(model=settings.chat_model, cost_tier=2, **common),
                "fast": OpenAIProvider(model=settings.fast_model, cost_tier=1, **common),
            }
        )

    @classmethod
    def from_env(cls) -> "ModelRouter":
        return cls.from_settings(Settings.from_env())

    def get_provider(self, task_type: str = "default") -> OpenAIProvider:
        tier = self._task_tiers.get(task_type, self._task_tiers.get("default", "fast"))
        return self._providers.get(tier) or self._providers["fast"]
