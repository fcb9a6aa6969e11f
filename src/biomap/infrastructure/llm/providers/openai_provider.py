from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ProviderInfo:
    provider_name: str
    model_name: str
    cost_tier: int = 1


class OpenAIProvider:
    """Chat-completion and embedding calls against an OpenAI-compatible endpoint.

    The SDK client is created lazily so importing the API never needs a key.
    """

    def __init__(
        self,
        *,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        embedding_model: str = "text-embedding-3-small",
        cost_tier: int = 1,
        timeout: float = 60.0,
    ):
        self.model = model
        self.api_key = api_key
        self.base_url = base_url
        self.embedding_model = embedding_model
        self.cost_tier = cost_tier
        self.timeout = timeout
        self._client = None

    @property
    def info(self) -> ProviderInfo:
        return ProviderInfo(provider_name="openai", model_name=self.model, cost_tier=self.cost_tier)

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI

            kwargs: Dict[str, Any] = {"timeout": self.timeout}
            if self.api_key:
                kwargs["api_key"] = self.api_key
            if self.base_url:
                kwargs["base_url"] = self.base_url
            self._client = OpenAI(**kwargs)
        return self._client

    def invoke_simple(
        self,
        system: str,
        user: str,
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> str:
        params: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        if temperature is not None:
            params["temperature"] = temperature
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        if json_mode:
            params["response_format"] = {"type": "json_object"}

        response = self._get_client().chat.completions.create(**params)
        choices = response.choices or []
        if not choices:
            return ""
        return choices[0].message.content or ""

    def embed(self, text: str) -> List[float]:
        response = self._get_client().embeddings.create(model=self.embedding_model, input=text)
        return list(response.data[0].embedding)
