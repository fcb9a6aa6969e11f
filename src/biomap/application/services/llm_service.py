from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from biomap.application.prompts import PromptRegistry
from biomap.application.prompts.research_prompts import NOTE_REFINE_ACTIONS
from biomap.domain.errors import UpstreamGenerationError
from biomap.domain.research import EVIDENCE_FIELDS, ContextPacket, EvidenceRecord, Paper

logger = logging.getLogger(__name__)

DEFAULT_REFINE_ACTION = "clarify"


class LLMService:
    """Project-level LLM facade with task routing, prompt templates, and light caching.

    Every provider failure, empty completion or malformed structured output
    surfaces as ``UpstreamGenerationError``; nothing is retried here.
    """

    def __init__(
        self,
        router=None,
        prompt_registry: Optional[PromptRegistry] = None,
        *,
        enable_cache: bool = True,
    ) -> None:
        if router is None:
            from biomap.infrastructure.llm.router import ModelRouter

            router = ModelRouter.from_env()
        self._router = router
        self._prompts = prompt_registry or PromptRegistry()
        self._enable_cache = enable_cache
        self._cache: Dict[str, str] = {}
        self._embedding_cache: Dict[str, List[float]] = {}

    def complete(
        self,
        *,
        task_type: str = "default",
        system: str,
        user: str,
        use_cache: bool = False,
        **kwargs,
    ) -> str:
        cache_key = self._cache_key(task_type=task_type, system=system, user=user, kwargs=kwargs)
        if self._enable_cache and use_cache and cache_key in self._cache:
            return self._cache[cache_key]

        try:
            provider = self._router.get_provider(task_type)
            result = (provider.invoke_simple(system, user, **kwargs) or "").strip()
        except Exception as exc:
            logger.warning("LLM complete failed task_type=%s error=%s", task_type, exc)
            raise UpstreamGenerationError(f"LLM request failed: {exc}") from exc

        if not result:
            raise UpstreamGenerationError(f"LLM returned an empty response for task '{task_type}'")

        if self._enable_cache and use_cache:
            self._cache[cache_key] = result
        return result

    def complete_json(self, *, task_type: str, system: str, user: str, **kwargs) -> Any:
        raw = self.complete(task_type=task_type, system=system, user=user, json_mode=True, **kwargs)
        parsed = _safe_parse_json(raw)
        if parsed is None:
            logger.warning("LLM returned non-JSON output task_type=%s raw=%s", task_type, raw[:200])
            raise UpstreamGenerationError(f"LLM returned malformed JSON for task '{task_type}'")
        return parsed

    def embed(self, text: str) -> List[float]:
        key = text or ""
        if self._enable_cache and key in self._embedding_cache:
            return list(self._embedding_cache[key])
        try:
            vector = [float(x) for x in self._router.get_provider("embedding").embed(key)]
        except Exception as exc:
            logger.warning("LLM embedding failed error=%s", exc)
            raise UpstreamGenerationError(f"Embedding request failed: {exc}") from exc
        if not vector:
            raise UpstreamGenerationError("Embedding request returned an empty vector")
        if self._enable_cache:
            self._embedding_cache[key] = vector
        return list(vector)

    # ── Business tasks ────────────────────────────────────────────────

    def summarize_project(
        self,
        description: str,
        capabilities: Optional[Dict[str, Any]] = None,
        constraints: Optional[Dict[str, Any]] = None,
    ) -> str:
        prompt = self._prompts.get("project_summary")
        return self.complete(
            task_type="summary",
            system=prompt.system,
            user=prompt.user.format(
                description=description or "",
                capabilities=json.dumps(capabilities or {}, ensure_ascii=False),
                constraints=json.dumps(constraints or {}, ensure_ascii=False),
            ),
            temperature=0.3,
        )

    def generate_papers(self, *, summary: str, description: str, count: int = 15) -> List[Paper]:
        prompt = self._prompts.get("paper_generation")
        payload = self.complete_json(
            task_type="generation",
            system=prompt.system,
            user=prompt.user.format(
                count=count,
                description=(description or "")[:150],
                summary=summary or "",
            ),
            temperature=0.7,
            max_tokens=3000,
        )
        return _papers_from_payload(payload, source="generation")

    def suggest_similar_papers(self, *, title: str, abstract: str, count: int = 5) -> List[Paper]:
        prompt = self._prompts.get("similar_papers")
        payload = self.complete_json(
            task_type="generation",
            system=prompt.system,
            user=prompt.user.format(count=count, title=title or "", abstract=(abstract or "")[:500]),
            temperature=0.8,
            max_tokens=2000,
        )
        return _papers_from_payload(payload, source="similar")

    def label_cluster(self, abstracts: Sequence[str]) -> str:
        prompt = self._prompts.get("cluster_label")
        label = self.complete(
            task_type="labeling",
            system=prompt.system,
            user=prompt.user.format(abstracts="\n\n".join(a for a in abstracts if a)),
            use_cache=True,
            temperature=0.3,
        )
        return label.strip().strip('"').strip()

    def write_abstract(
        self,
        *,
        title: str,
        year: Optional[int] = None,
        authors: Sequence[str] = (),
        venue: str = "",
    ) -> str:
        """Short plausible abstract for a paper whose source record has none."""
        prompt = self._prompts.get("abstract_writing")
        return self.complete(
            task_type="summary",
            system=prompt.system,
            user=prompt.user.format(
                title=title or "",
                year=year or "Unknown",
                authors=", ".join(list(authors)[:3]) or "Unknown",
                venue=venue or "Unknown",
            ),
            temperature=0.7,
            max_tokens=150,
        )

    def extract_evidence(self, *, abstract: str, title: str = "") -> EvidenceRecord:
        prompt = self._prompts.get("evidence_extraction")
        payload = self.complete_json(
            task_type="extraction",
            system=prompt.system,
            user=prompt.user.format(title=title or "", abstract=abstract or ""),
            use_cache=True,
            temperature=0.1,
        )
        return _evidence_from_payload(payload)

    def refine_note(self, *, content: str, sources: Sequence[Any], action: Optional[str] = None) -> str:
        resolved_action = action if action in NOTE_REFINE_ACTIONS else DEFAULT_REFINE_ACTION
        prompt = self._prompts.get("note_refine")
        return self.complete(
            task_type="refine",
            system=prompt.system,
            user=prompt.user.format(
                instruction=NOTE_REFINE_ACTIONS[resolved_action],
                content=content or "",
                sources=json.dumps(list(sources or []), ensure_ascii=False, indent=2),
            ),
            temperature=0.5,
        )

    def answer_with_context(self, *, message: str, packet: ContextPacket) -> str:
        prompt = self._prompts.get("grounded_chat")
        return self.complete(
            task_type="chat",
            system=prompt.system,
            user=prompt.user.format(
                summary=packet.project_summary,
                constraints=json.dumps(dict(packet.constraints), ensure_ascii=False, indent=2),
                papers=_format_papers_for_prompt(packet.selected_papers),
                evidence=json.dumps([dict(e) for e in packet.evidence_cards], ensure_ascii=False),
                notes="\n".join(f"- {n.get('content') or ''}" for n in packet.linked_notes),
                message=message,
            ),
            temperature=0.7,
        )

    def _cache_key(self, *, task_type: str, system: str, user: str, kwargs: Dict[str, Any]) -> str:
        payload = json.dumps(
            {"task_type": task_type, "system": system, "user": user, "kwargs": kwargs},
            ensure_ascii=False,
            sort_keys=True,
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _format_papers_for_prompt(papers: Sequence[Dict[str, Any]]) -> str:
    rows: List[str] = []
    for paper in papers:
        abstract = str(paper.get("abstract") or "")
        rows.append(
            "- [{pid}] {title} ({year}): {snippet}...".format(
                pid=paper.get("paperId") or "?",
                title=paper.get("title") or "Untitled",
                year=paper.get("year") or "n.d.",
                snippet=abstract[:200],
            )
        )
    return "\n".join(rows)


def _papers_from_payload(payload: Any, *, source: str) -> List[Paper]:
    if isinstance(payload, dict):
        items = payload.get("papers", payload.get("results"))
    else:
        items = payload
    if not isinstance(items, list):
        raise UpstreamGenerationError(f"LLM {source} output has no paper list")
    if not items:
        return []

    batch = uuid4().hex[:8]
    seen_ids = set()
    papers: List[Paper] = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict) or not str(item.get("title") or "").strip():
            continue
        paper = Paper.from_dict(item)
        if not paper.paper_id or paper.paper_id in seen_ids:
            paper.paper_id = f"ai_generated_{batch}_{idx}"
        paper.is_ai_generated = True
        seen_ids.add(paper.paper_id)
        papers.append(paper)

    if not papers:
        raise UpstreamGenerationError(f"LLM {source} output contained no usable papers")
    return papers


def _evidence_from_payload(payload: Any) -> EvidenceRecord:
    if not isinstance(payload, dict):
        raise UpstreamGenerationError("Evidence extraction did not return a JSON object")

    fields: Dict[str, List[str]] = {}
    for name in EVIDENCE_FIELDS:
        value = payload.get(name)
        if not isinstance(value, list):
            raise UpstreamGenerationError(f"Evidence extraction output is missing list field '{name}'")
        fields[name] = [str(v).strip() for v in value if v is not None and str(v).strip()]
    return EvidenceRecord(**fields)


def _safe_parse_json(raw: str) -> Optional[Any]:
    text = (raw or "").strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except Exception:
        pass

    for open_char, close_char in (("{", "}"), ("[", "]")):
        start = text.find(open_char)
        end = text.rfind(close_char)
        if start >= 0 and end > start:
            try:
                return json.loads(text[start : end + 1])
            except Exception:
                continue
    return None
