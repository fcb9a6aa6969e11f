# src/biomap/domain/research.py
"""
Research workspace domain models.

Contains the records persisted in the key-value store and the ephemeral
context packet handed to the grounded-answer call:
- Project: the intake record whose summary anchors all grounding
- Paper / RankedPaper: candidate papers and their per-branch score
- Branch / ResearchMap: the partition of papers into labeled branches
- Note / ChatMessage / ChatHistory: user-owned workspace records
- EvidenceRecord: structured extraction from an abstract
- ContextPacket: bounded grounding input for chat

Wire format uses camelCase keys; ``from_dict`` tolerates missing fields so
older or partial records still load.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

DEFAULT_APPROACH = "Other Methods"
MAX_BRANCH_AUTHORS = 3


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not value:
        return None

    text = str(value).strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(text)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    except ValueError:
        return None


_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def created_at_sort_key(record: Dict[str, Any]) -> datetime:
    """Sort key for records by ``createdAt``; unparseable dates sort oldest."""
    return parse_timestamp(record.get("createdAt")) or _EPOCH


def _safe_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _safe_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _author_names(raw: Any) -> List[str]:
    if isinstance(raw, str):
        return [name.strip() for name in raw.split(",") if name.strip()]
    names: List[str] = []
    for item in raw or []:
        if isinstance(item, dict):
            name = str(item.get("name") or "").strip()
        else:
            name = str(item or "").strip()
        if name:
            names.append(name)
    return names


@dataclass
class Project:
    id: str
    description: str
    capabilities: Dict[str, Any] = field(default_factory=dict)
    constraints: Dict[str, Any] = field(default_factory=dict)
    summary: str = ""
    created_at: str = field(default_factory=utcnow_iso)
    updated_at: str = field(default_factory=utcnow_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "capabilities": dict(self.capabilities),
            "constraints": dict(self.constraints),
            "summary": self.summary,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            id=str(data.get("id") or ""),
            description=str(data.get("description") or ""),
            capabilities=dict(data.get("capabilities") or {}),
            constraints=dict(data.get("constraints") or {}),
            summary=str(data.get("summary") or ""),
            created_at=str(data.get("createdAt") or ""),
            updated_at=str(data.get("updatedAt") or ""),
        )


@dataclass
class Paper:
    """
    A candidate paper, either LLM-generated or fetched from a literature API.

    ``embedding`` only lives in memory during centroid clustering and is
    never serialized.
    """

    paper_id: str
    title: str
    authors: List[str] = field(default_factory=list)
    year: Optional[int] = None
    abstract: str = ""
    venue: str = ""
    citation_count: int = 0
    approach: str = DEFAULT_APPROACH
    url: Optional[str] = None
    is_ai_generated: bool = False
    embedding: Optional[List[float]] = field(default=None, repr=False, compare=False)

    def to_dict(self, *, max_authors: Optional[int] = None) -> Dict[str, Any]:
        authors = self.authors if max_authors is None else self.authors[:max_authors]
        return {
            "paperId": self.paper_id,
            "title": self.title,
            "authors": [{"name": name} for name in authors],
            "year": self.year,
            "abstract": self.abstract,
            "venue": self.venue,
            "citationCount": self.citation_count,
            "approach": self.approach,
            "url": self.url,
            "isAIGenerated": self.is_ai_generated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Paper":
        return cls(
            paper_id=str(data.get("paperId") or ""),
            title=str(data.get("title") or ""),
            authors=_author_names(data.get("authors")),
            year=_safe_int(data.get("year")),
            abstract=str(data.get("abstract") or ""),
            venue=str(data.get("venue") or ""),
            citation_count=_safe_int(data.get("citationCount"), 0) or 0,
            approach=str(data.get("approach") or "").strip() or DEFAULT_APPROACH,
            url=data.get("url") or None,
            is_ai_generated=bool(data.get("isAIGenerated", False)),
        )


@dataclass
class RankedPaper:
    """A branch member: the paper plus its rank score within the branch."""

    paper: Paper
    similarity: float

    @property
    def paper_id(self) -> str:
        return self.paper.paper_id

    def to_dict(self) -> Dict[str, Any]:
        data = self.paper.to_dict(max_authors=MAX_BRANCH_AUTHORS)
        data["similarity"] = self.similarity
        return data


@dataclass
class Branch:
    branch_id: str
    label: str
    papers: List[RankedPaper] = field(default_factory=list)
    avg_similarity: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "branchId": self.branch_id,
            "label": self.label,
            "papers": [p.to_dict() for p in self.papers],
            "avgSimilarity": self.avg_similarity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Branch":
        papers = [
            RankedPaper(paper=Paper.from_dict(p), similarity=_safe_float(p.get("similarity")))
            for p in data.get("papers") or []
            if isinstance(p, dict)
        ]
        return cls(
            branch_id=str(data.get("branchId") or data.get("branch_id") or ""),
            label=str(data.get("label") or ""),
            papers=papers,
            avg_similarity=_safe_float(data.get("avgSimilarity")),
        )


@dataclass
class ResearchMap:
    project_id: str
    clusters: List[Branch] = field(default_factory=list)
    total_papers: int = 0
    created_at: str = field(default_factory=utcnow_iso)
    strategy: str = ""
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "projectId": self.project_id,
            "clusters": [c.to_dict() for c in self.clusters],
            "totalPapers": self.total_papers,
            "createdAt": self.created_at,
            "strategy": self.strategy,
        }
        if self.error:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResearchMap":
        return cls(
            project_id=str(data.get("projectId") or ""),
            clusters=[Branch.from_dict(c) for c in data.get("clusters") or [] if isinstance(c, dict)],
            total_papers=_safe_int(data.get("totalPapers"), 0) or 0,
            created_at=str(data.get("createdAt") or ""),
            strategy=str(data.get("strategy") or ""),
            error=data.get("error") or None,
        )

    @classmethod
    def failed(cls, project_id: str, error: str, *, strategy: str = "") -> "ResearchMap":
        return cls(project_id=project_id, clusters=[], total_papers=0, strategy=strategy, error=error)


@dataclass
class Note:
    id: str
    project_id: str
    content: str
    linked_sources: List[Any] = field(default_factory=list)
    created_at: str = field(default_factory=utcnow_iso)
    updated_at: str = field(default_factory=utcnow_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "content": self.content,
            "linkedSources": list(self.linked_sources),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Note":
        return cls(
            id=str(data.get("id") or ""),
            project_id=str(data.get("projectId") or ""),
            content=str(data.get("content") or ""),
            linked_sources=list(data.get("linkedSources") or []),
            created_at=str(data.get("createdAt") or ""),
            updated_at=str(data.get("updatedAt") or ""),
        )


@dataclass
class ChatMessage:
    role: str
    content: str
    timestamp: str = field(default_factory=utcnow_iso)
    papers_count: Optional[int] = None
    notes_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
        }
        if self.papers_count is not None or self.notes_count is not None:
            data["contextUsed"] = {
                "papersCount": self.papers_count or 0,
                "notesCount": self.notes_count or 0,
            }
        return data


@dataclass
class ChatHistory:
    project_id: str
    messages: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"projectId": self.project_id, "messages": list(self.messages)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatHistory":
        messages = [m for m in data.get("messages") or [] if isinstance(m, dict)]
        return cls(project_id=str(data.get("projectId") or ""), messages=messages)


EVIDENCE_FIELDS = ("what_worked", "limitations", "key_lessons", "practical_constraints")


@dataclass
class EvidenceRecord:
    what_worked: List[str] = field(default_factory=list)
    limitations: List[str] = field(default_factory=list)
    key_lessons: List[str] = field(default_factory=list)
    practical_constraints: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {name: list(getattr(self, name)) for name in EVIDENCE_FIELDS}


@dataclass(frozen=True)
class ContextPacket:
    """Bounded grounding input for a single chat turn. Built fresh, never mutated."""

    project_summary: str
    constraints: Dict[str, Any]
    selected_papers: Sequence[Dict[str, Any]]
    evidence_cards: Sequence[Dict[str, Any]]
    linked_notes: Sequence[Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_summary": self.project_summary,
            "constraints": dict(self.constraints),
            "selected_papers": [dict(p) for p in self.selected_papers],
            "evidence_cards": [dict(e) for e in self.evidence_cards],
            "linked_notes": [dict(n) for n in self.linked_notes],
        }
