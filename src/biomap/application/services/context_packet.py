"""Bounded context packet for grounded chat answers."""

from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from biomap.domain.research import ContextPacket, created_at_sort_key

MAX_CONTEXT_PAPERS = 5
MAX_CONTEXT_NOTES = 5


def _similarity(paper: Mapping[str, Any]) -> float:
    try:
        return float(paper.get("similarity") or 0.0)
    except (TypeError, ValueError):
        return 0.0


def select_candidate_papers(research_map: Optional[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Flatten a persisted research map into the candidate paper pool."""
    if not research_map:
        return []
    papers: List[Dict[str, Any]] = []
    for cluster in research_map.get("clusters") or []:
        if not isinstance(cluster, Mapping):
            continue
        papers.extend(p for p in cluster.get("papers") or [] if isinstance(p, Mapping))
    return papers


def select_papers(
    candidate_papers: Sequence[Mapping[str, Any]],
    explicit_selection_ids: Optional[Iterable[str]] = None,
    *,
    limit: int = MAX_CONTEXT_PAPERS,
) -> List[Mapping[str, Any]]:
    selected_ids = {str(x) for x in (explicit_selection_ids or []) if x}
    if selected_ids:
        return [p for p in candidate_papers if str(p.get("paperId") or "") in selected_ids]

    # sorted() is stable, so equal scores keep their candidate order
    ranked = sorted(candidate_papers, key=_similarity, reverse=True)
    return ranked[: max(0, int(limit))]


def select_notes(
    notes_for_project: Sequence[Mapping[str, Any]],
    *,
    limit: int = MAX_CONTEXT_NOTES,
) -> List[Mapping[str, Any]]:
    """The most recently created notes, newest first."""
    ranked = sorted(notes_for_project, key=created_at_sort_key, reverse=True)
    return ranked[: max(0, int(limit))]


def build_context_packet(
    project: Mapping[str, Any],
    candidate_papers: Sequence[Mapping[str, Any]],
    explicit_selection_ids: Optional[Iterable[str]] = None,
    notes_for_project: Sequence[Mapping[str, Any]] = (),
    *,
    max_papers: int = MAX_CONTEXT_PAPERS,
    max_notes: int = MAX_CONTEXT_NOTES,
) -> ContextPacket:
    papers = select_papers(candidate_papers, explicit_selection_ids, limit=max_papers)
    notes = select_notes(notes_for_project, limit=max_notes)

    return ContextPacket(
        project_summary=str(project.get("summary") or ""),
        constraints=copy.deepcopy(dict(project.get("constraints") or {})),
        selected_papers=tuple(copy.deepcopy(dict(p)) for p in papers),
        evidence_cards=(),
        linked_notes=tuple(copy.deepcopy(dict(n)) for n in notes),
    )
