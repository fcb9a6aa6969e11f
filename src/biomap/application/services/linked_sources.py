"""Resolve a note's ``linkedSources`` weak references on read.

Entries are either free-form strings (a paper id, a note id, or plain text
such as a decision) or ``{"type": "paper"|"note", "id": ...}`` objects.
Typed references that no longer resolve are omitted; nothing here raises.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

NoteLookup = Callable[[str], Optional[Mapping[str, Any]]]


def _describe_paper(paper: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "type": "paper",
        "id": paper.get("paperId"),
        "title": paper.get("title") or "",
        "year": paper.get("year"),
    }


def _describe_note(note: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "type": "note",
        "id": note.get("id"),
        "content": str(note.get("content") or "")[:300],
    }


def resolve_linked_sources(
    sources: Sequence[Any],
    papers_by_id: Mapping[str, Mapping[str, Any]],
    note_lookup: NoteLookup,
) -> List[Any]:
    resolved: List[Any] = []
    for source in sources or []:
        if isinstance(source, Mapping):
            ref_type = str(source.get("type") or "").lower()
            ref_id = str(source.get("id") or "")
            if ref_type == "paper" and ref_id in papers_by_id:
                resolved.append(_describe_paper(papers_by_id[ref_id]))
            elif ref_type == "note":
                note = note_lookup(ref_id) if ref_id else None
                if note:
                    resolved.append(_describe_note(note))
            # unknown type or dangling id: dropped
            continue

        text = str(source or "").strip()
        if not text:
            continue
        if text in papers_by_id:
            resolved.append(_describe_paper(papers_by_id[text]))
        elif text.startswith("note_"):
            note = note_lookup(text)
            if note:
                resolved.append(_describe_note(note))
        else:
            resolved.append(text)
    return resolved
