"""
Workspace notes: CRUD plus LLM refinement grounded in the note's linked sources.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from biomap.api import deps
from biomap.application.services.context_packet import select_candidate_papers
from biomap.application.services.linked_sources import resolve_linked_sources
from biomap.domain.errors import NotFoundError, require_fields
from biomap.domain.research import Note, utcnow_iso
from biomap.utils.logging_config import LogFiles, Logger, set_trace_id

router = APIRouter()


class NoteCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    project_id: Optional[str] = Field(default=None, alias="projectId")
    content: Optional[str] = None
    linked_sources: Optional[List[Any]] = Field(default=None, alias="linkedSources")


class NoteUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    content: Optional[str] = None
    linked_sources: Optional[List[Any]] = Field(default=None, alias="linkedSources")


class NoteRefineRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    action: Optional[str] = None


def _get_note_or_404(note_id: str) -> Note:
    note = deps.get_workspace_store().get_note(note_id)
    if note is None:
        raise NotFoundError("Note not found")
    return note


def _note_lookup(note_id: str) -> Optional[Dict[str, Any]]:
    note = deps.get_workspace_store().get_note(note_id)
    return note.to_dict() if note else None


@router.post("/notes")
def create_note(req: NoteCreateRequest):
    set_trace_id()
    require_fields(projectId=req.project_id, content=req.content)

    note = Note(
        id=f"note_{uuid4().hex}",
        project_id=req.project_id,
        content=req.content,
        linked_sources=list(req.linked_sources or []),
    )
    deps.get_workspace_store().save_note(note)
    Logger.info(f"Note created id={note.id} project={note.project_id}", file=LogFiles.NOTES)
    return {"success": True, "note": note.to_dict()}


@router.get("/notes/project/{project_id}")
def list_project_notes(project_id: str):
    return deps.get_workspace_store().notes_for_project(project_id)


@router.get("/notes/{note_id}")
def get_note(note_id: str):
    return _get_note_or_404(note_id).to_dict()


@router.post("/notes/{note_id}/refine")
def refine_note(note_id: str, req: Optional[NoteRefineRequest] = None):
    set_trace_id()
    note = _get_note_or_404(note_id)
    action = req.action if req else None

    research_map = deps.get_workspace_store().get_research_map(note.project_id)
    papers_by_id = {
        str(p.get("paperId")): p for p in select_candidate_papers(research_map) if p.get("paperId")
    }
    sources = resolve_linked_sources(note.linked_sources, papers_by_id, _note_lookup)

    refined = deps.get_llm_service().refine_note(content=note.content, sources=sources, action=action)
    Logger.info(
        f"Note refined id={note_id} action={action or 'clarify'} sources={len(sources)}",
        file=LogFiles.NOTES,
    )
    return {"success": True, "originalContent": note.content, "refinedContent": refined}


@router.put("/notes/{note_id}")
def update_note(note_id: str, req: NoteUpdateRequest):
    set_trace_id()
    note = _get_note_or_404(note_id)

    if req.content:
        note.content = req.content
    if req.linked_sources is not None:
        note.linked_sources = list(req.linked_sources)

    note.updated_at = utcnow_iso()
    deps.get_workspace_store().save_note(note)
    Logger.info(f"Note updated id={note_id}", file=LogFiles.NOTES)
    return note.to_dict()


@router.delete("/notes/{note_id}")
def delete_note(note_id: str):
    set_trace_id()
    _get_note_or_404(note_id)
    deps.get_workspace_store().delete_note(note_id)
    Logger.info(f"Note deleted id={note_id}", file=LogFiles.NOTES)
    return {"success": True, "message": "Note deleted"}
