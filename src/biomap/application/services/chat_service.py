"""Grounded chat turn: bounded context packet in, answer plus history append out."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from biomap.application.services.context_packet import (
    MAX_CONTEXT_NOTES,
    MAX_CONTEXT_PAPERS,
    build_context_packet,
    select_candidate_papers,
)
from biomap.application.services.llm_service import LLMService
from biomap.domain.errors import NotFoundError, require_fields
from biomap.domain.research import ChatMessage
from biomap.infrastructure.stores.workspace_store import WorkspaceStore

logger = logging.getLogger(__name__)


class ChatService:
    def __init__(
        self,
        store: WorkspaceStore,
        llm: LLMService,
        *,
        max_papers: int = MAX_CONTEXT_PAPERS,
        max_notes: int = MAX_CONTEXT_NOTES,
    ):
        self._store = store
        self._llm = llm
        self._max_papers = max_papers
        self._max_notes = max_notes

    def send(
        self,
        project_id: Optional[str],
        message: Optional[str],
        selected_paper_ids: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        require_fields(projectId=project_id, message=message)

        project = self._store.get_project(project_id)
        if project is None:
            raise NotFoundError("Project not found")

        # a missing map is an empty candidate pool, not an error
        candidates = select_candidate_papers(self._store.get_research_map(project_id))
        packet = build_context_packet(
            project.to_dict(),
            candidates,
            selected_paper_ids,
            self._store.notes_for_project(project_id),
            max_papers=self._max_papers,
            max_notes=self._max_notes,
        )

        answer = self._llm.answer_with_context(message=message, packet=packet)

        papers_count = len(packet.selected_papers)
        notes_count = len(packet.linked_notes)
        self._store.append_chat_messages(
            project_id,
            [
                ChatMessage(role="user", content=message).to_dict(),
                ChatMessage(
                    role="assistant",
                    content=answer,
                    papers_count=papers_count,
                    notes_count=notes_count,
                ).to_dict(),
            ],
        )
        logger.info(
            "Chat turn project=%s papers=%d notes=%d explicit=%s",
            project_id, papers_count, notes_count, bool(selected_paper_ids),
        )
        return {
            "success": True,
            "response": answer,
            "contextUsed": {"papers": papers_count, "notes": notes_count},
        }
