from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional, Sequence

from biomap.application.ports import KeyValueStore
from biomap.domain.research import (
    ChatHistory,
    Note,
    Project,
    ResearchMap,
    created_at_sort_key,
)
from biomap.infrastructure.stores.kv_store import InMemoryKeyValueStore, SqlAlchemyKeyValueStore
from biomap.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url


APPEND_LOCK_STRIPES = 64


def research_key(project_id: str) -> str:
    return f"research_{project_id}"


def chat_key(project_id: str) -> str:
    return f"chat_{project_id}"


class WorkspaceStore:
    """Typed access to the four workspace namespaces.

    Projects and notes are keyed by their own id (``project_<id>``,
    ``note_<id>``); research maps and chat histories by project id. There is
    no cascade between namespaces.
    """

    def __init__(
        self,
        *,
        projects: KeyValueStore,
        research: KeyValueStore,
        notes: KeyValueStore,
        chat: KeyValueStore,
    ):
        self.projects = projects
        self.research = research
        self.notes = notes
        self.chat = chat
        self._append_locks = [threading.Lock() for _ in range(APPEND_LOCK_STRIPES)]

    @classmethod
    def from_db_url(cls, db_url: Optional[str] = None) -> "WorkspaceStore":
        provider = SessionProvider(db_url or get_db_url())
        return cls(
            projects=SqlAlchemyKeyValueStore("projects", provider=provider),
            research=SqlAlchemyKeyValueStore("research", provider=provider),
            notes=SqlAlchemyKeyValueStore("notes", provider=provider),
            chat=SqlAlchemyKeyValueStore("chat", provider=provider),
        )

    @classmethod
    def in_memory(cls) -> "WorkspaceStore":
        return cls(
            projects=InMemoryKeyValueStore(),
            research=InMemoryKeyValueStore(),
            notes=InMemoryKeyValueStore(),
            chat=InMemoryKeyValueStore(),
        )

    # ── Projects ──────────────────────────────────────────────────────

    def get_project(self, project_id: str) -> Optional[Project]:
        data = self.projects.get(project_id)
        return Project.from_dict(data) if data else None

    def save_project(self, project: Project) -> Project:
        self.projects.set(project.id, project.to_dict())
        return project

    def list_projects(self) -> List[Project]:
        return [Project.from_dict(v) for v in self.projects.get_all().values()]

    # ── Research maps ─────────────────────────────────────────────────

    def get_research_map(self, project_id: str) -> Optional[Dict[str, Any]]:
        return self.research.get(research_key(project_id))

    def save_research_map(self, research_map: ResearchMap) -> Dict[str, Any]:
        data = research_map.to_dict()
        self.research.set(research_key(research_map.project_id), data)
        return data

    # ── Notes ─────────────────────────────────────────────────────────

    def get_note(self, note_id: str) -> Optional[Note]:
        data = self.notes.get(note_id)
        return Note.from_dict(data) if data else None

    def save_note(self, note: Note) -> Note:
        self.notes.set(note.id, note.to_dict())
        return note

    def delete_note(self, note_id: str) -> None:
        self.notes.delete(note_id)

    def notes_for_project(self, project_id: str) -> List[Dict[str, Any]]:
        """All notes of a project, newest ``createdAt`` first."""
        matches = [
            n for n in self.notes.get_all().values() if n.get("projectId") == project_id
        ]
        return sorted(matches, key=created_at_sort_key, reverse=True)

    # ── Chat history ──────────────────────────────────────────────────

    def get_chat_history(self, project_id: str) -> ChatHistory:
        data = self.chat.get(chat_key(project_id))
        if not data:
            return ChatHistory(project_id=project_id, messages=[])
        history = ChatHistory.from_dict(data)
        history.project_id = history.project_id or project_id
        return history

    def append_chat_messages(
        self, project_id: str, messages: Sequence[Dict[str, Any]]
    ) -> ChatHistory:
        """Read-modify-write append, serialized per project within this process."""
        key = chat_key(project_id)
        # projects sharing a stripe also share a lock
        with self._append_locks[hash(key) % len(self._append_locks)]:
            history = self.get_chat_history(project_id)
            history.messages.extend(dict(m) for m in messages)
            self.chat.set(key, history.to_dict())
            return history

    def clear_chat_history(self, project_id: str) -> None:
        self.chat.delete(chat_key(project_id))
