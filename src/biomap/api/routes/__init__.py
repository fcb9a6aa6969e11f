"""API Routes"""

from . import chat, notes, projects, research

__all__ = ["chat", "notes", "projects", "research"]
