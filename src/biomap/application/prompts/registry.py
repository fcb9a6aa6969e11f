from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from biomap.application.prompts.research_prompts import (
    ABSTRACT_WRITING_SYSTEM,
    ABSTRACT_WRITING_USER,
    CLUSTER_LABEL_SYSTEM,
    CLUSTER_LABEL_USER,
    EVIDENCE_EXTRACTION_SYSTEM,
    EVIDENCE_EXTRACTION_USER,
    GROUNDED_CHAT_SYSTEM,
    GROUNDED_CHAT_USER,
    NOTE_REFINE_SYSTEM,
    NOTE_REFINE_USER,
    PAPER_GENERATION_SYSTEM,
    PAPER_GENERATION_USER,
    PROJECT_SUMMARY_SYSTEM,
    PROJECT_SUMMARY_USER,
    SIMILAR_PAPERS_SYSTEM,
    SIMILAR_PAPERS_USER,
)


@dataclass(frozen=True)
class PromptTemplate:
    name: str
    system: str
    user: str


class PromptRegistry:
    def __init__(self) -> None:
        templates = [
            PromptTemplate("project_summary", PROJECT_SUMMARY_SYSTEM, PROJECT_SUMMARY_USER),
            PromptTemplate("paper_generation", PAPER_GENERATION_SYSTEM, PAPER_GENERATION_USER),
            PromptTemplate("cluster_label", CLUSTER_LABEL_SYSTEM, CLUSTER_LABEL_USER),
            PromptTemplate("abstract_writing", ABSTRACT_WRITING_SYSTEM, ABSTRACT_WRITING_USER),
            PromptTemplate("evidence_extraction", EVIDENCE_EXTRACTION_SYSTEM, EVIDENCE_EXTRACTION_USER),
            PromptTemplate("similar_papers", SIMILAR_PAPERS_SYSTEM, SIMILAR_PAPERS_USER),
            PromptTemplate("note_refine", NOTE_REFINE_SYSTEM, NOTE_REFINE_USER),
            PromptTemplate("grounded_chat", GROUNDED_CHAT_SYSTEM, GROUNDED_CHAT_USER),
        ]
        self._templates: Dict[str, PromptTemplate] = {t.name: t for t in templates}

    def get(self, name: str) -> PromptTemplate:
        key = (name or "").strip().lower()
        if key not in self._templates:
            raise KeyError(f"Unknown prompt template: {name}")
        return self._templates[key]

    def list(self) -> List[str]:
        return sorted(self._templates.keys())
