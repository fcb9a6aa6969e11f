# tests/conftest.py
"""
Pytest configuration and fixtures.
Adds src to sys.path so `import biomap` works without an editable install.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest

project_root = Path(__file__).parent.parent
src_root = project_root / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from biomap.domain.errors import UpstreamGenerationError  # noqa: E402
from biomap.domain.research import EvidenceRecord, Paper  # noqa: E402
from biomap.infrastructure.stores.workspace_store import WorkspaceStore  # noqa: E402
from biomap.utils.logging_config import Logger  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_log_dir(tmp_path):
    Logger.init(base_dir=str(tmp_path / "logs"))
    yield
    Logger.close()


class FakeLLM:
    """Stands in for ``LLMService`` in route and service tests."""

    def __init__(self, papers: List[Paper] = None):
        self.papers = list(papers or [])
        self.fail_on = set()
        self.calls: List[str] = []
        self.last_packet = None
        self.last_sources = None
        self.last_action = None

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise UpstreamGenerationError(f"{name} failed")

    def summarize_project(self, description, capabilities=None, constraints=None) -> str:
        self._record("summarize_project")
        return f"Summary: {description[:40]}"

    def generate_papers(self, *, summary, description, count=15) -> List[Paper]:
        self._record("generate_papers")
        return [Paper(**vars(p)) for p in self.papers]

    def label_cluster(self, abstracts) -> str:
        self._record("label_cluster")
        return f"Theme of {len(abstracts)}"

    def write_abstract(self, *, title, year=None, authors=(), venue="") -> str:
        self._record("write_abstract")
        return f"Written abstract for {title}"

    def embed(self, text: str) -> List[float]:
        self._record("embed")
        return [1.0, float(len(text) % 7), 0.5]

    def extract_evidence(self, *, abstract, title="") -> EvidenceRecord:
        self._record("extract_evidence")
        return EvidenceRecord(
            what_worked=["pipeline"],
            limitations=["small sample"],
            key_lessons=["calibrate"],
            practical_constraints=["needs GPU"],
        )

    def suggest_similar_papers(self, *, title, abstract, count=5) -> List[Paper]:
        self._record("suggest_similar_papers")
        return [
            Paper(paper_id=f"sim_{i}", title=f"Similar {i}", is_ai_generated=True)
            for i in range(count)
        ]

    def refine_note(self, *, content, sources, action=None) -> str:
        self._record("refine_note")
        self.last_sources = list(sources)
        self.last_action = action
        return f"Refined: {content}"

    def answer_with_context(self, *, message, packet) -> str:
        self._record("answer_with_context")
        self.last_packet = packet
        return f"Answer to: {message}"


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def workspace_store() -> WorkspaceStore:
    return WorkspaceStore.in_memory()


@pytest.fixture
def api_deps(monkeypatch, workspace_store, fake_llm) -> Dict[str, Any]:
    """Point the route dependency module at an in-memory store and a fake LLM."""
    from biomap.api import deps
    from biomap.config import Settings

    settings = Settings()
    monkeypatch.setattr(deps, "_settings", settings)
    monkeypatch.setattr(deps, "_store", workspace_store)
    monkeypatch.setattr(deps, "_llm_service", fake_llm)
    return {"settings": settings, "store": workspace_store, "llm": fake_llm}
