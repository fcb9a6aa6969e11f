import json

import pytest

from biomap.application.services.context_packet import build_context_packet
from biomap.application.prompts.research_prompts import NOTE_REFINE_ACTIONS
from biomap.application.services.llm_service import LLMService, _safe_parse_json
from biomap.domain.errors import UpstreamGenerationError


class _FakeProvider:
    def __init__(self, response: str = "ok", vector=None):
        self.response = response
        self.vector = vector if vector is not None else [0.1, 0.2]
        self.calls = 0
        self.kwargs = []
        self.prompts = []

    def invoke_simple(self, system: str, user: str, **kwargs) -> str:
        self.calls += 1
        self.kwargs.append(kwargs)
        self.prompts.append((system, user))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    def embed(self, text: str):
        self.calls += 1
        return self.vector


class _FakeRouter:
    def __init__(self, provider: _FakeProvider):
        self.provider = provider
        self.task_types = []

    def get_provider(self, task_type: str = "default"):
        self.task_types.append(task_type)
        return self.provider


def _service(response="ok", **kwargs):
    provider = _FakeProvider(response=response, **kwargs)
    router = _FakeRouter(provider)
    return LLMService(router=router), provider, router


def test_complete_caches_only_when_requested():
    service, provider, _ = _service("cached")

    service.complete(task_type="labeling", system="s", user="u", use_cache=True)
    service.complete(task_type="labeling", system="s", user="u", use_cache=True)
    assert provider.calls == 1

    service.complete(task_type="chat", system="s", user="u")
    service.complete(task_type="chat", system="s", user="u")
    assert provider.calls == 3


def test_business_methods_route_to_expected_task_types():
    service, _, router = _service("Label")

    service.summarize_project("desc", {}, {})
    service.label_cluster(["abstract one"])
    service.refine_note(content="note", sources=[], action="summarize")
    service.embed("text")

    assert router.task_types == ["summary", "labeling", "refine", "embedding"]


def test_provider_failure_raises_upstream_error():
    service, _, _ = _service(RuntimeError("boom"))

    with pytest.raises(UpstreamGenerationError, match="boom"):
        service.summarize_project("desc")


def test_empty_completion_raises_upstream_error():
    service, _, _ = _service("   ")

    with pytest.raises(UpstreamGenerationError):
        service.label_cluster(["a"])


def test_generate_papers_parses_and_fills_missing_ids():
    payload = {
        "papers": [
            {"paperId": "gen_1", "title": "One", "authors": ["A", "B"], "year": "2021", "approach": "Imaging"},
            {"title": "Two", "authors": [{"name": "C"}]},
            {"paperId": "gen_1", "title": "Duplicate id"},
            {"abstract": "no title"},
            "not a dict",
        ]
    }
    service, provider, router = _service(json.dumps(payload))

    papers = service.generate_papers(summary="s", description="d", count=3)

    assert [p.title for p in papers] == ["One", "Two", "Duplicate id"]
    assert papers[0].paper_id == "gen_1"
    assert papers[0].year == 2021
    assert papers[1].paper_id.startswith("ai_generated_")
    assert papers[2].paper_id.startswith("ai_generated_")
    assert len({p.paper_id for p in papers}) == 3
    assert all(p.is_ai_generated for p in papers)
    assert papers[1].approach == "Other Methods"
    assert provider.kwargs[0]["json_mode"] is True
    assert router.task_types == ["generation"]


def test_generate_papers_accepts_results_key_and_bare_list():
    service, _, _ = _service(json.dumps({"results": [{"title": "R"}]}))
    assert [p.title for p in service.generate_papers(summary="s", description="d")] == ["R"]

    service, _, _ = _service(json.dumps([{"title": "Bare"}]))
    assert [p.title for p in service.generate_papers(summary="s", description="d")] == ["Bare"]


def test_generate_papers_empty_list_is_not_an_error():
    service, _, _ = _service(json.dumps({"papers": []}))

    assert service.generate_papers(summary="s", description="d") == []


@pytest.mark.parametrize(
    "raw",
    [
        "I could not come up with papers.",
        json.dumps({"papers": "none"}),
        json.dumps({"papers": [{"abstract": "untitled"}]}),
    ],
)
def test_generate_papers_unusable_output_raises(raw):
    service, _, _ = _service(raw)

    with pytest.raises(UpstreamGenerationError):
        service.generate_papers(summary="s", description="d")


def test_extract_evidence_returns_all_four_lists():
    payload = {
        "what_worked": ["A", ""],
        "limitations": ["B"],
        "key_lessons": [],
        "practical_constraints": ["C"],
    }
    service, _, router = _service("Here you go: " + json.dumps(payload))

    evidence = service.extract_evidence(abstract="abs", title="t")

    assert evidence.to_dict() == {
        "what_worked": ["A"],
        "limitations": ["B"],
        "key_lessons": [],
        "practical_constraints": ["C"],
    }
    assert router.task_types == ["extraction"]


@pytest.mark.parametrize(
    "payload",
    [
        {"what_worked": ["A"], "limitations": ["B"], "key_lessons": ["C"]},
        {"what_worked": ["A"], "limitations": None, "key_lessons": [], "practical_constraints": []},
        {"what_worked": "A", "limitations": [], "key_lessons": [], "practical_constraints": []},
        [],
    ],
)
def test_extract_evidence_malformed_shape_is_a_full_failure(payload):
    service, _, _ = _service(json.dumps(payload))

    with pytest.raises(UpstreamGenerationError):
        service.extract_evidence(abstract="abs")


def test_refine_note_unknown_action_falls_back_to_clarify():
    service, provider, _ = _service("refined")

    service.refine_note(content="raw", sources=["decision: use phone"], action="shout")

    _system, user = provider.prompts[0]
    assert NOTE_REFINE_ACTIONS["clarify"] in user
    assert "decision: use phone" in user


def test_answer_with_context_includes_packet_material():
    packet = build_context_packet(
        {"summary": "Field microscopy", "constraints": {"budget": "low"}},
        [{"paperId": "p1", "title": "Phone scopes", "year": 2020, "abstract": "abc", "similarity": 0.9}],
        None,
        [{"id": "note_1", "content": "try LED ring", "createdAt": "2024-01-01T00:00:00Z"}],
    )
    service, provider, router = _service("grounded answer")

    answer = service.answer_with_context(message="What works?", packet=packet)

    system, user = provider.prompts[0]
    assert answer == "grounded answer"
    assert router.task_types == ["chat"]
    assert "Field microscopy" in user
    assert "Phone scopes" in user
    assert "try LED ring" in user
    assert "What works?" in user


def test_embed_is_cached_per_text():
    service, provider, _ = _service(vector=[1.0, 2.0])

    assert service.embed("same") == [1.0, 2.0]
    assert service.embed("same") == [1.0, 2.0]
    assert provider.calls == 1


def test_write_abstract_prompt_lists_first_three_authors():
    service, provider, router = _service("A generated abstract.")

    abstract = service.write_abstract(
        title="CRISPR screens in organoids",
        year=2021,
        authors=["Ana", "Ben", "Cho", "Dev"],
        venue="Nature Methods",
    )

    assert abstract == "A generated abstract."
    assert router.task_types == ["summary"]
    assert provider.kwargs[0] == {"temperature": 0.7, "max_tokens": 150}
    _system, user = provider.prompts[0]
    assert "Title: CRISPR screens in organoids" in user
    assert "Year: 2021" in user
    assert "Authors: Ana, Ben, Cho\n" in user
    assert "Venue: Nature Methods" in user
    assert user.rstrip().endswith("Write ONLY the abstract, nothing else.")


def test_write_abstract_fills_unknown_metadata():
    service, provider, _ = _service("x")

    service.write_abstract(title="Untitled work")

    _system, user = provider.prompts[0]
    assert "Year: Unknown" in user
    assert "Authors: Unknown" in user
    assert "Venue: Unknown" in user


def test_embed_empty_vector_raises():
    service, _, _ = _service(vector=[])

    with pytest.raises(UpstreamGenerationError):
        service.embed("x")


def test_safe_parse_json_extracts_embedded_payloads():
    assert _safe_parse_json('{"a": 1}') == {"a": 1}
    assert _safe_parse_json('```json\n{"a": 2}\n```') == {"a": 2}
    assert _safe_parse_json("prefix [1, 2] suffix") == [1, 2]
    assert _safe_parse_json("nothing here") is None
