from biomap.application.services.linked_sources import resolve_linked_sources

PAPERS = {"p1": {"paperId": "p1", "title": "Phone microscopy", "year": 2020}}
NOTES = {"note_1": {"id": "note_1", "content": "Use an LED ring"}}


def _lookup(note_id):
    return NOTES.get(note_id)


def test_resolves_known_references_and_keeps_free_text():
    sources = ["p1", "note_1", "decision: buy a tripod", {"type": "paper", "id": "p1"}]

    resolved = resolve_linked_sources(sources, PAPERS, _lookup)

    assert resolved == [
        {"type": "paper", "id": "p1", "title": "Phone microscopy", "year": 2020},
        {"type": "note", "id": "note_1", "content": "Use an LED ring"},
        "decision: buy a tripod",
        {"type": "paper", "id": "p1", "title": "Phone microscopy", "year": 2020},
    ]


def test_dangling_references_are_omitted():
    sources = [
        {"type": "paper", "id": "deleted"},
        {"type": "note", "id": "note_gone"},
        "note_gone",
        {"type": "dataset", "id": "x"},
        "",
    ]

    assert resolve_linked_sources(sources, PAPERS, _lookup) == []


def test_empty_sources():
    assert resolve_linked_sources(None, PAPERS, _lookup) == []
