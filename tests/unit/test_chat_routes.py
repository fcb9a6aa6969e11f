from fastapi.testclient import TestClient

from biomap.api import main as api_main
from biomap.domain.research import Note, Project


def _seed(store, notes=0):
    store.save_project(Project(id="project_1", description="d", summary="Field microscopy", constraints={"budget": "low"}))
    store.research.set(
        "research_project_1",
        {
            "projectId": "project_1",
            "clusters": [
                {
                    "branchId": "cluster_1",
                    "label": "Optics",
                    "papers": [
                        {"paperId": f"p{i}", "title": f"Paper {i}", "similarity": 0.9 - i * 0.1}
                        for i in range(7)
                    ],
                }
            ],
            "totalPapers": 7,
        },
    )
    for i in range(notes):
        store.save_note(
            Note(id=f"note_{i}", project_id="project_1", content=f"n{i}", created_at=f"2024-02-{i + 1:02d}T00:00:00Z")
        )


def test_chat_builds_bounded_packet_and_appends_history(api_deps):
    store, llm = api_deps["store"], api_deps["llm"]
    _seed(store, notes=7)

    with TestClient(api_main.app) as client:
        resp = client.post("/api/chat", json={"projectId": "project_1", "message": "What should I try?"})
        history = client.get("/api/chat/history/project_1").json()

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "response": "Answer to: What should I try?",
        "contextUsed": {"papers": 5, "notes": 5},
    }
    assert [p["paperId"] for p in llm.last_packet.selected_papers] == ["p0", "p1", "p2", "p3", "p4"]
    assert [n["id"] for n in llm.last_packet.linked_notes] == ["note_6", "note_5", "note_4", "note_3", "note_2"]
    assert [m["role"] for m in history["messages"]] == ["user", "assistant"]
    assert history["messages"][1]["contextUsed"] == {"papersCount": 5, "notesCount": 5}


def test_chat_with_explicit_selection(api_deps):
    store, llm = api_deps["store"], api_deps["llm"]
    _seed(store)

    with TestClient(api_main.app) as client:
        resp = client.post(
            "/api/chat",
            json={"projectId": "project_1", "message": "Compare", "selectedPaperIds": ["p6", "p2"]},
        )

    assert resp.json()["contextUsed"] == {"papers": 2, "notes": 0}
    assert [p["paperId"] for p in llm.last_packet.selected_papers] == ["p2", "p6"]


def test_chat_without_research_map_uses_empty_pool(api_deps):
    api_deps["store"].save_project(Project(id="project_1", description="d"))

    with TestClient(api_main.app) as client:
        resp = client.post("/api/chat", json={"projectId": "project_1", "message": "hi"})

    assert resp.status_code == 200
    assert resp.json()["contextUsed"] == {"papers": 0, "notes": 0}


def test_chat_validation_names_missing_fields(api_deps):
    with TestClient(api_main.app) as client:
        both = client.post("/api/chat", json={})
        one = client.post("/api/chat", json={"projectId": "project_1"})

    assert both.status_code == 400
    assert both.json() == {"error": "projectId and message are required"}
    assert one.json() == {"error": "message is required"}


def test_chat_unknown_project_is_404(api_deps):
    with TestClient(api_main.app) as client:
        resp = client.post("/api/chat", json={"projectId": "nope", "message": "hi"})

    assert resp.status_code == 404


def test_chat_llm_failure_leaves_history_untouched(api_deps):
    store, llm = api_deps["store"], api_deps["llm"]
    _seed(store)
    llm.fail_on.add("answer_with_context")

    with TestClient(api_main.app) as client:
        resp = client.post("/api/chat", json={"projectId": "project_1", "message": "hi"})
        history = client.get("/api/chat/history/project_1").json()

    assert resp.status_code == 500
    assert resp.json() == {"error": "answer_with_context failed"}
    assert history == {"projectId": "project_1", "messages": []}


def test_history_for_unknown_project_is_empty_not_404(api_deps):
    with TestClient(api_main.app) as client:
        resp = client.get("/api/chat/history/never_seen")

    assert resp.status_code == 200
    assert resp.json() == {"projectId": "never_seen", "messages": []}


def test_clearing_history_twice_succeeds(api_deps):
    _seed(api_deps["store"])

    with TestClient(api_main.app) as client:
        client.post("/api/chat", json={"projectId": "project_1", "message": "hi"})
        first = client.delete("/api/chat/history/project_1")
        second = client.delete("/api/chat/history/project_1")
        history = client.get("/api/chat/history/project_1").json()

    assert first.status_code == second.status_code == 200
    assert first.json()["success"] is True
    assert second.json()["success"] is True
    assert history["messages"] == []
