from fastapi.testclient import TestClient

from biomap.api import main as api_main


def test_health():
    with TestClient(api_main.app) as client:
        resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_create_project_summarizes_and_persists(api_deps):
    with TestClient(api_main.app) as client:
        resp = client.post(
            "/api/projects",
            json={"description": "Phone-based microscopy", "constraints": {"budget": "low"}},
        )
        assert resp.status_code == 200
        project = resp.json()["project"]

        fetched = client.get(f"/api/projects/{project['id']}")
        listed = client.get("/api/projects")

    assert resp.json()["success"] is True
    assert project["id"].startswith("project_")
    assert project["summary"].startswith("Summary:")
    assert project["capabilities"] == {}
    assert fetched.json() == project
    assert [p["id"] for p in listed.json()] == [project["id"]]


def test_create_project_requires_description(api_deps):
    with TestClient(api_main.app) as client:
        resp = client.post("/api/projects", json={"constraints": {}})

    assert resp.status_code == 400
    assert resp.json() == {"error": "description is required"}
    assert api_deps["llm"].calls == []


def test_get_missing_project_is_404(api_deps):
    with TestClient(api_main.app) as client:
        resp = client.get("/api/projects/project_missing")

    assert resp.status_code == 404
    assert resp.json() == {"error": "Project not found"}


def test_update_project_resummarizes_only_on_description_change(api_deps):
    with TestClient(api_main.app) as client:
        project = client.post("/api/projects", json={"description": "first"}).json()["project"]

        resp = client.put(f"/api/projects/{project['id']}", json={"constraints": {"time": "1 month"}})
        assert resp.status_code == 200
        assert resp.json()["summary"] == project["summary"]
        assert resp.json()["constraints"] == {"time": "1 month"}

        resp = client.put(f"/api/projects/{project['id']}", json={"description": "second idea"})
        updated = resp.json()

    assert updated["description"] == "second idea"
    assert updated["summary"] == "Summary: second idea"
    assert updated["constraints"] == {"time": "1 month"}
    assert api_deps["llm"].calls.count("summarize_project") == 2


def test_update_missing_project_is_404(api_deps):
    with TestClient(api_main.app) as client:
        resp = client.put("/api/projects/nope", json={"description": "x"})

    assert resp.status_code == 404


def test_summary_failure_is_500(api_deps):
    api_deps["llm"].fail_on.add("summarize_project")

    with TestClient(api_main.app) as client:
        resp = client.post("/api/projects", json={"description": "x"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "summarize_project failed"}
    assert api_deps["store"].list_projects() == []
