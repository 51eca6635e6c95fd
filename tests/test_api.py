import pytest
from fastapi.testclient import TestClient

from api.main import app, get_scheduler
from render_portal.jobs.types import JobType
from render_portal.projects import store


# Fixture for the test client (synchronous)
@pytest.fixture
def client(projects_root, scheduler):
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _create(client, name):
    return client.post("/projects/new", data={"name": name}, follow_redirects=False)


def test_health_check(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_index_shows_welcome_and_projects(client: TestClient):
    store.create_project("alpha")
    response = client.get("/")
    assert response.status_code == 200
    assert "Welcome to Summer Institute!" in response.text
    assert "/projects/alpha" in response.text
    assert "input_files" not in response.text


def test_new_project_form(client: TestClient):
    assert 'action="/projects/new"' in client.get("/projects/new").text
    assert 'action="/projects/new"' in client.get("/projects/input_files").text


def test_create_then_view(client: TestClient, projects_root, scheduler):
    response = _create(client, "My Scene")
    assert response.status_code == 303
    assert response.headers["location"] == "/projects/My_Scene"

    page = client.get("/projects/My_Scene")
    assert page.status_code == 200
    assert "made new project &#39;My Scene&#39;" in page.text
    assert "My Scene" in page.text
    # Empty job ids map to Completed without asking the scheduler.
    assert page.text.count("bg-primary") == 2
    assert scheduler.queried == []

    # Flash is shown only once.
    assert "made new project" not in client.get("/projects/My_Scene").text


def test_missing_project_redirects_with_danger_flash(client: TestClient):
    response = client.get("/projects/ghost", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/"

    index = client.get("/")
    assert "alert-danger" in index.text
    assert "does not exist" in index.text
    assert "Welcome to Summer Institute!" not in index.text


def test_delete_then_view(client: TestClient, projects_root):
    _create(client, "demo")
    response = client.post("/projects/delete", data={"dir": "demo"}, follow_redirects=False)
    assert response.headers["location"] == "/"
    assert not (projects_root / "demo").exists()
    assert "deleted a project" in client.get("/").text

    assert client.get("/projects/demo", follow_redirects=False).status_code == 303
    assert "does not exist" in client.get("/").text


def test_delete_rejects_traversal(client: TestClient, tmp_path):
    outside = tmp_path / "keep"
    outside.mkdir()
    client.post("/projects/delete", data={"dir": "../keep"})
    assert outside.is_dir()


def test_rename_duplicates(client: TestClient, projects_root):
    _create(client, "demo")
    response = client.post(
        "/projects/rename", data={"dir": str(projects_root / "demo"), "rename": "demo two"}, follow_redirects=False
    )
    assert response.headers["location"] == "/"
    assert store.list_projects() == ["demo", "demo_two"]
    assert "duplicated and renamed project" in client.get("/").text


def test_render_frames_with_uploaded_file(client: TestClient, projects_root, scheduler):
    _create(client, "demo")
    (projects_root / "input_files" / "scene.blend").write_bytes(b"blend")

    response = client.post(
        "/render/frames",
        data={
            "dir": "demo",
            "num_cpus": "4",
            "num_hours": "2",
            "frames_range": "1..10",
            "uploaded_blend_file": "scene.blend",
        },
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/projects/demo"
    spec = scheduler.submitted[0]
    assert spec.name == "blender-scene"
    assert spec.export["FRAMES_RANGE"] == "1..10"
    assert spec.export["BLEND_FILE_PATH"].endswith("input_files/scene.blend")
    assert store.read_job_ids(projects_root / "demo")["frame"] == "1001"
    assert "submitted job 1001" in client.get("/projects/demo").text


def test_render_frames_with_fresh_upload(client: TestClient, projects_root, scheduler):
    _create(client, "demo")
    response = client.post(
        "/render/frames",
        data={"dir": "demo", "num_cpus": "4", "num_hours": "1", "frames_range": "1"},
        files={"blend_file": ("fresh.blend", b"fresh bytes", "application/octet-stream")},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert (projects_root / "input_files" / "fresh.blend").read_bytes() == b"fresh bytes"
    assert scheduler.submitted[0].name == "blender-fresh"


def test_render_video_then_status(client: TestClient, projects_root, scheduler):
    _create(client, "demo")
    client.post(
        "/render/frames",
        data={"dir": "demo", "num_cpus": "4", "num_hours": "1", "frames_range": "1", "uploaded_blend_file": "s.blend"},
    )
    response = client.post(
        "/render/video",
        data={"dir": "demo", "num_cpus": "2", "num_hours": "1", "frames_per_second": "24"},
        follow_redirects=False,
    )
    assert response.headers["location"] == "/projects/demo"

    scheduler.states.update({"1001": "R", "1002": "PD"})
    page = client.get("/projects/demo")
    assert "Submitted job 1002" in page.text
    assert "bg-success" in page.text
    assert "bg-info" in page.text

    data = client.get("/api/projects/demo/jobs").json()
    assert data == {
        "project": "demo",
        "jobs": [
            {"job_type": "frame", "job_id": "1001", "state": "Running", "badge": "success"},
            {"job_type": "video", "job_id": "1002", "state": "Queued", "badge": "info"},
        ],
    }


def test_unknown_state_on_scheduler_failure(client: TestClient, projects_root, scheduler):
    _create(client, "demo")
    store.write_job_id(projects_root / "demo", JobType.FRAME, "999")
    scheduler.failing.add("999")

    jobs = client.get("/api/projects/demo/jobs").json()["jobs"]
    assert jobs[0]["state"] == "Unknown"
    assert jobs[0]["badge"] == "warning"


def test_render_frames_without_scene(client: TestClient, scheduler):
    _create(client, "demo")
    response = client.post(
        "/render/frames",
        data={"dir": "demo", "num_cpus": "4", "num_hours": "1", "frames_range": "1"},
        follow_redirects=False,
    )
    assert response.headers["location"] == "/"
    assert scheduler.submitted == []
    assert "alert-danger" in client.get("/").text


def test_render_rejects_non_integer_cpus(client: TestClient):
    response = client.post(
        "/render/video", data={"dir": "demo", "num_cpus": "many", "num_hours": "1", "frames_per_second": "24"}
    )
    assert response.status_code == 422


def test_api_jobs_missing_project(client: TestClient):
    assert client.get("/api/projects/ghost/jobs").status_code == 404


def test_frame_images_are_served(client: TestClient, projects_root):
    _create(client, "demo")
    (projects_root / "demo" / "render_0001.png").write_bytes(b"\x89PNG")
    (projects_root / "demo" / "notes.txt").write_text("secret", encoding="utf-8")

    assert "render_0001.png" in client.get("/projects/demo").text
    response = client.get("/projects/demo/frames/render_0001.png")
    assert response.status_code == 200
    assert response.content == b"\x89PNG"
    assert client.get("/projects/demo/frames/notes.txt").status_code == 404


def test_read_only_project_still_renders(client: TestClient, projects_root, monkeypatch):
    (projects_root / "shared").mkdir()

    def _denied(self, *args, **kwargs):
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(store.Path, "write_text", _denied)

    page = client.get("/projects/shared")
    assert page.status_code == 200
    assert page.text.count("bg-primary") == 2


def test_render_frames_bad_project_keeps_upload_out(client: TestClient, projects_root, scheduler):
    response = client.post(
        "/render/frames",
        data={"dir": "ghost", "num_cpus": "4", "num_hours": "1", "frames_range": "1"},
        files={"blend_file": ("orphan.blend", b"bytes", "application/octet-stream")},
        follow_redirects=False,
    )
    assert response.headers["location"] == "/"
    assert not (projects_root / "input_files" / "orphan.blend").exists()
    assert scheduler.submitted == []
    assert "does not exist" in client.get("/").text


def test_lifespan_configures_logging(monkeypatch, projects_root):
    import api.main as main_mod

    calls = []
    monkeypatch.setattr(main_mod, "configure_logging", lambda: calls.append(True))
    with TestClient(app):
        pass
    assert calls == [True]
