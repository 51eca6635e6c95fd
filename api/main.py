import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel
from starlette.middleware.sessions import SessionMiddleware

from render_portal import config
from render_portal.core.contracts import FrameRenderRequest, VideoRenderRequest
from render_portal.errors import ProjectPathError, RenderPortalError
from render_portal.jobs.scheduler import Scheduler, SlurmScheduler, job_status
from render_portal.jobs.submit import (
    require_project_dir,
    resolve_scene_file,
    submit_frame_job,
    submit_video_job,
)
from render_portal.jobs.types import JobType
from render_portal.log import configure_logging
from render_portal.projects import store
from render_portal.web.flash import pop_flash, set_flash

logger = logging.getLogger("render_portal.api")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging()
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Render Portal",
    description="Create Blender projects and submit frame/video renders to Slurm.",
    version="1.0.0",
)
app.add_middleware(SessionMiddleware, secret_key=config.WEB.session_secret)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


def get_scheduler() -> Scheduler:
    return SlurmScheduler()


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


def _project_url(value: str) -> str:
    return f"/projects/{Path(value.rstrip('/')).name}"


def _render(request: Request, name: str, **context):
    context.setdefault("title", config.WEB.title)
    return templates.TemplateResponse(request, name, context)


# Pydantic models for the JSON polling endpoint
class JobStatusOut(BaseModel):
    job_type: str
    job_id: str
    state: str
    badge: str


class ProjectJobsOut(BaseModel):
    project: str
    jobs: List[JobStatusOut]


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------

@app.get("/", summary="List projects")
def index(request: Request):
    logger.info("requesting the index")
    flash = pop_flash(request.session, default={"level": "info", "message": config.WEB.welcome_message})
    return _render(request, "index.html", flash=flash, project_dirs=store.list_projects())


@app.get("/projects/new", summary="New project form")
def new_project_form(request: Request):
    return _render(request, "new_project.html", flash=pop_flash(request.session))


@app.get("/projects/{project}", summary="Show a project with its job states")
def show_project(project: str, request: Request, scheduler: Scheduler = Depends(get_scheduler)):
    if project == config.PATHS.input_dir_name:
        return new_project_form(request)

    flash = pop_flash(request.session)
    try:
        view = store.load_project(project)
    except RenderPortalError as exc:
        set_flash(request.session, "danger", str(exc))
        return _redirect("/")

    frame = job_status(JobType.FRAME, view.frame_job_id, scheduler)
    video = job_status(JobType.VIDEO, view.video_job_id, scheduler)
    return _render(
        request,
        "show_project.html",
        flash=flash,
        project=view,
        frame=frame,
        video=video,
        uploaded_blend_files=store.uploaded_scene_files(),
    )


@app.get("/projects/{project}/frames/{filename}", summary="Serve a rendered frame")
def project_frame(project: str, filename: str):
    try:
        project_dir = store.resolve_project_dir(project)
    except ProjectPathError:
        raise HTTPException(status_code=404, detail="Not found")

    path = project_dir / Path(filename).name
    if path.suffix.lower() != ".png" or not path.is_file():
        raise HTTPException(status_code=404, detail="Not found")
    return FileResponse(path, media_type="image/png")


# ---------------------------------------------------------------------------
# Project mutations
# ---------------------------------------------------------------------------

@app.post("/projects/new", summary="Create a project")
def create_project(request: Request, name: str = Form(...)):
    logger.info("Creating project %r", name)
    try:
        dir_name = store.create_project(name)
    except RenderPortalError as exc:
        set_flash(request.session, "danger", str(exc))
        return _redirect("/")

    set_flash(request.session, "info", f"made new project '{name}'")
    return _redirect(f"/projects/{dir_name}")


@app.post("/projects/delete", summary="Delete a project")
def delete_project(request: Request, project_dir: str = Form(..., alias="dir")):
    try:
        store.delete_project(project_dir)
    except RenderPortalError as exc:
        set_flash(request.session, "danger", str(exc))
        return _redirect("/")

    set_flash(request.session, "info", "deleted a project")
    return _redirect("/")


@app.post("/projects/rename", summary="Duplicate a project under a new name")
def rename_project(
    request: Request,
    project_dir: str = Form(..., alias="dir"),
    rename: str = Form(...),
):
    try:
        store.duplicate_project(project_dir, rename)
    except RenderPortalError as exc:
        set_flash(request.session, "danger", str(exc))
        return _redirect("/")

    set_flash(request.session, "info", "duplicated and renamed project")
    return _redirect("/")


# ---------------------------------------------------------------------------
# Render submissions
# ---------------------------------------------------------------------------

@app.post("/render/frames", summary="Submit a frame render job")
def render_frames(
    request: Request,
    project_dir: str = Form(..., alias="dir"),
    num_cpus: int = Form(...),
    num_hours: int = Form(...),
    frames_range: str = Form(...),
    uploaded_blend_file: Optional[str] = Form(None),
    blend_file: Optional[UploadFile] = File(None),
    scheduler: Scheduler = Depends(get_scheduler),
):
    # Browsers send an empty file part when nothing was picked.
    if blend_file is not None and not blend_file.filename:
        blend_file = None

    try:
        require_project_dir(project_dir)
        scene = resolve_scene_file(
            uploaded_name=uploaded_blend_file,
            upload=blend_file.file if blend_file is not None else None,
            upload_filename=blend_file.filename if blend_file is not None else None,
        )
        req = FrameRenderRequest(
            project_dir=project_dir,
            blend_file=str(scene),
            num_cpus=num_cpus,
            num_hours=num_hours,
            frames_range=frames_range,
        )
        job_id = submit_frame_job(req, scheduler)
    except RenderPortalError as exc:
        logger.warning("Frame submission failed: %s", exc)
        set_flash(request.session, "danger", str(exc))
        return _redirect("/")

    set_flash(request.session, "info", f"submitted job {job_id}")
    return _redirect(_project_url(project_dir))


@app.post("/render/video", summary="Submit a video render job")
def render_video(
    request: Request,
    project_dir: str = Form(..., alias="dir"),
    num_cpus: int = Form(...),
    num_hours: int = Form(...),
    frames_per_second: int = Form(...),
    scheduler: Scheduler = Depends(get_scheduler),
):
    req = VideoRenderRequest(
        project_dir=project_dir,
        num_cpus=num_cpus,
        num_hours=num_hours,
        frames_per_second=frames_per_second,
    )
    try:
        job_id = submit_video_job(req, scheduler)
    except RenderPortalError as exc:
        logger.warning("Video submission failed: %s", exc)
        set_flash(request.session, "danger", str(exc))
        return _redirect("/")

    set_flash(request.session, "info", f"Submitted job {job_id}")
    return _redirect(_project_url(project_dir))


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

@app.get("/api/projects/{project}/jobs", response_model=ProjectJobsOut, summary="Poll job states")
def project_jobs(project: str, scheduler: Scheduler = Depends(get_scheduler)):
    """Current frame and video job states for a project, re-queried on every call."""
    try:
        view = store.load_project(project)
    except RenderPortalError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    jobs = [
        job_status(JobType.FRAME, view.frame_job_id, scheduler),
        job_status(JobType.VIDEO, view.video_job_id, scheduler),
    ]
    return ProjectJobsOut(project=view.name, jobs=[JobStatusOut(**j.to_dict()) for j in jobs])


@app.get("/health", summary="Health check", response_description="API health status")
def health_check():
    return {"status": "ok"}

# To run this app:
# uvicorn api.main:app --reload --port 8000
