"""Frame and video render submissions.

Each submission builds a ``JobSpec`` from the request, hands it to the
scheduler, and records the returned job id in the project's status file.
The reply is not checked beyond parsing: a scheduler error message ends up
stored as the job id and later polls as ``Unknown``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import BinaryIO

from render_portal import config
from render_portal.core.contracts import FrameRenderRequest, JobSpec, VideoRenderRequest
from render_portal.errors import ProjectNotFoundError, ProjectPathError
from render_portal.jobs.scheduler import Scheduler
from render_portal.jobs.types import JobType
from render_portal.projects import store

logger = logging.getLogger(__name__)


def require_project_dir(value: str) -> Path:
    path = store.resolve_project_dir(value)
    if not path.is_dir():
        raise ProjectNotFoundError(f"{path} does not exist")
    return path


def resolve_scene_file(
    uploaded_name: str | None = None,
    upload: BinaryIO | None = None,
    upload_filename: str | None = None,
) -> Path:
    """Pick the scene file for a frame render.

    A fresh upload wins over a previously uploaded file and is copied into the
    shared input directory (skipped when identical content is already there).
    """
    if upload is not None and upload_filename:
        dest = store.resolve_input_file(upload_filename)
        store.copy_upload(upload, dest)
        return dest

    if not uploaded_name:
        raise ProjectPathError("no scene file selected")
    return store.resolve_input_file(uploaded_name)


def build_frame_spec(req: FrameRenderRequest, cluster: str | None = None) -> JobSpec:
    project_dir = str(require_project_dir(req.project_dir))
    basename = os.path.splitext(os.path.basename(req.blend_file))[0]
    return JobSpec(
        name=f"blender-{basename}",
        script=config.PATHS.render_frames_script(),
        num_cpus=int(req.num_cpus),
        num_hours=int(req.num_hours),
        output=f"{project_dir}/frame-render-%j.out",
        cluster=cluster or config.SCHEDULER.cluster,
        export={
            "BLEND_FILE_PATH": str(req.blend_file),
            "OUTPUT_DIR": project_dir,
            "FRAMES_RANGE": str(req.frames_range),
        },
    )


def build_video_spec(req: VideoRenderRequest, cluster: str | None = None) -> JobSpec:
    project_dir = str(require_project_dir(req.project_dir))
    return JobSpec(
        name="blender-video",
        script=config.PATHS.render_video_script(),
        num_cpus=int(req.num_cpus),
        num_hours=int(req.num_hours),
        output=f"{project_dir}/video-render-%j.out",
        cluster=cluster or config.SCHEDULER.cluster,
        export={
            "FRAMES_PER_SEC": str(req.frames_per_second),
            "FRAMES_DIR": project_dir,
        },
    )


def _submit(job_type: JobType, spec: JobSpec, scheduler: Scheduler) -> str:
    job_id = scheduler.submit_job(spec)
    project_dir = Path(spec.export["OUTPUT_DIR" if job_type == JobType.FRAME else "FRAMES_DIR"])
    store.write_job_id(project_dir, job_type, job_id)
    logger.info("Recorded %s job %s for %s", job_type.value, job_id, project_dir.name)
    return job_id


def submit_frame_job(req: FrameRenderRequest, scheduler: Scheduler) -> str:
    logger.info("Trying to render frames with: %r", req.to_dict())
    return _submit(JobType.FRAME, build_frame_spec(req), scheduler)


def submit_video_job(req: VideoRenderRequest, scheduler: Scheduler) -> str:
    logger.info("Trying to render video with: %r", req.to_dict())
    return _submit(JobType.VIDEO, build_video_spec(req), scheduler)
