from __future__ import annotations

import hashlib
import logging
import os
import shutil
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, BinaryIO

import yaml

from render_portal import config
from render_portal.errors import ProjectExistsError, ProjectNotFoundError, ProjectPathError
from render_portal.jobs.types import JobType

logger = logging.getLogger(__name__)

EMPTY_STATUS = "frame:\nvideo:\n"
SCENE_GLOB = "*.blend"
FRAME_GLOB = "*.png"


def projects_root() -> Path:
    return Path(config.PATHS.projects_root)


def input_files_dir() -> Path:
    return projects_root() / config.PATHS.input_dir_name


def status_path(project_dir: Path) -> Path:
    return Path(project_dir) / config.PATHS.status_filename


def dir_name_for(name: str) -> str:
    return name.strip().replace(" ", "_")


def display_name(dir_name: str) -> str:
    return dir_name.replace("_", " ")


# ---------------------------------------------------------------------------
# Path confinement
# ---------------------------------------------------------------------------

def _confined(base: Path, value: str) -> Path:
    """Join ``value`` onto ``base`` and require the result to be a direct child of it."""
    raw = (value or "").strip()
    if not raw:
        raise ProjectPathError("empty path")

    candidate = Path(raw)
    if ".." in candidate.parts:
        raise ProjectPathError(f"{raw} is not allowed")

    base = base.resolve()
    resolved = candidate.resolve() if candidate.is_absolute() else (base / candidate).resolve()
    if resolved.parent != base:
        raise ProjectPathError(f"{raw} is outside {base}")
    return resolved


def resolve_project_dir(value: str) -> Path:
    """Resolve a project name, or a path already under the root, to its directory.

    This is the only way form input becomes a project path.
    """
    path = _confined(projects_root(), value)
    if path.name == config.PATHS.input_dir_name:
        raise ProjectPathError(f"{path.name} is reserved")
    return path


def resolve_input_file(name: str) -> Path:
    return _confined(input_files_dir(), os.path.basename((name or "").strip()))


# ---------------------------------------------------------------------------
# Status file
# ---------------------------------------------------------------------------

def ensure_status_file(project_dir: Path) -> Path:
    p = status_path(project_dir)
    if not p.exists():
        try:
            p.write_text(EMPTY_STATUS, encoding="utf-8")
        except OSError as exc:
            # Read-only projects still render, with no recorded jobs.
            logger.warning("Could not create status file %s: %s", p, exc)
    return p


def read_job_ids(project_dir: Path) -> dict[str, str]:
    """Return ``{"frame": id, "video": id}``; missing keys come back as ``""``."""
    ids = {t.value: "" for t in JobType}
    p = status_path(project_dir)
    if not p.exists():
        return ids

    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        logger.warning("Unreadable status file %s: %s", p, exc)
        return ids

    if isinstance(data, dict):
        for key in ids:
            value = data.get(key)
            ids[key] = "" if value is None else str(value)
    return ids


def write_job_id(project_dir: Path, job_type: JobType, job_id: str) -> dict[str, str]:
    """Record ``job_id`` under ``job_type``, keeping the other job's id."""
    ids = read_job_ids(project_dir)
    ids[job_type.value] = str(job_id)
    payload = {k: (v or None) for k, v in ids.items()}
    status_path(project_dir).write_text(
        yaml.safe_dump(payload, default_flow_style=False, sort_keys=False), encoding="utf-8"
    )
    return ids


# ---------------------------------------------------------------------------
# Project CRUD
# ---------------------------------------------------------------------------

def list_projects() -> list[str]:
    root = projects_root()
    if not root.is_dir():
        return []
    return sorted(
        p.name for p in root.iterdir() if p.is_dir() and p.name != config.PATHS.input_dir_name
    )


def create_project(name: str) -> str:
    """Create the project directory and an empty status file; return the directory name."""
    path = resolve_project_dir(dir_name_for(name))
    path.mkdir(parents=True, exist_ok=True)
    status_path(path).write_text(EMPTY_STATUS, encoding="utf-8")
    logger.info("Created project %s", path)
    return path.name


def duplicate_project(value: str, new_name: str) -> str:
    """Copy a project to ``new_name``. The original stays where it is."""
    src = resolve_project_dir(value)
    if not src.is_dir():
        raise ProjectNotFoundError(f"{src} does not exist")

    dest = resolve_project_dir(dir_name_for(new_name))
    if dest.exists():
        raise ProjectExistsError(f"{dest.name} already exists")

    shutil.copytree(src, dest)
    logger.info("Duplicated project %s -> %s", src, dest)
    return dest.name


def delete_project(value: str) -> str:
    path = resolve_project_dir(value)
    if not path.is_dir():
        raise ProjectNotFoundError(f"{path} does not exist")
    shutil.rmtree(path)
    logger.info("Deleted project %s", path)
    return path.name


# ---------------------------------------------------------------------------
# Views and uploads
# ---------------------------------------------------------------------------

@dataclass
class ProjectView:
    dir: str
    name: str
    display_name: str
    images: list[str] = field(default_factory=list)
    frame_job_id: str = ""
    video_job_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_project(value: str) -> ProjectView:
    path = resolve_project_dir(value)
    if not path.is_dir() or not os.access(path, os.R_OK):
        raise ProjectNotFoundError(f"{path} does not exist")

    ensure_status_file(path)
    ids = read_job_ids(path)
    return ProjectView(
        dir=str(path),
        name=path.name,
        display_name=display_name(path.name),
        images=sorted(p.name for p in path.glob(FRAME_GLOB)),
        frame_job_id=ids[JobType.FRAME.value],
        video_job_id=ids[JobType.VIDEO.value],
    )


def uploaded_scene_files() -> list[str]:
    d = input_files_dir()
    if not d.is_dir():
        return []
    return sorted(p.name for p in d.glob(SCENE_GLOB))


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1 << 20), b""):
            h.update(chunk)
    return h.hexdigest()


def _sha256_stream(stream: BinaryIO) -> str:
    h = hashlib.sha256()
    for chunk in iter(lambda: stream.read(1 << 20), b""):
        h.update(chunk)
    stream.seek(0)
    return h.hexdigest()


def copy_upload(stream: BinaryIO, dest: Path) -> bool:
    """Write ``stream`` to ``dest`` unless ``dest`` already holds the same bytes.

    Returns True when the file was written.
    """
    dest = Path(dest)
    if dest.is_file() and sha256_file(dest) == _sha256_stream(stream):
        logger.info("Upload %s unchanged, keeping existing copy", dest.name)
        return False

    stream.seek(0)
    dest.parent.mkdir(parents=True, exist_ok=True)
    with open(dest, "wb") as f:
        shutil.copyfileobj(stream, f)
    logger.info("Stored upload %s", dest)
    return True
