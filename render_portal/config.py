# render_portal/config.py

import os
from dataclasses import dataclass, field

# --- Base paths ---
# Project root can be overridden if needed (e.g. for tests or deployment)
BASE_DIR = os.path.abspath(
    os.getenv("RENDER_PORTAL_BASE_DIR", os.path.join(os.path.dirname(__file__), ".."))
)


def _optional_float(name: str):
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    return float(raw)


# ---------------------------
# Structured configuration
# ---------------------------

@dataclass(frozen=True)
class PathsConfig:
    """Filesystem layout.

    Values can be overridden via environment variables:
    - RENDER_PORTAL_PROJECTS_ROOT
    - RENDER_PORTAL_SCRIPTS_DIR
    - RENDER_PORTAL_LOG_DIR
    """

    projects_root: str = field(
        default_factory=lambda: os.getenv(
            "RENDER_PORTAL_PROJECTS_ROOT", os.path.join(BASE_DIR, "projects")
        )
    )
    scripts_dir: str = field(
        default_factory=lambda: os.getenv(
            "RENDER_PORTAL_SCRIPTS_DIR", os.path.join(BASE_DIR, "scripts")
        )
    )
    log_dir: str = field(
        default_factory=lambda: os.getenv("RENDER_PORTAL_LOG_DIR", os.path.join(BASE_DIR, "log"))
    )
    input_dir_name: str = "input_files"
    status_filename: str = ".render_job_id.yml"

    def input_files_dir(self) -> str:
        return os.path.join(self.projects_root, self.input_dir_name)

    def render_frames_script(self) -> str:
        return os.path.join(self.scripts_dir, "render_frames.sh")

    def render_video_script(self) -> str:
        return os.path.join(self.scripts_dir, "render_video.sh")

    def app_log(self) -> str:
        return os.path.join(self.log_dir, "app.log")


@dataclass(frozen=True)
class SchedulerConfig:
    """Slurm command locations and submission defaults."""

    squeue_bin: str = field(default_factory=lambda: os.getenv("RENDER_PORTAL_SQUEUE_BIN", "/bin/squeue"))
    sbatch_bin: str = field(default_factory=lambda: os.getenv("RENDER_PORTAL_SBATCH_BIN", "/bin/sbatch"))
    cluster: str = field(default_factory=lambda: os.getenv("RENDER_PORTAL_CLUSTER", "pitzer"))
    # None means block until the command returns
    timeout_seconds: float | None = field(
        default_factory=lambda: _optional_float("RENDER_PORTAL_SCHEDULER_TIMEOUT")
    )


@dataclass(frozen=True)
class WebConfig:
    title: str = "Summer Institute - Blender"
    welcome_message: str = "Welcome to Summer Institute!"
    session_secret: str = field(
        default_factory=lambda: os.getenv("RENDER_PORTAL_SESSION_SECRET", "change-me")
    )
    log_level: str = field(default_factory=lambda: os.getenv("RENDER_PORTAL_LOG_LEVEL", "INFO"))


PATHS = PathsConfig()
SCHEDULER = SchedulerConfig()
WEB = WebConfig()

# --- Backwards-compatible flat aliases ---
PROJECTS_ROOT = PATHS.projects_root
INPUT_FILES_DIR = PATHS.input_files_dir()
INPUT_DIR_NAME = PATHS.input_dir_name
STATUS_FILENAME = PATHS.status_filename
CLUSTER = SCHEDULER.cluster
TITLE = WEB.title
