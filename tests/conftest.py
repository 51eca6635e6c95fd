"""Pytest configuration to make the project root importable as a package.

Also points the log directory at a throwaway location before anything
imports ``render_portal.config``, and provides a fake scheduler plus an
isolated projects root for every test.
"""

import os
import sys
import tempfile

# Project root = parent directory of this tests/ folder
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

os.environ.setdefault("RENDER_PORTAL_LOG_DIR", tempfile.mkdtemp(prefix="render-portal-log-"))

import pytest  # noqa: E402

from render_portal.errors import SchedulerError  # noqa: E402
from render_portal.log import configure_logging  # noqa: E402
from render_portal.projects import store  # noqa: E402

# Bind the stderr handler once, outside any capsys capture.
configure_logging()


class FakeScheduler:
    """In-memory stand-in for SlurmScheduler."""

    def __init__(self, states=None, job_ids=None, failing=()):
        self.states = dict(states or {})
        self.failing = set(failing)
        self.job_ids = list(job_ids or ["1001", "1002", "1003", "1004"])
        self.queried = []
        self.submitted = []

    def query_job_state(self, job_id):
        self.queried.append(job_id)
        if job_id in self.failing:
            raise SchedulerError(f"squeue failed for {job_id}")
        return self.states.get(job_id, "")

    def submit_job(self, spec):
        self.submitted.append(spec)
        return self.job_ids.pop(0)


@pytest.fixture
def projects_root(tmp_path, monkeypatch):
    # Isolate projects/ under tmp_path so tests don't touch the repo.
    root = tmp_path / "projects"
    (root / "input_files").mkdir(parents=True)
    monkeypatch.setattr(store, "projects_root", lambda: root)
    return root


@pytest.fixture
def scheduler():
    return FakeScheduler()
