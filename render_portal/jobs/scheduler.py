"""Slurm adapter.

Everything environment-specific about talking to the batch scheduler lives
here, behind the two-method ``Scheduler`` protocol. The rest of the package
(and the tests) only ever see that protocol.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Protocol

from render_portal import config
from render_portal.core.contracts import JobSpec
from render_portal.errors import SchedulerError
from render_portal.jobs.types import JobState, JobStatus, JobType, badge_for, state_from_code

logger = logging.getLogger(__name__)

PURGED_JOB_MESSAGE = "invalid job id"


class Scheduler(Protocol):
    def query_job_state(self, job_id: str) -> str:
        """Return the raw state code for ``job_id`` (``""`` once it left the queue)."""

    def submit_job(self, spec: JobSpec) -> str:
        """Submit ``spec`` and return the job id parsed from the reply."""


def parse_job_id(reply: str) -> str:
    """``--parsable`` replies look like ``12345`` or ``12345;cluster``."""
    return reply.strip().split(";")[0].strip()


class SlurmScheduler:
    def __init__(
        self,
        squeue_bin: str | None = None,
        sbatch_bin: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.squeue_bin = squeue_bin or config.SCHEDULER.squeue_bin
        self.sbatch_bin = sbatch_bin or config.SCHEDULER.sbatch_bin
        self.timeout = timeout if timeout is not None else config.SCHEDULER.timeout_seconds

    def _run(self, cmd: list[str], *, merge_stderr: bool) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise SchedulerError(f"{cmd[0]} timed out after {exc.timeout}s") from exc
        except OSError as exc:
            raise SchedulerError(f"could not run {cmd[0]}: {exc}") from exc

    def query_job_state(self, job_id: str) -> str:
        cmd = [self.squeue_bin, "-j", str(job_id), "-h", "-o", "%t"]
        result = self._run(cmd, merge_stderr=False)
        stdout = (result.stdout or "").strip()
        stderr = (result.stderr or "").strip()
        if result.returncode != 0:
            # Jobs purged from slurmctld are reported as an invalid id.
            if not stdout and PURGED_JOB_MESSAGE in stderr.lower():
                return ""
            raise SchedulerError(f"squeue exited {result.returncode} for job {job_id}: {stderr}")
        return stdout

    def submit_job(self, spec: JobSpec) -> str:
        cmd = [self.sbatch_bin, *spec.to_args(), spec.script]
        logger.info("Submitting %s: %s", spec.name, " ".join(cmd))
        result = self._run(cmd, merge_stderr=True)
        reply = result.stdout or ""
        if result.returncode != 0:
            # Recorded anyway; the job will show up as Unknown on the next poll.
            logger.warning("sbatch exited %s: %s", result.returncode, reply.strip())
        return parse_job_id(reply)


def job_state(job_id: str | None, scheduler: Scheduler) -> JobState:
    """Coarse state for ``job_id``. Never raises."""
    if not job_id:
        return state_from_code("")
    try:
        code = scheduler.query_job_state(str(job_id))
    except Exception as exc:  # noqa: BLE001
        logger.warning("State query failed for job %s: %s", job_id, exc)
        return "Unknown"
    return state_from_code(code)


def job_status(job_type: JobType, job_id: str | None, scheduler: Scheduler) -> JobStatus:
    state = job_state(job_id, scheduler)
    return JobStatus(job_type=job_type, job_id=str(job_id or ""), state=state, badge=badge_for(state))
