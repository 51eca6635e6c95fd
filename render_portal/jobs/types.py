from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Literal


class JobType(str, Enum):
    FRAME = "frame"
    VIDEO = "video"


JobState = Literal["Running", "Queued", "Completed", "Unknown"]
Badge = Literal["success", "info", "primary", "warning"]

# squeue %t codes; a finished job drops out of squeue, so "" means done.
STATE_CODES: dict[str, JobState] = {
    "": "Completed",
    "R": "Running",
    "C": "Completed",
    "Q": "Queued",
    "CF": "Queued",
    "PD": "Queued",
}

BADGES: dict[str, Badge] = {
    "": "warning",
    "Unknown": "warning",
    "Running": "success",
    "Queued": "info",
    "Completed": "primary",
}


def state_from_code(code: str | None) -> JobState:
    """Translate a scheduler state code into a coarse state."""
    if code is None:
        return "Unknown"
    return STATE_CODES.get(code.strip(), "Unknown")


def badge_for(state: str | None) -> Badge:
    return BADGES.get(str(state or ""), "warning")


@dataclass
class JobStatus:
    job_type: JobType
    job_id: str
    state: JobState
    badge: Badge

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["job_type"] = self.job_type.value
        return d
