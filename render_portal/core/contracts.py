from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


def walltime(hours: int) -> str:
    """Format whole hours as a Slurm wall-clock limit, e.g. 3 -> ``03:00:00``."""
    return "%02d:00:00" % int(hours)


@dataclass(frozen=True)
class FrameRenderRequest:
    project_dir: str
    blend_file: str
    num_cpus: int
    num_hours: int
    frames_range: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "FrameRenderRequest":
        return cls(**d)


@dataclass(frozen=True)
class VideoRenderRequest:
    project_dir: str
    num_cpus: int
    num_hours: int
    frames_per_second: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "VideoRenderRequest":
        return cls(**d)


@dataclass(frozen=True)
class JobSpec:
    """Everything the scheduler needs for one ``sbatch`` call."""

    name: str
    script: str
    num_cpus: int
    num_hours: int
    output: str
    cluster: str
    export: dict[str, str] = field(default_factory=dict)
    parsable: bool = True

    def export_arg(self) -> str:
        return ",".join(f"{k}={v}" for k, v in self.export.items())

    def to_args(self) -> list[str]:
        args = ["-J", self.name]
        if self.parsable:
            args.append("--parsable")
        if self.export:
            args.extend(["--export", self.export_arg()])
        args.extend(["-n", str(self.num_cpus), "-t", walltime(self.num_hours), "-M", self.cluster])
        args.extend(["--output", self.output])
        return args

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
