from __future__ import annotations

import argparse
import json
import sys

from render_portal.core.contracts import FrameRenderRequest, VideoRenderRequest
from render_portal.errors import RenderPortalError
from render_portal.jobs.scheduler import Scheduler, SlurmScheduler, job_status
from render_portal.jobs.submit import resolve_scene_file, submit_frame_job, submit_video_job
from render_portal.jobs.types import JobType
from render_portal.log import configure_logging
from render_portal.projects import store


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Manage render projects and Slurm jobs without the web UI.")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("projects", help="List project directories.")

    status = sub.add_parser("status", help="Show frame and video job states for a project.")
    status.add_argument("project")

    frames = sub.add_parser("frames", help="Submit a frame render job.")
    frames.add_argument("project")
    frames.add_argument("--blend-file", required=True, help="Name of a file in projects/input_files/.")
    frames.add_argument("--frames-range", required=True)
    frames.add_argument("--num-cpus", type=int, default=4)
    frames.add_argument("--num-hours", type=int, default=1)

    video = sub.add_parser("video", help="Submit a video render job.")
    video.add_argument("project")
    video.add_argument("--frames-per-second", type=int, default=24)
    video.add_argument("--num-cpus", type=int, default=4)
    video.add_argument("--num-hours", type=int, default=1)

    return p


def main(argv: list[str] | None = None, scheduler: Scheduler | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    scheduler = scheduler or SlurmScheduler()

    try:
        if args.command == "projects":
            for name in store.list_projects():
                print(name)
        elif args.command == "status":
            view = store.load_project(args.project)
            jobs = [
                job_status(JobType.FRAME, view.frame_job_id, scheduler).to_dict(),
                job_status(JobType.VIDEO, view.video_job_id, scheduler).to_dict(),
            ]
            print(json.dumps({"project": view.name, "jobs": jobs}, indent=2))
        elif args.command == "frames":
            req = FrameRenderRequest(
                project_dir=args.project,
                blend_file=str(resolve_scene_file(uploaded_name=args.blend_file)),
                num_cpus=args.num_cpus,
                num_hours=args.num_hours,
                frames_range=args.frames_range,
            )
            print(submit_frame_job(req, scheduler))
        elif args.command == "video":
            req = VideoRenderRequest(
                project_dir=args.project,
                num_cpus=args.num_cpus,
                num_hours=args.num_hours,
                frames_per_second=args.frames_per_second,
            )
            print(submit_video_job(req, scheduler))
    except RenderPortalError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
