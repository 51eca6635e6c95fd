"""Scheduler-facing job layer.

- ``types``: state-code and badge translation
- ``scheduler``: Slurm adapter (squeue / sbatch)
- ``submit``: frame and video render submissions
- ``run``: command-line entrypoint
"""
