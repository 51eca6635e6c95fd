"""Exceptions raised by the project store and the scheduler adapter.

The web layer turns any ``RenderPortalError`` into a danger flash message;
nothing here is expected to reach the user as a traceback.
"""

from __future__ import annotations


class RenderPortalError(Exception):
    """Base class for all expected failures."""


class ProjectPathError(RenderPortalError):
    """A user-supplied path escapes the projects root or is malformed."""


class ProjectNotFoundError(RenderPortalError):
    """The project directory is missing or unreadable."""


class ProjectExistsError(RenderPortalError):
    """The target project directory already exists."""


class SchedulerError(RenderPortalError):
    """The scheduler command could not be launched or timed out."""
