"""Exceptions raised by the series organization engine."""

from __future__ import annotations


class DicomIOError(RuntimeError):
    """Base class for engine failures."""


class InitError(DicomIOError):
    """Raised when the decoding backend could not be started."""


class BackendUnavailable(DicomIOError):
    """Raised when a task is issued before the backend handle exists."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "Decoding backend is not initialized")


class TaskExecutionError(DicomIOError):
    """Raised when the backend reports a failure or the transport breaks."""

    def __init__(self, task: str, message: str, stderr: str = "") -> None:
        self.task = task
        self.stderr = stderr
        super().__init__(f"Task '{task}' failed: {message}")


class TagReadError(DicomIOError):
    """Raised when tags cannot be read from a file."""


class CategorizeError(DicomIOError):
    """Raised when files cannot be partitioned into volumes."""


class BuildError(DicomIOError):
    """Raised when a slice or volume image cannot be reconstructed."""
