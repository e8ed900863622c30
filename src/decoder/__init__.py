"""Local pydicom decoding backend for the series organization engine."""

from .backend import LocalBackend, LocalHandle  # noqa: F401
