"""Helpers that make caller file names safe to use as backend paths."""

from __future__ import annotations

from .models import DicomFile

_SEPARATORS = ("/", "\\")


def sanitize_file_name(name: str) -> str:
    """Replace path separators so the backend never sees nested paths."""

    for separator in _SEPARATORS:
        name = name.replace(separator, "_")
    return name


def sanitize_file(file: DicomFile) -> DicomFile:
    """Return a copy of *file* carrying a sanitized name."""

    return file.renamed(sanitize_file_name(file.name))
