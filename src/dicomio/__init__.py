"""DICOM series organization: grouping, ordering and volume reconstruction."""

from .config import DicomIOConfig, WorkerConfig, get_settings  # noqa: F401
from .engine import DicomIO  # noqa: F401
from .errors import (  # noqa: F401
    BackendUnavailable,
    BuildError,
    CategorizeError,
    DicomIOError,
    InitError,
    TagReadError,
    TaskExecutionError,
)
from .models import INSTANCE_NUMBER, DicomFile, Image, SpatialParameters, TagSpec  # noqa: F401
