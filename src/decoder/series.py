"""Volume grouping of DICOM inputs.

Files are grouped by SeriesInstanceUID refined with series details (the same
refinement GDCM applies) and the image orientation, so stacks of differing
shape or orientation inside one series become separate volumes.
"""

from __future__ import annotations

import io
import logging
from typing import Any, Dict, List, Sequence

import pydicom
from pydicom.dataset import Dataset

from dicomio.protocol import BinaryFile

from .geometry import float_values


logger = logging.getLogger(__name__)

SERIES_DETAIL_KEYWORDS = ("SeriesNumber", "SequenceName", "SliceThickness", "Rows", "Columns")

GROUPING_KEYWORDS = ["SeriesInstanceUID", *SERIES_DETAIL_KEYWORDS, "ImageOrientationPatient"]


def _compact(value: Any) -> str:
    return "".join(str(value).split())


def orientation_key(value: Any) -> str | None:
    cosines = float_values(value, 6)
    if cosines is None:
        return None
    # Round so scanner noise in the cosines does not split a stack
    return ",".join(f"{round(c, 4) + 0.0:.4f}" for c in cosines)


def volume_key(dataset: Dataset, identifier: str) -> str:
    series_uid = dataset.get("SeriesInstanceUID")
    if not series_uid:
        return f"no-series.{identifier}"

    parts = [str(series_uid).strip()]
    for keyword in SERIES_DETAIL_KEYWORDS:
        value = dataset.get(keyword)
        if value is not None and str(value).strip():
            parts.append(_compact(value))
    orientation = orientation_key(dataset.get("ImageOrientationPatient"))
    if orientation:
        parts.append(orientation)
    return ".".join(parts)


def categorize(files: Sequence[BinaryFile]) -> Dict[str, List[str]]:
    """Return ``{volume_key: [file.path, ...]}`` covering every input once."""

    volumes: Dict[str, List[str]] = {}
    for file in files:
        try:
            dataset = pydicom.dcmread(
                io.BytesIO(file.data),
                force=True,
                stop_before_pixels=True,
                specific_tags=GROUPING_KEYWORDS,
            )
        except Exception as exc:
            raise ValueError(f"Could not parse {file.path} as DICOM: {exc}") from exc
        volumes.setdefault(volume_key(dataset, file.path), []).append(file.path)

    logger.debug("Grouped %d files into %d volumes", len(files), len(volumes))
    return volumes
