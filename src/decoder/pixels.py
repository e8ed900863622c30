"""Pixel decoding into slice and volume images."""

from __future__ import annotations

import io
import logging
from typing import List, Sequence, Tuple

import numpy as np
import pydicom
from pydicom.dataset import Dataset

from dicomio.models import Image
from dicomio.protocol import BinaryFile

from .geometry import orientation_cosines, project, slice_geometry, slice_normal, slice_position, volume_geometry


logger = logging.getLogger(__name__)


def apply_rescale(dataset: Dataset, pixels: np.ndarray) -> np.ndarray:
    """Apply the modality LUT (RescaleSlope / RescaleIntercept) if present."""

    slope = float(getattr(dataset, "RescaleSlope", 1) or 1)
    intercept = float(getattr(dataset, "RescaleIntercept", 0) or 0)
    if slope == 1 and intercept == 0:
        return pixels
    if slope.is_integer() and intercept.is_integer():
        return pixels.astype(np.int32) * int(slope) + int(intercept)
    return (pixels.astype(np.float32) * slope + intercept).astype(np.float32)


def to_thumbnail(pixels: np.ndarray) -> np.ndarray:
    """Min/max normalize to unsigned char."""

    low = float(pixels.min())
    high = float(pixels.max())
    if high > low:
        scaled = (pixels.astype(np.float64) - low) / (high - low) * 255
    else:
        scaled = np.zeros(pixels.shape, dtype=np.float64)
    return scaled.astype(np.uint8)


def read_frames(data: bytes) -> Tuple[Dataset, np.ndarray]:
    """Decode *data* into its dataset and a (frames, rows, columns[, samples]) array."""

    dataset = pydicom.dcmread(io.BytesIO(data), force=True)
    pixels = dataset.pixel_array
    frames = int(getattr(dataset, "NumberOfFrames", 1) or 1)
    if frames == 1:
        pixels = pixels[np.newaxis, ...]
    return dataset, apply_rescale(dataset, pixels)


def slice_image(data: bytes, as_thumbnail: bool = False) -> Image:
    dataset, frames = read_frames(data)
    pixels = frames[0]
    if as_thumbnail:
        pixels = to_thumbnail(pixels)
    return Image(data=pixels, spatial=slice_geometry(dataset, pixels.shape))


def _sort_by_position(entries: List[Tuple[Dataset, np.ndarray]]) -> List[Tuple[Dataset, np.ndarray]]:
    row, col = orientation_cosines(entries[0][0])
    normal = slice_normal(row, col)

    def sort_key(item: Tuple[int, Tuple[Dataset, np.ndarray]]) -> Tuple[int, float, int]:
        index, (dataset, _) = item
        position = slice_position(dataset)
        if position is not None:
            return (0, project(position, normal), index)
        try:
            number = float(dataset.get("InstanceNumber"))
        except (TypeError, ValueError):
            number = 0.0
        return (1, number, index)

    return [entry for _, entry in sorted(enumerate(entries), key=sort_key)]


def build_volume(files: Sequence[BinaryFile], single_sorted_series: bool = True) -> Image:
    """Stack the decoded frames of *files* into one 3D image.

    When ``single_sorted_series`` is false the slices are sorted along the
    slice normal first; otherwise the given order is kept.
    """

    if not files:
        raise ValueError("No files to reconstruct")

    entries: List[Tuple[Dataset, np.ndarray]] = []
    for file in files:
        try:
            entries.append(read_frames(file.data))
        except Exception as exc:
            raise ValueError(f"Could not decode {file.path}: {exc}") from exc

    if not single_sorted_series:
        entries = _sort_by_position(entries)

    shapes = {frames.shape[1:] for _, frames in entries}
    if len(shapes) > 1:
        raise ValueError(f"Slices have mismatched dimensions: {sorted(shapes)}")

    data = np.concatenate([frames for _, frames in entries], axis=0)
    spatial = volume_geometry([dataset for dataset, _ in entries], data.shape)
    logger.debug("Stacked %d files into volume %s", len(files), spatial.size)
    return Image(data=data, spatial=spatial)
