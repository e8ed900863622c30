"""Spatial parameters derived from DICOM image plane attributes."""

from __future__ import annotations

from typing import Any, Optional, Sequence, Tuple

from pydicom.dataset import Dataset

from dicomio.models import SpatialParameters

Vector3 = Tuple[float, float, float]

_DEFAULT_ORIENTATION = (1.0, 0.0, 0.0, 0.0, 1.0, 0.0)


def float_values(value: Any, count: int) -> Optional[Tuple[float, ...]]:
    try:
        items = tuple(float(item) for item in value)
    except (TypeError, ValueError):
        return None
    return items if len(items) == count else None


def orientation_cosines(dataset: Dataset) -> Tuple[Vector3, Vector3]:
    """Row and column direction cosines from ImageOrientationPatient."""

    iop = float_values(dataset.get("ImageOrientationPatient"), 6) or _DEFAULT_ORIENTATION
    return (iop[0], iop[1], iop[2]), (iop[3], iop[4], iop[5])


def slice_normal(row: Vector3, col: Vector3) -> Vector3:
    # Cross product gives the normal to the image plane
    return (
        row[1] * col[2] - row[2] * col[1],
        row[2] * col[0] - row[0] * col[2],
        row[0] * col[1] - row[1] * col[0],
    )


def slice_position(dataset: Dataset) -> Optional[Vector3]:
    position = float_values(dataset.get("ImagePositionPatient"), 3)
    if position is None:
        return None
    return (position[0], position[1], position[2])


def project(position: Vector3, normal: Vector3) -> float:
    return sum(p * n for p, n in zip(position, normal))


def in_plane_spacing(dataset: Dataset) -> Tuple[float, float]:
    """Return (x, y) spacing; PixelSpacing is stored as (row, column)."""

    spacing = float_values(dataset.get("PixelSpacing"), 2)
    if spacing is None:
        return (1.0, 1.0)
    return (spacing[1], spacing[0])


def _declared_slice_spacing(dataset: Dataset) -> float:
    for keyword in ("SpacingBetweenSlices", "SliceThickness"):
        value = dataset.get(keyword)
        try:
            spacing = float(value)
        except (TypeError, ValueError):
            continue
        if spacing > 0:
            return spacing
    return 1.0


def slice_geometry(dataset: Dataset, shape: Sequence[int]) -> SpatialParameters:
    row, col = orientation_cosines(dataset)
    position = slice_position(dataset) or (0.0, 0.0, 0.0)
    return SpatialParameters(
        size=(int(shape[1]), int(shape[0])),
        spacing=in_plane_spacing(dataset),
        origin=(position[0], position[1]),
        direction=(row[0], col[0], row[1], col[1]),
    )


def volume_geometry(datasets: Sequence[Dataset], shape: Sequence[int]) -> SpatialParameters:
    """Geometry of a stack whose first slice comes from ``datasets[0]``.

    ``shape`` is the (depth, rows, columns) shape of the stacked pixel data.
    """

    first = datasets[0]
    row, col = orientation_cosines(first)
    normal = slice_normal(row, col)
    origin = slice_position(first) or (0.0, 0.0, 0.0)

    z_spacing = _declared_slice_spacing(first)
    if len(datasets) > 1 and int(shape[0]) == len(datasets):
        second = slice_position(datasets[1])
        if second is not None and slice_position(first) is not None:
            distance = abs(project(second, normal) - project(origin, normal))
            if distance > 1e-6:
                z_spacing = distance

    x_spacing, y_spacing = in_plane_spacing(first)
    return SpatialParameters(
        size=(int(shape[2]), int(shape[1]), int(shape[0])),
        spacing=(x_spacing, y_spacing, z_spacing),
        origin=origin,
        direction=(
            row[0], col[0], normal[0],
            row[1], col[1], normal[1],
            row[2], col[2], normal[2],
        ),
    )
