"""Value types exchanged between the engine and its callers."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import NamedTuple, Tuple

import numpy as np


@dataclass(frozen=True)
class DicomFile:
    """A named binary blob captured from the caller."""

    name: str
    content: bytes

    @classmethod
    def from_path(cls, path: Path | str) -> "DicomFile":
        path = Path(path)
        return cls(name=path.name, content=path.read_bytes())

    def renamed(self, name: str) -> "DicomFile":
        return replace(self, name=name)

    def __repr__(self) -> str:
        return f"DicomFile(name={self.name!r}, size={len(self.content)})"


class TagSpec(NamedTuple):
    name: str
    tag: str


INSTANCE_NUMBER = TagSpec("InstanceNumber", "0020|0013")


@dataclass(frozen=True)
class SpatialParameters:
    """Geometry of a reconstructed image.

    ``size``, ``spacing`` and ``origin`` are in x, y[, z] order. ``direction``
    is the row-major flattening of the D x D matrix whose columns are the
    direction cosines of the image axes.
    """

    size: Tuple[int, ...]
    spacing: Tuple[float, ...]
    origin: Tuple[float, ...]
    direction: Tuple[float, ...]

    @property
    def dimension(self) -> int:
        return len(self.size)


@dataclass(frozen=True)
class Image:
    data: np.ndarray
    spatial: SpatialParameters

    @property
    def dimension(self) -> int:
        return self.spatial.dimension

    @property
    def size(self) -> Tuple[int, ...]:
        return self.spatial.size
