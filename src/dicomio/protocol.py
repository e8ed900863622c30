"""Task protocol spoken between the engine and a decoding backend.

A backend is anything that can be spawned into a :class:`BackendHandle`. The
handle executes named tasks that take a flat list of string arguments plus
typed inputs and outputs, and exposes two dedicated calls for tag reading and
whole-series reconstruction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional, Protocol, Sequence, Tuple

if TYPE_CHECKING:
    from .config import DicomIOConfig
    from .models import Image


class InterfaceTypes(str, Enum):
    BINARY_FILE = "BinaryFile"
    TEXT_STREAM = "TextStream"
    IMAGE = "Image"


@dataclass(frozen=True)
class BinaryFile:
    path: str
    data: bytes


@dataclass(frozen=True)
class TextStream:
    data: str


@dataclass
class TaskInput:
    type: InterfaceTypes
    data: Any


@dataclass
class TaskOutput:
    type: InterfaceTypes
    data: Any = None


@dataclass
class TaskResult:
    return_value: int
    outputs: List[TaskOutput] = field(default_factory=list)
    stdout: str = ""
    stderr: str = ""


class BackendHandle(Protocol):
    async def run_task(
        self,
        task: str,
        args: Sequence[str],
        inputs: Sequence[TaskInput],
        outputs: Sequence[TaskOutput],
    ) -> TaskResult: ...

    async def read_dicom_tags(self, file: BinaryFile, tags: Sequence[str]) -> List[Tuple[str, str]]: ...

    async def read_image_dicom_file_series(
        self,
        files: Sequence[BinaryFile],
        *,
        single_sorted_series: bool,
    ) -> "Image": ...

    async def close(self) -> None: ...


class Backend(Protocol):
    async def spawn(self, config: "DicomIOConfig") -> Optional[BackendHandle]: ...
