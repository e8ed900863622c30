"""Partition a file set into volumes using the backend's series grouping."""

from __future__ import annotations

import json
import logging
from typing import Dict, List, Sequence

from .errors import CategorizeError, TaskExecutionError
from .gateway import BackendGateway
from .models import DicomFile
from .protocol import BinaryFile, InterfaceTypes, TaskInput, TaskOutput, TextStream


logger = logging.getLogger(__name__)

DICOM_TASK = "dicom"

# volume ID => file identifiers
VolumesToFileNamesMap = Dict[str, List[str]]

# volume ID => files
VolumesToFilesMap = Dict[str, List[DicomFile]]


def build_categorize_request(files: Sequence[DicomFile]) -> tuple[list[str], list[TaskInput], list[TaskOutput]]:
    # Positional identifiers keep colliding caller names apart in transit.
    inputs = [
        TaskInput(
            type=InterfaceTypes.BINARY_FILE,
            data=BinaryFile(path=str(index), data=file.content),
        )
        for index, file in enumerate(files)
    ]
    args = [
        "--action",
        "categorize",
        "--memory-io",
        "0",
        "--files",
        *(task_input.data.path for task_input in inputs),
    ]
    outputs = [TaskOutput(type=InterfaceTypes.TEXT_STREAM)]
    return args, inputs, outputs


def parse_volume_map(text: str) -> VolumesToFileNamesMap:
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CategorizeError(f"Backend returned invalid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise CategorizeError("Backend grouping must be a JSON object")

    volumes: VolumesToFileNamesMap = {}
    for volume_key, identifiers in raw.items():
        if not isinstance(identifiers, list) or not all(isinstance(item, str) for item in identifiers):
            raise CategorizeError(f"Volume {volume_key!r} must map to a list of file identifiers")
        volumes[str(volume_key)] = identifiers
    return volumes


def rehydrate(volumes: VolumesToFileNamesMap, files: Sequence[DicomFile]) -> VolumesToFilesMap:
    """Map backend identifiers back to the caller's files.

    The grouping must be a partition of the submitted identifiers: each one
    appears in exactly one volume and nothing else appears.
    """

    # Exact match against what was sent; "01" or " 1" were never submitted.
    submitted = {str(index): index for index in range(len(files))}
    seen: set[int] = set()
    result: VolumesToFilesMap = {}
    for volume_key, identifiers in volumes.items():
        group: List[DicomFile] = []
        for identifier in identifiers:
            index = submitted.get(identifier)
            if index is None:
                raise CategorizeError(f"Unknown file identifier {identifier!r} in volume {volume_key!r}")
            if index in seen:
                raise CategorizeError(f"File identifier {identifier!r} assigned to more than one volume")
            seen.add(index)
            group.append(files[index])
        result[volume_key] = group

    missing = len(files) - len(seen)
    if missing:
        raise CategorizeError(f"Backend grouping omitted {missing} of {len(files)} files")
    return result


class SeriesCategorizer:
    def __init__(self, gateway: BackendGateway) -> None:
        self._gateway = gateway

    async def categorize(self, files: Sequence[DicomFile]) -> VolumesToFilesMap:
        await self._gateway.initialize()

        args, inputs, outputs = build_categorize_request(files)
        try:
            result = await self._gateway.run_task(DICOM_TASK, args, inputs, outputs)
        except TaskExecutionError as exc:
            raise CategorizeError(f"Could not categorize {len(files)} files: {exc}") from exc

        if not result.outputs or not isinstance(result.outputs[0].data, TextStream):
            raise CategorizeError("Backend did not return a grouping text stream")

        volumes = rehydrate(parse_volume_map(result.outputs[0].data.data), files)
        logger.info("Categorized %d files into %d volumes", len(files), len(volumes))
        return volumes
