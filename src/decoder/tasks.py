"""Worker-side task entry points.

Everything here runs inside the decoder pool and must stay picklable: plain
module-level functions taking and returning protocol values.
"""

from __future__ import annotations

import json
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from dicomio.models import Image
from dicomio.protocol import BinaryFile, InterfaceTypes, TaskInput, TaskOutput, TaskResult, TextStream

from . import pixels, series, tags


logger = logging.getLogger(__name__)

DICOM_TASK = "dicom"


def worker_init(log_level: Optional[str]) -> None:
    """Initialize a decoder process; called once per worker at startup."""

    from logging_config import configure_logging

    configure_logging(log_level)


def parse_args(args: Sequence[str]) -> Dict[str, List[str]]:
    """Collect ``--flag value...`` pairs into ``{flag: [values]}``."""

    options: Dict[str, List[str]] = {}
    current: Optional[str] = None
    for arg in args:
        if arg.startswith("--"):
            current = arg[2:]
            options.setdefault(current, [])
        elif current is None:
            raise ValueError(f"Unexpected positional argument {arg!r}")
        else:
            options[current].append(arg)
    return options


def _single(options: Dict[str, List[str]], name: str) -> str:
    values = options.get(name)
    if not values or len(values) != 1:
        raise ValueError(f"Expected exactly one value for --{name}")
    return values[0]


def _binary_inputs(inputs: Sequence[TaskInput]) -> Dict[str, bytes]:
    return {
        task_input.data.path: task_input.data.data
        for task_input in inputs
        if task_input.type == InterfaceTypes.BINARY_FILE
    }


def _output_slot(outputs: Sequence[TaskOutput], options: Dict[str, List[str]], expected: InterfaceTypes) -> int:
    index = int(_single(options, "memory-io"))
    if index < 0 or index >= len(outputs):
        raise ValueError(f"Output index {index} out of range for {len(outputs)} outputs")
    if outputs[index].type != expected:
        raise ValueError(f"Output {index} must be {expected.value}, got {outputs[index].type.value}")
    return index


def _run_dicom(args: Sequence[str], inputs: Sequence[TaskInput], outputs: Sequence[TaskOutput]) -> TaskResult:
    if not args:
        # Liveness probe
        return TaskResult(return_value=0)

    options = parse_args(args)
    action = _single(options, "action")
    files = _binary_inputs(inputs)
    results = [TaskOutput(type=output.type, data=output.data) for output in outputs]

    if action == "categorize":
        slot = _output_slot(outputs, options, InterfaceTypes.TEXT_STREAM)
        identifiers = options.get("files", [])
        missing = [identifier for identifier in identifiers if identifier not in files]
        if missing:
            raise ValueError(f"No input provided for files: {', '.join(missing)}")
        grouping = series.categorize([BinaryFile(path=identifier, data=files[identifier]) for identifier in identifiers])
        results[slot] = TaskOutput(type=InterfaceTypes.TEXT_STREAM, data=TextStream(json.dumps(grouping)))
        return TaskResult(return_value=0, outputs=results, stdout=f"{len(grouping)} volumes")

    if action == "getSliceImage":
        slot = _output_slot(outputs, options, InterfaceTypes.IMAGE)
        name = _single(options, "file")
        if name not in files:
            raise ValueError(f"No input provided for file {name!r}")
        thumbnail = _single(options, "thumbnail").lower() == "true"
        image = pixels.slice_image(files[name], as_thumbnail=thumbnail)
        results[slot] = TaskOutput(type=InterfaceTypes.IMAGE, data=image)
        return TaskResult(return_value=0, outputs=results)

    raise ValueError(f"Unknown action {action!r}")


TASKS = {
    DICOM_TASK: _run_dicom,
}


def run_task(
    task: str,
    args: Sequence[str],
    inputs: Sequence[TaskInput],
    outputs: Sequence[TaskOutput],
) -> TaskResult:
    """Run *task* and report failures through the result instead of raising."""

    handler = TASKS.get(task)
    if handler is None:
        return TaskResult(return_value=1, stderr=f"Unknown task {task!r}")
    try:
        return handler(args, inputs, outputs)
    except Exception as exc:
        logger.warning("Task %s failed: %s", task, exc)
        return TaskResult(return_value=1, stderr=str(exc))


def read_dicom_tags(file: BinaryFile, codes: Sequence[str]) -> List[Tuple[str, str]]:
    return tags.read_tags(file.data, codes)


def read_image_dicom_file_series(files: Sequence[BinaryFile], single_sorted_series: bool) -> Image:
    return pixels.build_volume(files, single_sorted_series=single_sorted_series)
