"""Single-flight access to the decoding backend."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence, Tuple

from .config import DicomIOConfig
from .errors import BackendUnavailable, InitError, TaskExecutionError
from .models import Image
from .protocol import Backend, BackendHandle, BinaryFile, TaskInput, TaskOutput, TaskResult


logger = logging.getLogger(__name__)

READ_TAGS_TASK = "read-dicom-tags"
READ_SERIES_TASK = "read-image-dicom-file-series"


class BackendGateway:
    """Owns the lazily created backend handle for one engine instance.

    The first call to :meth:`initialize` starts the bootstrap; concurrent and
    later callers await the same in-flight attempt and observe its outcome.
    A failed bootstrap stays failed until :meth:`close` resets the gateway.
    """

    def __init__(self, backend: Backend, config: DicomIOConfig) -> None:
        self._backend = backend
        self._config = config
        self._handle: Optional[BackendHandle] = None
        self._initialize_check: Optional[asyncio.Future[None]] = None

    @property
    def is_ready(self) -> bool:
        return self._handle is not None

    async def initialize(self) -> None:
        if self._initialize_check is None:
            self._initialize_check = asyncio.ensure_future(self._bootstrap())
        # One abandoned caller must not cancel the bootstrap the others share.
        await asyncio.shield(self._initialize_check)

    async def _bootstrap(self) -> None:
        logger.info("Starting decoding backend (%s)", type(self._backend).__name__)
        try:
            handle = await self._backend.spawn(self._config)
        except Exception as exc:
            logger.error("Decoding backend failed to start: %s", exc)
            raise InitError(f"Could not initialize decoding backend: {exc}") from exc
        if handle is None:
            logger.error("Decoding backend returned no handle")
            raise InitError("Could not initialize decoding backend")
        self._handle = handle

        if self._config.warm_up_tag_reader:
            try:
                await handle.read_dicom_tags(BinaryFile(path="", data=b""), [])
            except Exception as exc:
                logger.debug("Tag reader warm-up failed (ignored): %s", exc)
        logger.info("Decoding backend ready")

    def _require_handle(self) -> BackendHandle:
        if self._handle is None:
            raise BackendUnavailable()
        return self._handle

    async def run_task(
        self,
        task: str,
        args: Sequence[str],
        inputs: Sequence[TaskInput],
        outputs: Sequence[TaskOutput],
    ) -> TaskResult:
        handle = self._require_handle()
        logger.debug("Dispatching task %s with %d inputs", task, len(inputs))
        try:
            result = await handle.run_task(task, list(args), list(inputs), list(outputs))
        except Exception as exc:
            raise TaskExecutionError(task, str(exc)) from exc
        if result.return_value != 0:
            message = result.stderr.strip() or f"return value {result.return_value}"
            raise TaskExecutionError(task, message, stderr=result.stderr)
        return result

    async def read_dicom_tags(self, file: BinaryFile, tags: Sequence[str]) -> List[Tuple[str, str]]:
        handle = self._require_handle()
        try:
            return list(await handle.read_dicom_tags(file, list(tags)))
        except Exception as exc:
            raise TaskExecutionError(READ_TAGS_TASK, str(exc)) from exc

    async def read_image_dicom_file_series(
        self,
        files: Sequence[BinaryFile],
        *,
        single_sorted_series: bool,
    ) -> Image:
        handle = self._require_handle()
        logger.debug("Reconstructing series from %d files (sorted=%s)", len(files), single_sorted_series)
        try:
            return await handle.read_image_dicom_file_series(
                list(files),
                single_sorted_series=single_sorted_series,
            )
        except Exception as exc:
            raise TaskExecutionError(READ_SERIES_TASK, str(exc)) from exc

    async def close(self) -> None:
        """Tear the backend down and return to the "not started" state."""

        check = self._initialize_check
        if check is not None and not check.done():
            await asyncio.wait([check])
        if check is not None and check.done() and not check.cancelled():
            # Mark a failed bootstrap as observed before discarding it.
            check.exception()

        handle = self._handle
        self._handle = None
        self._initialize_check = None
        if handle is not None:
            logger.info("Shutting down decoding backend")
            await handle.close()
