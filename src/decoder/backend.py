"""Local decoding backend backed by a process pool.

Decoding runs in worker processes for true CPU parallelism and isolation
from the caller's event loop. With the default single worker, submitted
tasks run to completion one at a time.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import multiprocessing
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Sequence, Tuple

from dicomio.config import DicomIOConfig
from dicomio.models import Image
from dicomio.protocol import BinaryFile, TaskInput, TaskOutput, TaskResult

from . import tasks


logger = logging.getLogger(__name__)


class LocalHandle:
    """Live connection to a decoder pool."""

    def __init__(self, executor: Executor) -> None:
        self._executor = executor

    async def _submit(self, fn: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args))

    async def run_task(
        self,
        task: str,
        args: Sequence[str],
        inputs: Sequence[TaskInput],
        outputs: Sequence[TaskOutput],
    ) -> TaskResult:
        return await self._submit(tasks.run_task, task, list(args), list(inputs), list(outputs))

    async def read_dicom_tags(self, file: BinaryFile, tags: Sequence[str]) -> List[Tuple[str, str]]:
        return await self._submit(tasks.read_dicom_tags, file, list(tags))

    async def read_image_dicom_file_series(
        self,
        files: Sequence[BinaryFile],
        *,
        single_sorted_series: bool,
    ) -> Image:
        return await self._submit(tasks.read_image_dicom_file_series, list(files), single_sorted_series)

    async def close(self) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, functools.partial(self._executor.shutdown, wait=True))


class LocalBackend:
    def _create_executor(self, config: DicomIOConfig) -> Executor:
        worker = config.worker
        if not worker.use_process_pool:
            return ThreadPoolExecutor(max_workers=worker.max_workers, thread_name_prefix="dicom-decoder")

        context = multiprocessing.get_context(worker.start_method) if worker.start_method else None
        logger.info("Starting decoder pool with %d worker processes", worker.max_workers)
        return ProcessPoolExecutor(
            max_workers=worker.max_workers,
            mp_context=context,
            initializer=tasks.worker_init,
            initargs=(worker.log_level,),
        )

    async def spawn(self, config: DicomIOConfig) -> Optional[LocalHandle]:
        executor = self._create_executor(config)
        handle = LocalHandle(executor)
        try:
            probe = await handle.run_task(tasks.DICOM_TASK, [], [], [])
        except BaseException:
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        if probe.return_value != 0:
            logger.error("Decoder liveness probe failed: %s", probe.stderr)
            await handle.close()
            return None
        return handle
