"""Caller-facing facade over the series organization components."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from .categorize import SeriesCategorizer, VolumesToFilesMap
from .config import DicomIOConfig, get_settings
from .gateway import BackendGateway
from .images import ImageBuilder
from .models import DicomFile, Image, TagSpec
from .ordering import InstanceOrderer
from .protocol import Backend
from .tags import TagReader


logger = logging.getLogger(__name__)


class DicomIO:
    """Group, order and reconstruct DICOM series through a decoding backend.

    Usage::

        async with DicomIO() as dicom_io:
            volumes = await dicom_io.categorize_files(files)
            image = await dicom_io.build_image(next(iter(volumes.values())))
    """

    def __init__(self, backend: Optional[Backend] = None, config: Optional[DicomIOConfig] = None) -> None:
        if backend is None:
            from decoder.backend import LocalBackend

            backend = LocalBackend()
        self.config = config or get_settings()
        self._gateway = BackendGateway(backend, self.config)
        self._tag_reader = TagReader(self._gateway)
        self._categorizer = SeriesCategorizer(self._gateway)
        self._orderer = InstanceOrderer(self._tag_reader)
        self._image_builder = ImageBuilder(self._gateway)

    async def __aenter__(self) -> "DicomIO":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def initialize(self) -> None:
        await self._gateway.initialize()

    async def categorize_files(self, files: Sequence[DicomFile]) -> VolumesToFilesMap:
        """Partition *files* into volumes, each sorted by InstanceNumber by default."""

        volumes = await self._categorizer.categorize(files)
        if not self.config.sort_by_instance_number:
            return volumes

        ordered: VolumesToFilesMap = {}
        for volume_key, volume_files in volumes.items():
            ordered[volume_key] = await self._orderer.order_by_instance(volume_files)
        return ordered

    async def order_by_instance(self, files: Sequence[DicomFile]) -> List[DicomFile]:
        return await self._orderer.order_by_instance(files)

    async def read_tags(self, file: DicomFile, tags: Sequence[TagSpec]) -> Dict[str, str]:
        return await self._tag_reader.read_tags(file, tags)

    async def get_volume_slice(self, file: DicomFile, as_thumbnail: bool = False) -> Image:
        return await self._image_builder.get_slice(file, as_thumbnail)

    async def build_image(self, series_files: Sequence[DicomFile]) -> Image:
        return await self._image_builder.build_volume(
            series_files,
            single_sorted_series=self.config.sort_by_instance_number,
        )

    async def close(self) -> None:
        await self._gateway.close()
