"""Read named DICOM tags from a single file through the backend."""

from __future__ import annotations

import logging
from typing import Dict, Sequence

from .errors import TagReadError, TaskExecutionError
from .gateway import BackendGateway
from .models import DicomFile, TagSpec
from .protocol import BinaryFile
from .sanitize import sanitize_file


logger = logging.getLogger(__name__)


class TagReader:
    def __init__(self, gateway: BackendGateway) -> None:
        self._gateway = gateway

    async def read_tags(self, file: DicomFile, tags: Sequence[TagSpec]) -> Dict[str, str]:
        """Return ``{spec.name: value}`` for every requested tag present in *file*.

        Tags missing from the file are left out of the mapping. Only backend or
        transport failures raise :class:`TagReadError`.
        """

        await self._gateway.initialize()

        transit = sanitize_file(file)
        try:
            pairs = await self._gateway.read_dicom_tags(
                BinaryFile(path=transit.name, data=transit.content),
                [spec.tag for spec in tags],
            )
        except TaskExecutionError as exc:
            raise TagReadError(f"Could not read tags from {file.name}: {exc}") from exc

        values = dict(pairs)
        info: Dict[str, str] = {}
        for spec in tags:
            if spec.tag in values:
                info[spec.name] = values[spec.tag]
        return info
