"""Request reconstructed slice and volume images from the backend."""

from __future__ import annotations

import logging
from typing import Sequence

from .categorize import DICOM_TASK
from .errors import BuildError, TaskExecutionError
from .gateway import BackendGateway
from .models import DicomFile, Image
from .protocol import BinaryFile, InterfaceTypes, TaskInput, TaskOutput
from .sanitize import sanitize_file, sanitize_file_name


logger = logging.getLogger(__name__)


class ImageBuilder:
    def __init__(self, gateway: BackendGateway) -> None:
        self._gateway = gateway

    async def get_slice(self, file: DicomFile, as_thumbnail: bool = False) -> Image:
        """Decode a single 2D slice; thumbnails are cast to unsigned char."""

        await self._gateway.initialize()

        path = sanitize_file_name(file.name)
        inputs = [
            TaskInput(
                type=InterfaceTypes.BINARY_FILE,
                data=BinaryFile(path=path, data=file.content),
            )
        ]
        args = [
            "--action",
            "getSliceImage",
            "--thumbnail",
            str(as_thumbnail).lower(),
            "--file",
            path,
            "--memory-io",
            "0",
        ]
        outputs = [TaskOutput(type=InterfaceTypes.IMAGE)]

        try:
            result = await self._gateway.run_task(DICOM_TASK, args, inputs, outputs)
        except TaskExecutionError as exc:
            raise BuildError(f"Could not read slice from {file.name}: {exc}") from exc

        image = result.outputs[0].data if result.outputs else None
        if not isinstance(image, Image):
            raise BuildError(f"Backend returned no slice image for {file.name}")
        return image

    async def build_volume(self, ordered_files: Sequence[DicomFile], single_sorted_series: bool = True) -> Image:
        """Reconstruct one 3D image from *ordered_files*.

        With ``single_sorted_series`` the backend keeps the given order instead
        of sorting the files itself.
        """

        await self._gateway.initialize()

        input_images = [
            BinaryFile(path=transit.name, data=transit.content)
            for transit in (sanitize_file(file) for file in ordered_files)
        ]
        try:
            image = await self._gateway.read_image_dicom_file_series(
                input_images,
                single_sorted_series=single_sorted_series,
            )
        except TaskExecutionError as exc:
            raise BuildError(f"Could not build volume from {len(ordered_files)} files: {exc}") from exc

        if not isinstance(image, Image):
            raise BuildError("Backend returned no volume image")
        logger.debug("Built volume of size %s", image.size)
        return image
