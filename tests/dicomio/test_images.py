from __future__ import annotations

import asyncio

import numpy as np
import pytest

from dicomio.errors import BuildError
from dicomio.gateway import BackendGateway
from dicomio.images import ImageBuilder
from dicomio.models import DicomFile, Image, SpatialParameters
from dicomio.protocol import InterfaceTypes, TaskOutput, TaskResult


def _slice_image() -> Image:
    return Image(
        data=np.zeros((2, 2), dtype=np.uint8),
        spatial=SpatialParameters(size=(2, 2), spacing=(1.0, 1.0), origin=(0.0, 0.0), direction=(1.0, 0.0, 0.0, 1.0)),
    )


def test_get_slice_request_shape(fake_backend, config):
    expected = _slice_image()
    fake_backend.handle.task_results.append(
        TaskResult(return_value=0, outputs=[TaskOutput(type=InterfaceTypes.IMAGE, data=expected)])
    )
    builder = ImageBuilder(BackendGateway(fake_backend, config))

    image = asyncio.run(builder.get_slice(DicomFile(name="dir/IM1.dcm", content=b"px"), as_thumbnail=True))

    assert image is expected
    _, task, args, inputs, outputs = fake_backend.handle.calls_named("run_task")[0]
    assert task == "dicom"
    assert args == ["--action", "getSliceImage", "--thumbnail", "true", "--file", "dir_IM1.dcm", "--memory-io", "0"]
    assert inputs[0].data.path == "dir_IM1.dcm"
    assert inputs[0].data.data == b"px"
    assert [output.type for output in outputs] == [InterfaceTypes.IMAGE]


def test_get_slice_failure(fake_backend, config):
    fake_backend.handle.task_results.append(TaskResult(return_value=1, stderr="no pixel data"))
    builder = ImageBuilder(BackendGateway(fake_backend, config))

    with pytest.raises(BuildError, match="no pixel data"):
        asyncio.run(builder.get_slice(DicomFile(name="IM1", content=b"")))


def test_get_slice_without_image_output(fake_backend, config):
    fake_backend.handle.task_results.append(TaskResult(return_value=0, outputs=[TaskOutput(type=InterfaceTypes.IMAGE)]))
    builder = ImageBuilder(BackendGateway(fake_backend, config))

    with pytest.raises(BuildError, match="no slice image"):
        asyncio.run(builder.get_slice(DicomFile(name="IM1", content=b"")))


def test_build_volume_keeps_order_and_sanitizes(fake_backend, config):
    builder = ImageBuilder(BackendGateway(fake_backend, config))
    files = [DicomFile(name="s/IM2", content=b"2"), DicomFile(name="s/IM1", content=b"1")]

    image = asyncio.run(builder.build_volume(files))

    assert image is fake_backend.handle.series_image
    assert fake_backend.handle.calls_named("read_image_dicom_file_series") == [
        ("read_image_dicom_file_series", ["s_IM2", "s_IM1"], True)
    ]


def test_build_volume_failure(fake_backend, config):
    fake_backend.handle.series_error = ValueError("Slices have mismatched dimensions")
    builder = ImageBuilder(BackendGateway(fake_backend, config))

    with pytest.raises(BuildError, match="mismatched"):
        asyncio.run(builder.build_volume([DicomFile(name="a", content=b"")]))


def test_build_volume_without_image(fake_backend, config):
    fake_backend.handle.series_image = None
    builder = ImageBuilder(BackendGateway(fake_backend, config))

    with pytest.raises(BuildError, match="no volume image"):
        asyncio.run(builder.build_volume([DicomFile(name="a", content=b"")]))
