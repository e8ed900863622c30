"""Shared fixtures: an in-memory backend and synthesized DICOM files."""

from __future__ import annotations

import asyncio
import io
from typing import Dict, List, Optional, Sequence

import numpy as np
import pydicom
import pytest
from pydicom.dataset import Dataset, FileMetaDataset

from dicomio.config import DicomIOConfig
from dicomio.models import Image, SpatialParameters
from dicomio.protocol import BinaryFile, TaskInput, TaskOutput, TaskResult


class FakeHandle:
    """Records every call and answers from canned data."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.task_results: List[TaskResult] = []
        self.task_error: Optional[Exception] = None
        # transit path -> {tag code: value}
        self.tags: Dict[str, Dict[str, str]] = {}
        self.tag_error: Optional[Exception] = None
        self.warm_up_error: Optional[Exception] = None
        self.series_image: Optional[Image] = Image(
            data=np.zeros((3, 2, 2), dtype=np.int16),
            spatial=SpatialParameters(
                size=(2, 2, 3),
                spacing=(1.0, 1.0, 1.0),
                origin=(0.0, 0.0, 0.0),
                direction=(1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0),
            ),
        )
        self.series_error: Optional[Exception] = None
        self.closed = False

    async def run_task(
        self,
        task: str,
        args: Sequence[str],
        inputs: Sequence[TaskInput],
        outputs: Sequence[TaskOutput],
    ) -> TaskResult:
        self.calls.append(("run_task", task, list(args), list(inputs), list(outputs)))
        if self.task_error is not None:
            raise self.task_error
        if self.task_results:
            return self.task_results.pop(0)
        return TaskResult(return_value=0)

    async def read_dicom_tags(self, file: BinaryFile, tags: Sequence[str]):
        if not file.path and not tags:
            self.calls.append(("warm_up",))
            if self.warm_up_error is not None:
                raise self.warm_up_error
            return []
        self.calls.append(("read_dicom_tags", file.path, list(tags)))
        if self.tag_error is not None:
            raise self.tag_error
        values = self.tags.get(file.path, {})
        return [(tag, values[tag]) for tag in tags if tag in values]

    async def read_image_dicom_file_series(self, files: Sequence[BinaryFile], *, single_sorted_series: bool):
        self.calls.append(("read_image_dicom_file_series", [file.path for file in files], single_sorted_series))
        if self.series_error is not None:
            raise self.series_error
        return self.series_image

    async def close(self) -> None:
        self.closed = True

    def calls_named(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]


class FakeBackend:
    def __init__(self, handle: Optional[FakeHandle] = None) -> None:
        self.handle = handle if handle is not None else FakeHandle()
        self.spawn_count = 0
        self.spawn_error: Optional[Exception] = None
        self.return_none = False
        self.delay = 0.0

    async def spawn(self, config: DicomIOConfig):
        self.spawn_count += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.spawn_error is not None:
            raise self.spawn_error
        if self.return_none:
            return None
        return self.handle


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def config() -> DicomIOConfig:
    return DicomIOConfig()


def _create_dicom(
    *,
    instance_number: Optional[int] = 1,
    series_uid: Optional[str] = "1.2.3.4.5.6",
    series_number: int = 1,
    position: Optional[Sequence[float]] = (0.0, 0.0, 0.0),
    orientation: Sequence[float] = (1, 0, 0, 0, 1, 0),
    pixel_spacing: Sequence[float] = (0.5, 0.75),
    slice_thickness: float = 2.0,
    rows: int = 4,
    columns: int = 3,
    pixels: Optional[np.ndarray] = None,
    fill: int = 100,
    slope: Optional[float] = None,
    intercept: Optional[float] = None,
) -> bytes:
    sop_uid = f"1.2.826.0.1.3680043.2.1125.{instance_number if instance_number is not None else 0}"

    file_meta = FileMetaDataset()
    file_meta.MediaStorageSOPClassUID = "1.2.840.10008.5.1.4.1.1.4"
    file_meta.MediaStorageSOPInstanceUID = sop_uid
    file_meta.TransferSyntaxUID = pydicom.uid.ImplicitVRLittleEndian

    ds = Dataset()
    ds.file_meta = file_meta
    ds.SOPClassUID = file_meta.MediaStorageSOPClassUID
    ds.SOPInstanceUID = sop_uid
    ds.PatientID = "PATIENT1"
    ds.PatientName = "Test^Patient"
    ds.StudyInstanceUID = "1.2.3.4.5"
    if series_uid is not None:
        ds.SeriesInstanceUID = series_uid
    ds.SeriesNumber = series_number
    ds.Modality = "MR"
    if instance_number is not None:
        ds.InstanceNumber = instance_number
    if position is not None:
        ds.ImagePositionPatient = [float(value) for value in position]
    ds.ImageOrientationPatient = [float(value) for value in orientation]
    ds.PixelSpacing = [float(value) for value in pixel_spacing]
    ds.SliceThickness = slice_thickness
    if slope is not None:
        ds.RescaleSlope = slope
    if intercept is not None:
        ds.RescaleIntercept = intercept

    if pixels is None:
        pixels = np.full((rows, columns), fill, dtype=np.uint16)
    ds.Rows, ds.Columns = pixels.shape[-2:]
    if pixels.ndim == 3:
        ds.NumberOfFrames = pixels.shape[0]
    ds.SamplesPerPixel = 1
    ds.PhotometricInterpretation = "MONOCHROME2"
    ds.BitsAllocated = 16
    ds.BitsStored = 16
    ds.HighBit = 15
    ds.PixelRepresentation = 0
    ds.PixelData = pixels.astype(np.uint16).tobytes()

    buffer = io.BytesIO()
    ds.save_as(buffer, enforce_file_format=True)
    return buffer.getvalue()


@pytest.fixture
def make_dicom():
    return _create_dicom
