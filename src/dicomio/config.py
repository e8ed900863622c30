"""Configuration models for the series organization engine."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field

StartMethod = Literal["spawn", "fork", "forkserver"]


class WorkerConfig(BaseModel):
    max_workers: int = Field(
        default=1,
        ge=1,
        le=32,
        description="Worker processes in the decoding pool (1 keeps tasks strictly sequential)",
    )
    use_process_pool: bool = Field(
        default=True,
        description="Use ProcessPoolExecutor; False runs the decoder on threads",
    )
    start_method: Optional[StartMethod] = None
    log_level: Optional[str] = None


class DicomIOConfig(BaseModel):
    sort_by_instance_number: bool = True
    warm_up_tag_reader: bool = True
    worker: WorkerConfig = Field(default_factory=WorkerConfig)


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").lower() == "true"


@lru_cache
def get_settings() -> DicomIOConfig:
    return DicomIOConfig(
        sort_by_instance_number=_env_flag("DICOMIO_SORT_BY_INSTANCE_NUMBER", True),
        warm_up_tag_reader=_env_flag("DICOMIO_WARM_UP", True),
        worker=WorkerConfig(
            max_workers=int(os.getenv("DICOMIO_MAX_WORKERS", "1")),
            use_process_pool=_env_flag("DICOMIO_USE_PROCESS_POOL", True),
            start_method=os.getenv("DICOMIO_START_METHOD") or None,
            log_level=os.getenv("LOG_LEVEL") or None,
        ),
    )
