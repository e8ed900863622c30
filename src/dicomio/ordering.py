"""Slice ordering by InstanceNumber within one volume."""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence

from .models import INSTANCE_NUMBER, DicomFile
from .tags import TagReader


logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_instance_number(value: Optional[str]) -> int:
    """Parse the leading integer of an IS value; missing or unparseable is 0."""

    if not value:
        return 0
    match = _LEADING_INT.match(value)
    if match is None:
        return 0
    return int(match.group(1))


def order_by_key(keyed: Sequence[tuple[int, DicomFile]]) -> List[DicomFile]:
    """Emit files in ascending key order.

    Files sharing a key collapse to the one scanned last, so the result can be
    shorter than the input. Duplicate instance numbers occur in real series
    (multi-frame, corrected acquisitions) and are kept last-write-wins.
    """

    by_key: Dict[int, DicomFile] = {}
    for key, file in keyed:
        previous = by_key.get(key)
        if previous is not None:
            logger.warning(
                "InstanceNumber %d shared by %s and %s; keeping %s",
                key,
                previous.name,
                file.name,
                file.name,
            )
        by_key[key] = file
    return [by_key[key] for key in sorted(by_key)]


class InstanceOrderer:
    def __init__(self, tag_reader: TagReader) -> None:
        self._tag_reader = tag_reader

    async def order_by_instance(self, files: Sequence[DicomFile]) -> List[DicomFile]:
        # Lookups stay sequential in scan order; the backend serializes them anyway.
        keyed: List[tuple[int, DicomFile]] = []
        for file in files:
            tags = await self._tag_reader.read_tags(file, [INSTANCE_NUMBER])
            keyed.append((parse_instance_number(tags.get(INSTANCE_NUMBER.name)), file))
        return order_by_key(keyed)
