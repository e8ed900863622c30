"""Header-only tag extraction keyed by ``gggg|eeee`` codes."""

from __future__ import annotations

import io
from typing import Any, List, Sequence, Tuple

import pydicom
from pydicom.dataelem import DataElement
from pydicom.multival import MultiValue
from pydicom.tag import BaseTag, Tag


def parse_tag_code(code: str) -> BaseTag:
    """Convert ``"0020|0013"`` into a pydicom tag."""

    group, sep, element = code.partition("|")
    if not sep or len(group) != 4 or len(element) != 4:
        raise ValueError(f"Invalid tag code {code!r}; expected 'gggg|eeee'")
    try:
        return Tag(int(group, 16), int(element, 16))
    except ValueError as exc:
        raise ValueError(f"Invalid tag code {code!r}; expected 'gggg|eeee'") from exc


def format_tag_code(tag: BaseTag) -> str:
    return f"{tag.group:04x}|{tag.element:04x}"


def element_to_str(element: DataElement) -> str:
    value: Any = element.value
    if value is None or element.VR == "SQ":
        return ""
    if isinstance(value, bytes):
        return value.decode("latin-1").strip("\x00 ")
    if isinstance(value, (list, tuple, MultiValue)):
        return "\\".join(str(item).strip() for item in value)
    return str(value).strip()


def read_tags(data: bytes, codes: Sequence[str]) -> List[Tuple[str, str]]:
    """Return ``(code, value)`` pairs for the requested tags present in *data*.

    The returned code echoes the caller's spelling so it can be used as a key.
    """

    if not codes:
        return []
    wanted = [(code, parse_tag_code(code)) for code in codes]
    dataset = pydicom.dcmread(
        io.BytesIO(data),
        force=True,
        stop_before_pixels=True,
        specific_tags=[tag for _, tag in wanted],
    )
    pairs: List[Tuple[str, str]] = []
    for code, tag in wanted:
        if tag in dataset:
            pairs.append((code, element_to_str(dataset[tag])))
    return pairs
