"""Block, CAR, and archive identifier codecs."""
from __future__ import annotations

from mkdelegation.codec.archive import ArchiveCodec, format_delegation, parse_delegation
from mkdelegation.codec.block import DagCborBlockCodec, link_for_block
from mkdelegation.codec.car import read_car, write_car

__all__ = [
    "ArchiveCodec",
    "DagCborBlockCodec",
    "format_delegation",
    "link_for_block",
    "parse_delegation",
    "read_car",
    "write_car",
]
