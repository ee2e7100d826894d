"""CAR framing for delegation archives.

Layout (CARv1 framing)::

    varint(len(header)) header
    varint(len(cid) + len(block)) cid block    # repeated per block

The header is a DAG-CBOR map ``{"roots": [<cid>], "version": 1}``.
"""
from __future__ import annotations

from collections.abc import Iterable

import dag_cbor
from multiformats import CID, varint

from mkdelegation.blockstore import BlockStore
from mkdelegation.errors import DecodeFailureError

CAR_VERSION: int = 1


def write_car(roots: list[CID], blocks: Iterable[tuple[CID, bytes]]) -> bytes:
    """Serialize *roots* and *blocks* into CAR bytes.

    Blocks are written in iteration order.
    """
    header = dag_cbor.encode({"roots": list(roots), "version": CAR_VERSION})
    out = bytearray(varint.encode(len(header)))
    out += header
    for cid, data in blocks:
        cid_bytes = bytes(cid)
        out += varint.encode(len(cid_bytes) + len(data))
        out += cid_bytes
        out += data
    return bytes(out)


def read_car(data: bytes) -> tuple[list[CID], BlockStore]:
    """Parse CAR bytes into ``(roots, blocks)``.

    Raises
    ------
    DecodeFailureError
        If the framing, header, or any CID is malformed.
    """
    view = memoryview(bytes(data))
    try:
        header_len, offset = _read_varint(view, 0)
        header_end = offset + header_len
        if header_len == 0 or header_end > len(view):
            raise DecodeFailureError("CAR header is truncated.")
        header = dag_cbor.decode(bytes(view[offset:header_end]))
        if not isinstance(header, dict) or header.get("version") != CAR_VERSION:
            raise DecodeFailureError(f"Unsupported CAR header: {header!r}")
        roots = list(header.get("roots") or [])
        if not all(isinstance(root, CID) for root in roots):
            raise DecodeFailureError("CAR header roots must be links.")

        blocks: list[tuple[CID, bytes]] = []
        offset = header_end
        while offset < len(view):
            section_len, offset = _read_varint(view, offset)
            section_end = offset + section_len
            if section_end > len(view):
                raise DecodeFailureError("CAR block section is truncated.")
            cid_len = _cid_length(view, offset)
            if offset + cid_len > section_end:
                raise DecodeFailureError("CAR block section is shorter than its CID.")
            cid = CID.decode(bytes(view[offset:offset + cid_len]))
            blocks.append((cid, bytes(view[offset + cid_len:section_end])))
            offset = section_end
    except DecodeFailureError:
        raise
    except Exception as exc:
        raise DecodeFailureError(f"Malformed CAR archive: {exc}") from exc

    if not roots:
        raise DecodeFailureError("CAR archive has no root.")
    return roots, BlockStore(blocks)


def _read_varint(view: memoryview, offset: int) -> tuple[int, int]:
    if offset >= len(view):
        raise DecodeFailureError("Unexpected end of CAR data.")
    value, length, _ = varint.decode_raw(view[offset:])
    return value, offset + length


def _cid_length(view: memoryview, offset: int) -> int:
    """Return the byte length of the binary CIDv1 starting at *offset*."""
    start = offset
    version, offset = _read_varint(view, offset)
    if version != 1:
        raise DecodeFailureError(f"Unsupported CID version {version} in CAR block.")
    _codec, offset = _read_varint(view, offset)
    _hash_code, offset = _read_varint(view, offset)
    digest_len, offset = _read_varint(view, offset)
    return offset + digest_len - start


__all__ = ["CAR_VERSION", "read_car", "write_car"]
