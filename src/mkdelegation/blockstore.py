"""BlockStore — a read-only CID -> block bytes lookup.

Stores are populated once (typically from the blocks embedded in an
archive) and never mutated afterwards, so they can be shared freely
between recursive proof resolutions.
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping

from multiformats import CID


class BlockStore(Mapping[CID, bytes]):
    """Immutable mapping of content identifiers to raw block bytes.

    Keys are compared by their binary CID form, so the same CID rendered
    in different multibases resolves to the same block.

    Parameters
    ----------
    blocks:
        Optional iterable of ``(cid, bytes)`` pairs. Later duplicates of a
        CID are ignored.
    """

    def __init__(self, blocks: Iterable[tuple[CID, bytes]] = ()) -> None:
        self._cids: dict[bytes, CID] = {}
        self._blocks: dict[bytes, bytes] = {}
        for cid, data in blocks:
            key = bytes(cid)
            if key not in self._blocks:
                self._cids[key] = cid
                self._blocks[key] = bytes(data)

    def __getitem__(self, cid: CID) -> bytes:
        return self._blocks[_key(cid)]

    def __contains__(self, cid: object) -> bool:
        if not isinstance(cid, (CID, str)):
            return False
        return _key(cid) in self._blocks

    def __iter__(self) -> Iterator[CID]:
        return iter(self._cids.values())

    def __len__(self) -> int:
        return len(self._blocks)

    def __repr__(self) -> str:
        return f"BlockStore({len(self)} blocks)"

    def merge(self, other: Mapping[CID, bytes]) -> "BlockStore":
        """Return a new store holding this store's blocks plus *other*'s."""
        return BlockStore([*self.items(), *other.items()])


def _key(cid: CID | str) -> bytes:
    if isinstance(cid, str):
        cid = CID.decode(cid)
    return bytes(cid)


EMPTY_BLOCKSTORE = BlockStore()

__all__ = ["EMPTY_BLOCKSTORE", "BlockStore"]
