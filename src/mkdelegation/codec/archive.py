"""ArchiveCodec — delegations as self-contained, single-line identifiers.

Encoding a delegation produces a CAR archive whose root is a small
variant block, ``{"ucan@0.9.1": <delegation CID>}``, followed by the
delegation's own block and every proof block that is available locally.
Formatting wraps the whole archive in a CIDv1 whose multihash uses the
*identity* function (the
digest is the archive itself) under the ``car`` (0x0202) codec, rendered
in multibase base64. The resulting string is at once an address and the
full payload, so parsing needs no external lookup.

Example
-------
::

    codec = ArchiveCodec()
    text = codec.format(codec.encode(delegation))
    assert codec.parse(text) == delegation
"""
from __future__ import annotations

import base64
import binascii
import logging

import dag_cbor
from multiformats import CID, multihash

from mkdelegation.blockstore import BlockStore
from mkdelegation.codec.block import DagCborBlockCodec, link_for_block
from mkdelegation.codec.car import read_car, write_car
from mkdelegation.errors import DecodeFailureError
from mkdelegation.ucan.delegation import Delegation, Inline

logger = logging.getLogger(__name__)

ARCHIVE_CODEC: str = "car"
ARCHIVE_HASH: str = "identity"
ARCHIVE_BASE: str = "base64"
ARCHIVE_VARIANT: str = "ucan@0.9.1"

_Blocks = dict[bytes, tuple[CID, bytes]]


class ArchiveCodec:
    """Encode, format, and parse delegation archives.

    Parameters
    ----------
    block_codec:
        Codec for individual delegation blocks. Defaults to
        :class:`~mkdelegation.codec.block.DagCborBlockCodec`.
    """

    def __init__(self, block_codec: DagCborBlockCodec | None = None) -> None:
        self._block_codec = block_codec or DagCborBlockCodec()

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def encode(self, delegation: Delegation) -> bytes:
        """Serialize *delegation* and its locally available proofs to CAR bytes.

        Inline proofs are always included. Link proofs are included only
        when their block is present in the holding delegation's
        :attr:`~mkdelegation.ucan.delegation.Delegation.blocks`; their own
        links are followed the same way. Blocks are written variant root
        first, then the delegation, then proofs in depth-first order, each
        CID once.
        """
        variant = dag_cbor.encode({ARCHIVE_VARIANT: delegation.link()})
        root = link_for_block(variant)
        blocks: _Blocks = {bytes(root): (root, variant)}
        head = self._collect(delegation, blocks)
        logger.debug("Encoded archive for %s with %d block(s)", head, len(blocks))
        return write_car([root], blocks.values())

    def _collect(self, delegation: Delegation, blocks: _Blocks) -> CID:
        data = self._block_codec.encode_block(delegation)
        cid = link_for_block(data)
        blocks.setdefault(bytes(cid), (cid, data))
        for proof in delegation.proofs:
            if isinstance(proof, Inline):
                self._collect(proof.delegation, blocks)
            else:
                self._collect_linked(proof.cid, delegation.blocks, blocks)
        return cid

    def _collect_linked(self, cid: CID, store: BlockStore, blocks: _Blocks) -> None:
        if bytes(cid) in blocks:
            return
        data = store.get(cid)
        if data is None:
            logger.debug("Proof block %s is not available locally; omitting it", cid)
            return
        blocks[bytes(cid)] = (cid, data)
        try:
            linked = self._block_codec.decode_block(data)
        except DecodeFailureError:
            logger.debug("Proof block %s is not a delegation; not following its links", cid)
            return
        for proof in linked.proofs:
            self._collect_linked(proof.cid, store, blocks)

    # ------------------------------------------------------------------
    # Formatting
    # ------------------------------------------------------------------

    def format(self, archive: bytes) -> str:
        """Render archive bytes as a multibase base64 identity CID."""
        digest = multihash.wrap(bytes(archive), ARCHIVE_HASH)
        return CID(ARCHIVE_BASE, 1, ARCHIVE_CODEC, digest).encode(ARCHIVE_BASE)

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(self, text: str) -> Delegation:
        """Parse an archive identifier back into its root delegation.

        The text is first decoded as an identifier directly. If that fails
        it is treated as standard base64 wrapping an identifier and decoded
        once more.

        Raises
        ------
        DecodeFailureError
            If neither attempt yields a delegation.
        """
        content = text.strip()
        try:
            return self._parse_identifier(content)
        except DecodeFailureError as first_error:
            logger.debug("Direct parse failed (%s); retrying as base64", first_error)
            try:
                unwrapped = base64.b64decode(content, validate=True).decode("utf-8")
            except (binascii.Error, ValueError, UnicodeDecodeError) as exc:
                raise DecodeFailureError(
                    f"Failed to decode delegation: {first_error}; "
                    f"content is not base64 either: {exc}"
                ) from exc
            return self._parse_identifier(unwrapped.strip())

    def _parse_identifier(self, text: str) -> Delegation:
        try:
            cid = CID.decode(text)
        except Exception as exc:
            raise DecodeFailureError(f"Not a valid archive identifier: {exc}") from exc
        if cid.codec.name != ARCHIVE_CODEC:
            raise DecodeFailureError(
                f"Identifier codec is {cid.codec.name!r}, expected {ARCHIVE_CODEC!r}."
            )
        if cid.hashfun.name != ARCHIVE_HASH:
            raise DecodeFailureError(
                f"Identifier hash is {cid.hashfun.name!r}, expected {ARCHIVE_HASH!r}; "
                "the archive cannot be recovered from a cryptographic digest."
            )
        return self.extract(cid.raw_digest)

    def extract(self, archive: bytes) -> Delegation:
        """Decode CAR bytes into the root delegation, keeping its blocks.

        The root is normally a ``{"ucan@0.9.1": <CID>}`` variant block; an
        archive whose root is the delegation block itself is read too.

        Raises
        ------
        DecodeFailureError
            If the archive is malformed or the root block is missing or
            undecodable.
        """
        roots, store = read_car(archive)
        root = roots[0]
        data = store.get(root)
        if data is None:
            raise DecodeFailureError(f"Root block {root} is missing from the archive.")

        try:
            variant = dag_cbor.decode(data)
        except Exception as exc:
            raise DecodeFailureError(f"Root block {root} is not valid DAG-CBOR: {exc}") from exc
        if isinstance(variant, dict) and ARCHIVE_VARIANT in variant:
            target = variant[ARCHIVE_VARIANT]
            if not isinstance(target, CID):
                raise DecodeFailureError(f"Archive variant {ARCHIVE_VARIANT!r} is not a link.")
            data = store.get(target)
            if data is None:
                raise DecodeFailureError(f"Delegation block {target} is missing from the archive.")
        return self._block_codec.decode_block(data, blocks=store)


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------

_DEFAULT_CODEC = ArchiveCodec()


def format_delegation(delegation: Delegation) -> str:
    """Encode and format *delegation* in one step."""
    return _DEFAULT_CODEC.format(_DEFAULT_CODEC.encode(delegation))


def parse_delegation(text: str) -> Delegation:
    """Parse an archive identifier with the default codec."""
    return _DEFAULT_CODEC.parse(text)


__all__ = [
    "ARCHIVE_BASE",
    "ARCHIVE_CODEC",
    "ARCHIVE_HASH",
    "ARCHIVE_VARIANT",
    "ArchiveCodec",
    "format_delegation",
    "parse_delegation",
]
