"""DagCborBlockCodec — one delegation <-> one DAG-CBOR UCAN block.

Blocks use the IPLD layout shared by the ucanto implementations::

    {
      "v": "0.9.1",
      "iss": <principal bytes>, "aud": <principal bytes>,
      "att": [{"can": ..., "with": ..., "nb": {...}}],
      "exp": <int | null>, "fct": [...], "prf": [<CID>],
      "nnc": <str, optional>, "nbf": <int, optional>,
      "s": <varsig bytes>
    }

Principals are binary: a ``did:key`` is its multicodec-prefixed public key,
any other DID is ``varint(0x0d1d)`` followed by the UTF-8 DID string. The
signature is a varsig: ``varint(code) varint(len) raw``.

The bytes that get signed are not the block itself but the JWT form of
the payload, ``base64url(header) "." base64url(payload)``, where both
parts are canonical DAG-JSON.

Proofs are always written as links; decoding therefore yields
:class:`~mkdelegation.ucan.delegation.Link` proofs only.
"""
from __future__ import annotations

import base64
import json
from typing import Any

import dag_cbor
from multiformats import CID, multibase, multihash, varint

from mkdelegation.blockstore import EMPTY_BLOCKSTORE, BlockStore
from mkdelegation.errors import DecodeFailureError
from mkdelegation.principal.did import DID
from mkdelegation.ucan.capability import Capability
from mkdelegation.ucan.delegation import Delegation, Link, ProofRef

DAG_CBOR_CODEC: str = "dag-cbor"
BLOCK_HASH: str = "sha2-256"

# varsig code for EdDSA signatures
EDDSA_SIGNATURE_CODE: int = 0xD0ED
SIGNATURE_ALGORITHM: str = "EdDSA"

_DID_CORE_PREFIX: bytes = varint.encode(0x0D1D)


class DagCborBlockCodec:
    """Encode and decode single delegation blocks.

    Encoding covers the delegation's own fields only; proof delegations are
    referenced by CID and encoded separately by the archive codec.
    """

    def encode_block(self, delegation: Delegation) -> bytes:
        """Return the canonical DAG-CBOR block bytes for *delegation*."""
        payload: dict[str, Any] = {
            "v": delegation.version,
            "iss": encode_principal(delegation.issuer),
            "aud": encode_principal(delegation.audience),
            "att": [capability.to_dict() for capability in delegation.capabilities],
            "exp": delegation.expiration,
            "fct": [dict(fact) for fact in delegation.facts],
            "prf": [proof.cid for proof in delegation.proofs],
            "s": encode_signature(delegation.signature),
        }
        if delegation.not_before:
            payload["nbf"] = delegation.not_before
        if delegation.nonce is not None:
            payload["nnc"] = delegation.nonce
        return dag_cbor.encode(payload)

    def signable_bytes(self, delegation: Delegation) -> bytes:
        """Return the JWT-form bytes covered by the signature.

        Raises
        ------
        ValueError
            If a fact or caveat holds a map whose only key is ``"/"``; DAG-JSON
            reserves that shape for links and bytes.
        """
        header = _dumps({"alg": SIGNATURE_ALGORITHM, "typ": "JWT", "ucv": delegation.version})
        payload: dict[str, Any] = {
            "iss": str(delegation.issuer),
            "aud": str(delegation.audience),
            "att": [capability.to_dict() for capability in delegation.capabilities],
            "exp": delegation.expiration,
            "prf": [str(proof.cid) for proof in delegation.proofs],
        }
        if delegation.facts:
            payload["fct"] = [dict(fact) for fact in delegation.facts]
        if delegation.nonce:
            payload["nnc"] = delegation.nonce
        if delegation.not_before:
            payload["nbf"] = delegation.not_before
        return f"{_b64url(header)}.{_b64url(_dumps(payload))}".encode("ascii")

    def link(self, delegation: Delegation) -> CID:
        """Return the CID of *delegation*'s block."""
        return link_for_block(self.encode_block(delegation))

    def decode_block(self, data: bytes, blocks: BlockStore = EMPTY_BLOCKSTORE) -> Delegation:
        """Rebuild a delegation from block bytes.

        Parameters
        ----------
        data:
            Block bytes as produced by :meth:`encode_block`.
        blocks:
            Store attached to the decoded delegation so its link proofs can
            be resolved later.

        Raises
        ------
        DecodeFailureError
            If the bytes are not valid DAG-CBOR or required fields are
            missing or mistyped.
        """
        try:
            payload = dag_cbor.decode(bytes(data))
        except Exception as exc:
            raise DecodeFailureError(f"Block is not valid DAG-CBOR: {exc}") from exc
        if not isinstance(payload, dict):
            raise DecodeFailureError("Block does not contain a delegation map.")

        try:
            capabilities = tuple(
                Capability(
                    ability=str(entry["can"]),
                    resource=str(entry["with"]),
                    caveats=dict(entry.get("nb") or {}),
                )
                for entry in payload["att"]
            )
            proofs: list[ProofRef] = []
            for proof in payload.get("prf") or []:
                if not isinstance(proof, CID):
                    raise DecodeFailureError(f"Proof {proof!r} is not a link.")
                proofs.append(Link(proof))
            expiration = payload.get("exp")
            return Delegation(
                issuer=decode_principal(payload["iss"]),
                audience=decode_principal(payload["aud"]),
                capabilities=capabilities,
                signature=decode_signature(payload["s"]),
                version=str(payload["v"]),
                expiration=int(expiration) if expiration is not None else None,
                not_before=int(payload.get("nbf") or 0),
                nonce=str(payload["nnc"]) if payload.get("nnc") is not None else None,
                facts=tuple(dict(f) for f in payload.get("fct") or []),
                proofs=tuple(proofs),
                blocks=blocks,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise DecodeFailureError(f"Block is not a valid delegation: {exc}") from exc


# ---------------------------------------------------------------------------
# Principals and signatures
# ---------------------------------------------------------------------------


def encode_principal(did: DID) -> bytes:
    """Return the binary form of *did* used in UCAN blocks."""
    value = str(did)
    if value.startswith("did:key:"):
        return bytes(multibase.decode(value[len("did:key:"):]))
    return _DID_CORE_PREFIX + value.encode("utf-8")


def decode_principal(data: Any) -> DID:
    """Inverse of :func:`encode_principal`."""
    if not isinstance(data, bytes):
        raise DecodeFailureError(f"Principal {data!r} is not a bytes value.")
    if data.startswith(_DID_CORE_PREFIX):
        return DID(data[len(_DID_CORE_PREFIX):].decode("utf-8"))
    return DID(f"did:key:{multibase.encode(data, 'base58btc')}")


def encode_signature(raw: bytes, code: int = EDDSA_SIGNATURE_CODE) -> bytes:
    """Wrap a raw signature as a varsig."""
    return varint.encode(code) + varint.encode(len(raw)) + bytes(raw)


def decode_signature(data: Any) -> bytes:
    """Return the raw signature carried by varsig *data*."""
    if not isinstance(data, bytes):
        raise DecodeFailureError("Signature is not a bytes value.")
    try:
        _code, code_len, _ = varint.decode_raw(data)
        size, size_len, _ = varint.decode_raw(data[code_len:])
    except Exception as exc:
        raise DecodeFailureError(f"Signature is not a varsig: {exc}") from exc
    raw = data[code_len + size_len:]
    if len(raw) != size:
        raise DecodeFailureError(
            f"Signature declares {size} bytes but carries {len(raw)}."
        )
    return raw


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def link_for_block(data: bytes) -> CID:
    """Return the CIDv1 (dag-cbor, sha2-256) addressing *data*."""
    return CID("base32", 1, DAG_CBOR_CODEC, multihash.digest(data, BLOCK_HASH))


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _dumps(payload: dict[str, Any]) -> bytes:
    return json.dumps(
        _to_dag_json(payload),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def _to_dag_json(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        encoded = base64.b64encode(bytes(value)).decode("ascii").rstrip("=")
        return {"/": {"bytes": encoded}}
    if isinstance(value, CID):
        return {"/": value.encode("base32")}
    if isinstance(value, dict):
        if set(value) == {"/"}:
            raise ValueError(
                f"Map {value!r} has '/' as its only key, which DAG-JSON reserves "
                "for links and bytes."
            )
        return {str(k): _to_dag_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_dag_json(v) for v in value]
    return value


__all__ = [
    "BLOCK_HASH",
    "DAG_CBOR_CODEC",
    "DagCborBlockCodec",
    "decode_principal",
    "decode_signature",
    "encode_principal",
    "encode_signature",
    "link_for_block",
]
