"""Tests for mkdelegation.codec.block and mkdelegation.codec.car."""
from __future__ import annotations

import base64
import json

import dag_cbor
import pytest
from multiformats import CID, varint

from mkdelegation.blockstore import BlockStore
from mkdelegation.codec.block import (
    DagCborBlockCodec,
    decode_principal,
    decode_signature,
    encode_principal,
    encode_signature,
    link_for_block,
)
from mkdelegation.codec.car import read_car, write_car
from mkdelegation.errors import DecodeFailureError
from mkdelegation.principal.did import DID
from mkdelegation.principal.signer import Ed25519Signer
from mkdelegation.ucan.capability import Capability
from mkdelegation.ucan.delegation import Delegation, Link


@pytest.fixture()
def codec() -> DagCborBlockCodec:
    return DagCborBlockCodec()


@pytest.fixture()
def delegation() -> Delegation:
    return Delegation(
        issuer=DID("did:web:indexer.example.com"),
        audience=DID("did:web:up.example.com"),
        capabilities=(
            Capability("assert/equals", "did:web:indexer.example.com"),
            Capability("assert/index", "did:web:indexer.example.com", {"limit": 5}),
        ),
        signature=bytes(range(64)),
        expiration=2_000_000_000,
        nonce="abc",
        facts=({"note": "hello", "raw": b"\x01\x02"},),
    )


def _jwt_part(segment: bytes) -> dict:
    padded = segment + b"=" * (-len(segment) % 4)
    return json.loads(base64.urlsafe_b64decode(padded))


# ---------------------------------------------------------------------------
# Block encoding
# ---------------------------------------------------------------------------


class TestBlockEncoding:
    def test_encoding_is_deterministic(
        self, codec: DagCborBlockCodec, delegation: Delegation
    ) -> None:
        assert codec.encode_block(delegation) == codec.encode_block(delegation)

    def test_block_is_dag_cbor_map(self, codec: DagCborBlockCodec, delegation: Delegation) -> None:
        payload = dag_cbor.decode(codec.encode_block(delegation))
        assert set(payload) == {"v", "iss", "aud", "att", "exp", "fct", "prf", "nnc", "s"}
        assert payload["v"] == "0.9.1"
        assert payload["att"][1] == {
            "can": "assert/index",
            "with": "did:web:indexer.example.com",
            "nb": {"limit": 5},
        }
        assert payload["fct"] == [{"note": "hello", "raw": b"\x01\x02"}]

    def test_web_principal_is_prefixed_utf8(
        self, codec: DagCborBlockCodec, delegation: Delegation
    ) -> None:
        payload = dag_cbor.decode(codec.encode_block(delegation))
        assert payload["iss"] == b"\x9d\x1a" + b"did:web:indexer.example.com"

    def test_key_principal_is_raw_public_key(self) -> None:
        signer = Ed25519Signer.generate()
        data = encode_principal(signer.did())
        assert data == b"\xed\x01" + signer.public_key_bytes
        assert decode_principal(data) == signer.did()

    def test_signature_is_eddsa_varsig(
        self, codec: DagCborBlockCodec, delegation: Delegation
    ) -> None:
        payload = dag_cbor.decode(codec.encode_block(delegation))
        assert payload["s"] == varint.encode(0xD0ED) + b"\x40" + bytes(range(64))

    def test_proofs_written_as_links(
        self, codec: DagCborBlockCodec, delegation: Delegation
    ) -> None:
        child = Delegation(
            issuer=DID("did:web:up.example.com"),
            audience=DID("did:web:client.example.com"),
            capabilities=(Capability("assert/index", "did:web:indexer.example.com"),),
            proofs=(Link(delegation.link()),),
        )
        payload = dag_cbor.decode(codec.encode_block(child))
        assert payload["prf"] == [delegation.link()]

    def test_optional_fields_omitted_when_unset(self, codec: DagCborBlockCodec) -> None:
        minimal = Delegation(
            issuer=DID("did:web:a.example"),
            audience=DID("did:web:b.example"),
            capabilities=(Capability("claim/cache", "did:web:a.example"),),
        )
        payload = dag_cbor.decode(codec.encode_block(minimal))
        assert "nnc" not in payload
        assert "nbf" not in payload
        assert payload["exp"] is None
        assert payload["fct"] == []

    def test_link_is_dag_cbor_sha256(
        self, codec: DagCborBlockCodec, delegation: Delegation
    ) -> None:
        cid = codec.link(delegation)
        assert cid.version == 1
        assert cid.codec.name == "dag-cbor"
        assert cid.hashfun.name == "sha2-256"
        assert cid == delegation.link()


# ---------------------------------------------------------------------------
# Signable bytes
# ---------------------------------------------------------------------------


class TestSignableBytes:
    def test_jwt_header(self, codec: DagCborBlockCodec, delegation: Delegation) -> None:
        header, _ = codec.signable_bytes(delegation).split(b".")
        assert _jwt_part(header) == {"alg": "EdDSA", "typ": "JWT", "ucv": "0.9.1"}

    def test_payload_uses_did_strings(
        self, codec: DagCborBlockCodec, delegation: Delegation
    ) -> None:
        _, body = codec.signable_bytes(delegation).split(b".")
        payload = _jwt_part(body)
        assert "s" not in payload
        assert payload["iss"] == "did:web:indexer.example.com"
        assert payload["aud"] == "did:web:up.example.com"
        assert payload["fct"] == [{"note": "hello", "raw": {"/": {"bytes": "AQI"}}}]

    def test_payload_is_canonical(self, codec: DagCborBlockCodec, delegation: Delegation) -> None:
        _, body = codec.signable_bytes(delegation).split(b".")
        text = base64.urlsafe_b64decode(body + b"=" * (-len(body) % 4)).decode("utf-8")
        assert ", " not in text
        assert list(json.loads(text)) == sorted(json.loads(text))

    def test_independent_of_signature(
        self, codec: DagCborBlockCodec, delegation: Delegation
    ) -> None:
        unsigned = Delegation(
            issuer=delegation.issuer,
            audience=delegation.audience,
            capabilities=delegation.capabilities,
            expiration=delegation.expiration,
            nonce=delegation.nonce,
            facts=delegation.facts,
        )
        assert codec.signable_bytes(unsigned) == codec.signable_bytes(delegation)

    def test_empty_facts_omitted(self, codec: DagCborBlockCodec) -> None:
        minimal = Delegation(
            issuer=DID("did:web:a.example"),
            audience=DID("did:web:b.example"),
            capabilities=(Capability("claim/cache", "did:web:a.example"),),
        )
        _, body = codec.signable_bytes(minimal).split(b".")
        payload = _jwt_part(body)
        assert "fct" not in payload
        assert "nnc" not in payload
        assert payload["prf"] == []

    def test_slash_only_map_rejected(self, codec: DagCborBlockCodec) -> None:
        d = Delegation(
            issuer=DID("did:web:a.example"),
            audience=DID("did:web:b.example"),
            capabilities=(Capability("claim/cache", "did:web:a.example"),),
            facts=({"/": "hello"},),
        )
        with pytest.raises(ValueError):
            codec.signable_bytes(d)


# ---------------------------------------------------------------------------
# Block decoding
# ---------------------------------------------------------------------------


class TestBlockDecoding:
    def test_round_trip(self, codec: DagCborBlockCodec, delegation: Delegation) -> None:
        assert codec.decode_block(codec.encode_block(delegation)) == delegation

    def test_key_principals_round_trip(self, codec: DagCborBlockCodec) -> None:
        issuer, audience = Ed25519Signer.generate(), Ed25519Signer.generate()
        d = Delegation(
            issuer=issuer.did(),
            audience=audience.did(),
            capabilities=(Capability("claim/cache", str(issuer.did())),),
            signature=b"\x07" * 64,
        )
        decoded = codec.decode_block(codec.encode_block(d))
        assert decoded.issuer == issuer.did()
        assert decoded.audience == audience.did()

    def test_zero_expiration_survives(self, codec: DagCborBlockCodec) -> None:
        d = Delegation(
            issuer=DID("did:web:a.example"),
            audience=DID("did:web:b.example"),
            capabilities=(Capability("claim/cache", "did:web:a.example"),),
            expiration=0,
        )
        assert codec.decode_block(codec.encode_block(d)).expiration == 0

    def test_slash_key_fact_survives(self, codec: DagCborBlockCodec) -> None:
        d = Delegation(
            issuer=DID("did:web:a.example"),
            audience=DID("did:web:b.example"),
            capabilities=(Capability("claim/cache", "did:web:a.example"),),
            facts=({"/": "hello"},),
        )
        assert codec.decode_block(codec.encode_block(d)).facts == ({"/": "hello"},)

    def test_proofs_decode_as_links(
        self, codec: DagCborBlockCodec, delegation: Delegation
    ) -> None:
        child = Delegation(
            issuer=DID("did:web:up.example.com"),
            audience=DID("did:web:client.example.com"),
            capabilities=(Capability("assert/index", "did:web:indexer.example.com"),),
            proofs=(Link(delegation.link()),),
        )
        decoded = codec.decode_block(codec.encode_block(child))
        assert decoded.proofs == (Link(delegation.link()),)

    def test_attaches_given_blocks(
        self, codec: DagCborBlockCodec, delegation: Delegation
    ) -> None:
        data = codec.encode_block(delegation)
        store = BlockStore([(link_for_block(data), data)])
        assert codec.decode_block(data, blocks=store).blocks is store

    @pytest.mark.parametrize(
        "data",
        [
            b"",
            b"not cbor",
            b"\xff\xfe",
            dag_cbor.encode([1, 2]),
            dag_cbor.encode({"v": "0.9.1"}),
        ],
    )
    def test_malformed_blocks_rejected(self, codec: DagCborBlockCodec, data: bytes) -> None:
        with pytest.raises(DecodeFailureError):
            codec.decode_block(data)

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("att", []),
            ("iss", "did:web:indexer.example.com"),
            ("s", b"\xed\xa1\x03\x40\x01"),
            ("prf", ["bafy-not-a-link"]),
        ],
    )
    def test_invalid_field_rejected(
        self, codec: DagCborBlockCodec, delegation: Delegation, field: str, value: object
    ) -> None:
        payload = dag_cbor.decode(codec.encode_block(delegation))
        payload[field] = value
        with pytest.raises(DecodeFailureError):
            codec.decode_block(dag_cbor.encode(payload))


class TestSignatureEnvelope:
    def test_round_trip(self) -> None:
        raw = b"\x42" * 64
        assert decode_signature(encode_signature(raw)) == raw

    def test_length_mismatch_rejected(self) -> None:
        with pytest.raises(DecodeFailureError):
            decode_signature(encode_signature(b"\x42" * 64)[:-1])

    def test_non_bytes_rejected(self) -> None:
        with pytest.raises(DecodeFailureError):
            decode_signature("signature")


# ---------------------------------------------------------------------------
# CAR framing
# ---------------------------------------------------------------------------


class TestCar:
    def test_round_trip_preserves_roots_and_blocks(self) -> None:
        first, second = dag_cbor.encode({"a": 1}), dag_cbor.encode({"b": 2})
        blocks = [(link_for_block(first), first), (link_for_block(second), second)]
        roots, store = read_car(write_car([blocks[0][0]], blocks))
        assert roots == [blocks[0][0]]
        assert list(store) == [blocks[0][0], blocks[1][0]]
        assert store[blocks[1][0]] == second

    def test_header_is_dag_cbor(self) -> None:
        data = dag_cbor.encode({"a": 1})
        cid = link_for_block(data)
        archive = write_car([cid], [(cid, data)])
        header_len, size, _ = varint.decode_raw(archive)
        header = dag_cbor.decode(archive[size:size + header_len])
        assert header == {"roots": [cid], "version": 1}

    def test_store_lookup_accepts_strings(self) -> None:
        data = dag_cbor.encode({"a": 1})
        cid = link_for_block(data)
        _, store = read_car(write_car([cid], [(cid, data)]))
        assert str(cid) in store
        assert store[str(cid)] == data

    def test_archive_without_root_rejected(self) -> None:
        with pytest.raises(DecodeFailureError):
            read_car(write_car([], []))

    def test_truncated_archive_rejected(self) -> None:
        data = dag_cbor.encode({"a": 1})
        cid = link_for_block(data)
        archive = write_car([cid], [(cid, data)])
        with pytest.raises(DecodeFailureError):
            read_car(archive[:-3])

    def test_non_link_root_rejected(self) -> None:
        header = dag_cbor.encode({"roots": ["not-a-cid"], "version": 1})
        with pytest.raises(DecodeFailureError):
            read_car(varint.encode(len(header)) + header)

    @pytest.mark.parametrize("archive", [b"", b"\x05abc", b"\x02{}", b"\x01\xa0"])
    def test_garbage_rejected(self, archive: bytes) -> None:
        with pytest.raises(DecodeFailureError):
            read_car(archive)

    def test_blockstore_merge(self) -> None:
        a, b = dag_cbor.encode({"a": 1}), dag_cbor.encode({"b": 2})
        left = BlockStore([(link_for_block(a), a)])
        right = BlockStore([(link_for_block(b), b)])
        merged = left.merge(right)
        assert len(merged) == 2
        assert isinstance(next(iter(merged)), CID)
