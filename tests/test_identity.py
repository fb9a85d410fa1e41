"""Tests for the Signer identity."""

from __future__ import annotations

import base64

import base58
import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import MessageV0, to_bytes_versioned
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from anchorsmith.core.errors import InvalidKeyMaterial
from anchorsmith.identity.signer import Signer, decode_base58, encode_base58


def _two_signer_transaction(payer: Keypair, other: Keypair) -> VersionedTransaction:
    instructions = [
        transfer(TransferParams(from_pubkey=payer.pubkey(), to_pubkey=other.pubkey(), lamports=1)),
        transfer(TransferParams(from_pubkey=other.pubkey(), to_pubkey=payer.pubkey(), lamports=1)),
    ]
    message = MessageV0.try_compile(payer.pubkey(), instructions, [], Hash.default())
    return VersionedTransaction.populate(message, [Signature.default(), Signature.default()])


class TestConstruction:
    def test_from_raw_bytes(self, keypair: Keypair) -> None:
        signer = Signer(bytes(keypair))
        assert signer.address == str(keypair.pubkey())
        assert signer.public_key == keypair.pubkey()

    def test_from_base58(self, keypair: Keypair) -> None:
        encoded = base58.b58encode(bytes(keypair)).decode()
        assert Signer(encoded).address == str(keypair.pubkey())

    @pytest.mark.parametrize("length", [0, 32, 63, 65, 128])
    def test_wrong_length_rejected(self, keypair: Keypair, length: int) -> None:
        raw = (bytes(keypair) * 2)[:length]
        with pytest.raises(InvalidKeyMaterial):
            Signer(raw)
        with pytest.raises(InvalidKeyMaterial):
            Signer(base58.b58encode(raw).decode())

    def test_invalid_base58_rejected(self) -> None:
        with pytest.raises(InvalidKeyMaterial):
            Signer("0OIl-not-base58")

    def test_invalid_key_material_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            Signer(b"short")

    def test_generate(self) -> None:
        a, b = Signer.generate(), Signer.generate()
        assert a.address != b.address


class TestSigning:
    def test_sign_is_deterministic(self, signer: Signer) -> None:
        assert signer.sign(b"payload") == signer.sign(b"payload")
        assert len(signer.sign(b"payload")) == 64

    def test_signature_verifies_with_public_key(self, signer: Signer, keypair: Keypair) -> None:
        sig = Signature.from_bytes(signer.sign(b"artifact bytes"))
        assert sig.verify(keypair.pubkey(), b"artifact bytes")
        assert not sig.verify(keypair.pubkey(), b"other bytes")

    def test_text_is_signed_as_utf8(self, signer: Signer) -> None:
        assert signer.sign("héllo") == signer.sign("héllo".encode("utf-8"))

    def test_sign_encoded_is_base58(self, signer: Signer) -> None:
        encoded = signer.sign_encoded(b"payload")
        assert base58.b58decode(encoded) == signer.sign(b"payload")

    def test_verify(self, signer: Signer) -> None:
        assert signer.verify(b"payload", signer.sign_encoded(b"payload"))
        assert signer.verify(b"payload", signer.sign(b"payload"))
        assert not signer.verify(b"tampered", signer.sign(b"payload"))
        assert not signer.verify(b"payload", b"\x00" * 10)

    def test_verify_rejects_malformed_base58(self, signer: Signer) -> None:
        assert signer.verify(b"payload", "0OIl") is False
        assert signer.verify(b"payload", "short") is False

    def test_repr_shows_address(self, signer: Signer) -> None:
        assert signer.address in repr(signer)


class TestTransactions:
    def test_fills_only_own_slot(self, keypair: Keypair) -> None:
        payer = Keypair()
        tx = _two_signer_transaction(payer, keypair)
        signed = Signer(bytes(keypair)).sign_transaction(tx)

        message_bytes = to_bytes_versioned(signed.message)
        assert signed.signatures[0] == Signature.default()
        assert signed.signatures[1].verify(keypair.pubkey(), message_bytes)

    def test_preserves_existing_signatures(self, keypair: Keypair) -> None:
        payer = Keypair()
        tx = _two_signer_transaction(payer, keypair)
        partly = Signer(bytes(payer)).sign_transaction(tx)
        fully = Signer(bytes(keypair)).sign_transaction(partly)

        assert fully.signatures[0] == partly.signatures[0]
        expected = VersionedTransaction(tx.message, [payer, keypair])
        assert bytes(fully) == bytes(expected)

    def test_not_a_signer(self, signer: Signer) -> None:
        tx = _two_signer_transaction(Keypair(), Keypair())
        with pytest.raises(ValueError, match="not a required signer"):
            signer.sign_transaction(tx)

    def test_sign_and_encode(self, keypair: Keypair) -> None:
        tx = _two_signer_transaction(keypair, Keypair())
        encoded = Signer(bytes(keypair)).sign_and_encode_transaction(tx)
        decoded = VersionedTransaction.from_bytes(base64.b64decode(encoded))
        assert decoded.signatures[0].verify(keypair.pubkey(), to_bytes_versioned(decoded.message))


class TestEncoding:
    def test_known_vector(self) -> None:
        assert encode_base58(b"hello") == "Cn8eVZg"
        assert decode_base58("Cn8eVZg") == b"hello"

    def test_text_input(self) -> None:
        assert encode_base58("hello") == "Cn8eVZg"

    def test_static_helpers(self, signer: Signer) -> None:
        assert signer.decode(signer.encode(b"\x00\x01\xff")) == b"\x00\x01\xff"

    def test_decode_rejects_invalid_alphabet(self) -> None:
        with pytest.raises(ValueError):
            decode_base58("0OIl")
