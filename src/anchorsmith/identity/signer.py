"""Signer: the process identity that binds submissions to a wallet.

The signer is built once at startup from a base58-encoded 64-byte secret
key and then handed to every component that needs to sign.  All signing is
deterministic ed25519 (via ``solders``); nothing is mutated between calls.
"""

from __future__ import annotations

import base64
import logging

import base58
from solders.keypair import Keypair
from solders.message import to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from anchorsmith.core.errors import InvalidKeyMaterial

logger = logging.getLogger(__name__)

SECRET_KEY_LENGTH = 64


def _to_bytes(value: bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def encode_base58(value: bytes | str) -> str:
    """Encode bytes (or UTF-8 text) as base58."""
    return base58.b58encode(_to_bytes(value)).decode("ascii")


def decode_base58(value: str) -> bytes:
    """Decode a base58 string.  Raises ``ValueError`` on invalid characters."""
    return base58.b58decode(value.strip())


class Signer:
    """Ed25519 identity used to sign artifacts and transactions.

    Parameters
    ----------
    secret_key:
        The 64-byte secret key (32-byte seed followed by the public key),
        either raw or base58 encoded.
    """

    def __init__(self, secret_key: str | bytes) -> None:
        if isinstance(secret_key, str):
            try:
                raw = decode_base58(secret_key)
            except ValueError as exc:
                raise InvalidKeyMaterial(f"Secret key is not valid base58: {exc}") from exc
        else:
            raw = bytes(secret_key)

        if len(raw) != SECRET_KEY_LENGTH:
            raise InvalidKeyMaterial(
                f"Secret key must decode to exactly {SECRET_KEY_LENGTH} bytes, got {len(raw)}"
            )
        try:
            self._keypair = Keypair.from_bytes(raw)
        except ValueError as exc:
            raise InvalidKeyMaterial(f"Secret key is not a valid ed25519 keypair: {exc}") from exc

        logger.debug("Signer ready for %s.", self.address)

    @classmethod
    def generate(cls) -> Signer:
        """Return a signer for a fresh random keypair."""
        return cls(bytes(Keypair()))

    # -- identity -----------------------------------------------------------

    @property
    def public_key(self) -> Pubkey:
        return self._keypair.pubkey()

    @property
    def address(self) -> str:
        """Base58 public key, as shown to the service."""
        return str(self._keypair.pubkey())

    # -- raw payloads -------------------------------------------------------

    def sign(self, payload: bytes | str) -> bytes:
        """Return the 64-byte signature over *payload* (text is UTF-8 encoded)."""
        return bytes(self._keypair.sign_message(_to_bytes(payload)))

    def sign_encoded(self, payload: bytes | str) -> str:
        """Return the base58 signature over *payload*."""
        return encode_base58(self.sign(payload))

    def verify(self, payload: bytes | str, signature: bytes | str) -> bool:
        """Check *signature* (raw or base58) against this identity.

        Malformed signatures verify as ``False``.
        """
        try:
            raw = decode_base58(signature) if isinstance(signature, str) else bytes(signature)
        except ValueError:
            return False
        if len(raw) != 64:
            return False
        return Signature.from_bytes(raw).verify(self.public_key, _to_bytes(payload))

    # -- transactions -------------------------------------------------------

    def sign_transaction(self, transaction: VersionedTransaction) -> VersionedTransaction:
        """Fill this identity's signature slot in *transaction*.

        Every other slot is carried over untouched, so partially signed
        transactions from other parties stay valid.  Raises ``ValueError``
        if this identity is not one of the message's required signers.
        """
        message = transaction.message
        required = message.header.num_required_signatures
        signer_keys = list(message.account_keys[:required])
        try:
            slot = signer_keys.index(self.public_key)
        except ValueError:
            raise ValueError(
                f"{self.address} is not a required signer of this transaction"
            ) from None

        signatures = list(transaction.signatures)
        if len(signatures) < required:
            signatures += [Signature.default()] * (required - len(signatures))
        signatures[slot] = self._keypair.sign_message(to_bytes_versioned(message))
        return VersionedTransaction.populate(message, signatures)

    def sign_and_encode_transaction(self, transaction: VersionedTransaction) -> str:
        """Sign *transaction* and return its wire form as base64."""
        signed = self.sign_transaction(transaction)
        return base64.b64encode(bytes(signed)).decode("ascii")

    # -- encoding helpers ---------------------------------------------------

    @staticmethod
    def encode(value: bytes | str) -> str:
        return encode_base58(value)

    @staticmethod
    def decode(value: str) -> bytes:
        return decode_base58(value)

    def __repr__(self) -> str:
        return f"Signer(address={self.address!r})"
