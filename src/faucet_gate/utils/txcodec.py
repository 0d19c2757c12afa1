"""Wire format for single-instruction ledger value transfers.

Transactions use the legacy message layout:

    compact-u16 signature count | signatures (64 bytes each) | message

    message = header (3 bytes) | compact-u16 key count | keys (32 bytes each)
            | recent blockhash (32 bytes) | compact-u16 instruction count
            | instructions

The transaction reference the ledger reports is the base58 encoding of the
fee payer's signature, so it is known before submission.
"""

from __future__ import annotations

import base64
import json
import re
import struct
from dataclasses import dataclass
from typing import Final

import base58
from nacl.signing import SigningKey

ADDRESS_LENGTH_BYTES: Final[int] = 32
SIGNATURE_LENGTH_BYTES: Final[int] = 64
SYSTEM_PROGRAM_ID: Final[bytes] = bytes(32)
SYSTEM_TRANSFER_INSTRUCTION: Final[int] = 2
_ADDRESS_PATTERN: Final = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def decode_address(address: str) -> bytes:
    """Decode a base58 account address into its 32 raw bytes.

    Raises:
        ValueError: If the address is not base58 or does not decode to 32 bytes.
    """
    if not isinstance(address, str) or not _ADDRESS_PATTERN.match(address):
        raise ValueError("Address must be 32-44 base58 characters")
    raw = base58.b58decode(address)
    if len(raw) != ADDRESS_LENGTH_BYTES:
        raise ValueError(f"Address must decode to {ADDRESS_LENGTH_BYTES} bytes, got {len(raw)}")
    return raw


def is_valid_address(address: str) -> bool:
    """Return True if ``address`` is a well-formed account address."""
    try:
        decode_address(address)
    except ValueError:
        return False
    return True


def encode_address(raw: bytes) -> str:
    return base58.b58encode(raw).decode()


def encode_compact_u16(value: int) -> bytes:
    """Encode an integer using the ledger's variable-length compact-u16 format."""
    if not 0 <= value <= 0xFFFF:
        raise ValueError("compact-u16 value out of range")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


@dataclass(frozen=True)
class Keypair:
    """Ed25519 funding credential."""

    signing_key: SigningKey

    @classmethod
    def from_secret(cls, secret: str) -> Keypair:
        """Decode a funding credential.

        Accepts a base58 64-byte secret key (seed followed by public key), a
        base58 32-byte seed, or a JSON array of byte values as written by the
        ledger's command-line wallet.

        Raises:
            ValueError: If the secret cannot be decoded or is inconsistent.
        """
        cleaned = (secret or "").strip()
        if not cleaned:
            raise ValueError("Empty secret key")
        try:
            if cleaned.startswith("["):
                raw = bytes(json.loads(cleaned))
            else:
                raw = base58.b58decode(cleaned)
        except (TypeError, ValueError) as err:
            raise ValueError(f"Undecodable secret key: {err}") from err

        if len(raw) == 64:
            signing_key = SigningKey(raw[:32])
            if bytes(signing_key.verify_key) != raw[32:]:
                raise ValueError("Secret key public half does not match its seed")
        elif len(raw) == 32:
            signing_key = SigningKey(raw)
        else:
            raise ValueError(f"Secret key must be 32 or 64 bytes, got {len(raw)}")
        return cls(signing_key=signing_key)

    @property
    def public_key(self) -> bytes:
        return bytes(self.signing_key.verify_key)

    @property
    def address(self) -> str:
        return encode_address(self.public_key)

    def sign(self, message: bytes) -> bytes:
        return self.signing_key.sign(message).signature


@dataclass(frozen=True)
class SignedTransfer:
    """Signed transaction ready for submission."""

    wire: bytes
    signature: str

    def to_base64(self) -> str:
        return base64.b64encode(self.wire).decode()


def build_transfer_message(
    sender: bytes,
    recipient: bytes,
    lamports: int,
    recent_blockhash: str,
) -> bytes:
    """Serialize a legacy message holding one system-program transfer."""
    if lamports <= 0:
        raise ValueError("Transfer amount must be positive")
    if sender == recipient:
        raise ValueError("Sender and recipient must differ")
    blockhash = base58.b58decode(recent_blockhash)
    if len(blockhash) != 32:
        raise ValueError("Recent blockhash must decode to 32 bytes")

    # 1 required signature, 0 read-only signed, 1 read-only unsigned (the program).
    header = bytes([1, 0, 1])
    keys = [sender, recipient, SYSTEM_PROGRAM_ID]
    data = struct.pack("<IQ", SYSTEM_TRANSFER_INSTRUCTION, lamports)
    instruction = (
        bytes([2])  # program id index
        + encode_compact_u16(2)
        + bytes([0, 1])
        + encode_compact_u16(len(data))
        + data
    )
    return (
        header
        + encode_compact_u16(len(keys))
        + b"".join(keys)
        + blockhash
        + encode_compact_u16(1)
        + instruction
    )


def build_signed_transfer(
    keypair: Keypair,
    recipient_address: str,
    lamports: int,
    recent_blockhash: str,
) -> SignedTransfer:
    """Build and sign a transfer from ``keypair`` to ``recipient_address``."""
    message = build_transfer_message(
        keypair.public_key,
        decode_address(recipient_address),
        lamports,
        recent_blockhash,
    )
    signature = keypair.sign(message)
    wire = encode_compact_u16(1) + signature + message
    return SignedTransfer(wire=wire, signature=encode_address(signature))
