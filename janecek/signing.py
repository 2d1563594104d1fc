"""
Ed25519 identities and signed transactions.

An identity's address is its raw 32-byte Ed25519 public key. A Transaction
carries one or more instructions and the signatures over its canonical
message; the host treats an account as a signer of the invocation exactly
when the transaction holds a valid signature from that address.

Message layout (little-endian):

    nonce:u64  count:u16  { program_id[32] accounts:u16 { address[32] flags:u8 }
                            data_len:u32 data }*

flags bit 0 = writable. Signer flags are not part of the message; they are
derived from signatures on the host side.

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from __future__ import annotations

import base64
import struct
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Set, Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from janecek.address import Address
from janecek.instruction import AccountMeta, Instruction


SIGNATURE_LENGTH = 64


class SignatureError(Exception):
    """A transaction signature is malformed or does not verify."""
    pass


def b64url_encode(b: bytes) -> str:
    return base64.urlsafe_b64encode(b).decode("ascii").rstrip("=")


def b64url_decode(s: str) -> bytes:
    pad = "=" * ((4 - (len(s) % 4)) % 4)
    return base64.urlsafe_b64decode((s + pad).encode("ascii"))


class Keypair:
    """An Ed25519 signing key and the address derived from it."""

    def __init__(self, private_key: Ed25519PrivateKey):
        self._private_key = private_key
        raw = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        self.address = Address(raw)

    @classmethod
    def generate(cls) -> "Keypair":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "Keypair":
        """Deterministic keypair from a 32-byte secret seed."""
        if len(seed) != 32:
            raise ValueError(f"Ed25519 seed must be 32 bytes, got {len(seed)}")
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    @classmethod
    def from_jwk(cls, jwk: Dict[str, str]) -> "Keypair":
        """Load from a private OKP/Ed25519 JWK ({"kty","crv","x","d"})."""
        if jwk.get("kty") != "OKP" or jwk.get("crv") != "Ed25519":
            raise ValueError("Only OKP/Ed25519 JWK is supported")
        if "d" not in jwk:
            raise ValueError("JWK is missing private key material 'd'")
        keypair = cls.from_seed(b64url_decode(jwk["d"]))
        if "x" in jwk and b64url_decode(jwk["x"]) != keypair.address.data:
            raise ValueError("JWK public key does not match private key")
        return keypair

    def secret_bytes(self) -> bytes:
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def to_jwk(self) -> Dict[str, str]:
        return {
            "kty": "OKP",
            "crv": "Ed25519",
            "x": b64url_encode(self.address.data),
            "d": b64url_encode(self.secret_bytes()),
        }

    def sign(self, message: bytes) -> bytes:
        return self._private_key.sign(message)

    def __repr__(self) -> str:
        return f"Keypair({self.address})"


def verify_signature(address: Address, message: bytes, signature: bytes) -> bool:
    if len(signature) != SIGNATURE_LENGTH:
        return False
    try:
        Ed25519PublicKey.from_public_bytes(address.data).verify(signature, message)
    except (InvalidSignature, ValueError):
        return False
    return True


# =============================================================================
# TRANSACTIONS
# =============================================================================

def _serialize_instruction(instruction: Instruction) -> bytes:
    parts = [instruction.program_id.data, struct.pack("<H", len(instruction.accounts))]
    for meta in instruction.accounts:
        parts.append(meta.address.data)
        parts.append(struct.pack("<B", 1 if meta.is_writable else 0))
    parts.append(struct.pack("<I", len(instruction.data)))
    parts.append(instruction.data)
    return b"".join(parts)


@dataclass
class Transaction:
    instructions: List[Instruction]
    nonce: int = 0
    signatures: Dict[Address, bytes] = field(default_factory=dict)

    def message(self) -> bytes:
        header = struct.pack("<QH", self.nonce, len(self.instructions))
        return header + b"".join(_serialize_instruction(ix) for ix in self.instructions)

    def sign(self, *keypairs: Keypair) -> "Transaction":
        message = self.message()
        for keypair in keypairs:
            self.signatures[keypair.address] = keypair.sign(message)
        return self

    def add_signature(self, address: Address, signature: bytes) -> None:
        if len(signature) != SIGNATURE_LENGTH:
            raise SignatureError(f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(signature)}")
        self.signatures[address] = signature

    def verify(self) -> Set[Address]:
        """Return the set of verified signers; any bad signature rejects the whole transaction."""
        message = self.message()
        signers: Set[Address] = set()
        for address, signature in self.signatures.items():
            if not verify_signature(address, message, signature):
                raise SignatureError(f"Invalid signature for {address}")
            signers.add(address)
        return signers


def apply_signers(instruction: Instruction, signers: Iterable[Address]) -> Tuple[AccountMeta, ...]:
    """Rebuild the account list with is_signer taken from verified signatures."""
    verified = set(signers)
    return tuple(
        replace(meta, is_signer=meta.address in verified)
        for meta in instruction.accounts
    )


def build_transaction(
    instructions: Iterable[Instruction],
    signers: Iterable[Keypair],
    nonce: Optional[int] = None,
) -> Transaction:
    tx = Transaction(list(instructions), nonce=nonce or 0)
    return tx.sign(*signers)
