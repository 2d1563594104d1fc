"""
Deterministic record address derivation.

Every record lives at an address computed from a namespace tag, seed bytes
and the program id. A derived address must never be a valid ed25519 public
key: otherwise somebody could hold the private key for a record location and
sign on its behalf. The disambiguation byte is the extra trailing seed that
pushes the digest off the curve.

    address = SHA256(seed_1 || ... || seed_n || disambig || program_id || MARKER)

find_program_address() walks disambiguation bytes from 255 down to 0 and
returns the first candidate that lands off the curve, so the result is a pure
function of its inputs.

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple, Union

from janecek.errors import InvalidSeeds, SeedTooLong


ADDRESS_LENGTH = 32
MAX_SEED_LENGTH = 32
MAX_SEEDS = 16
PDA_MARKER = b"ProgramDerivedAddress"

# Base58 (Bitcoin alphabet)
B58_ALPHABET = b"123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
B58_MAP = {c: i for i, c in enumerate(B58_ALPHABET)}


def b58decode(s: Union[str, bytes]) -> bytes:
    if isinstance(s, str):
        s_bytes = s.encode("ascii")
    else:
        s_bytes = s
    num = 0
    for c in s_bytes:
        if c not in B58_MAP:
            raise ValueError("Invalid base58 character")
        num = num * 58 + B58_MAP[c]
    n_pad = 0
    for c in s_bytes:
        if c == B58_ALPHABET[0]:
            n_pad += 1
        else:
            break
    full = num.to_bytes((num.bit_length() + 7) // 8, "big") if num else b""
    return b"\x00" * n_pad + full


def b58encode(b: bytes) -> str:
    n_pad = 0
    for c in b:
        if c == 0:
            n_pad += 1
        else:
            break
    num = int.from_bytes(b, "big")
    out = bytearray()
    while num > 0:
        num, rem = divmod(num, 58)
        out.append(B58_ALPHABET[rem])
    out.extend(B58_ALPHABET[0] for _ in range(n_pad))
    out.reverse()
    return out.decode("ascii")


# =============================================================================
# ADDRESS VALUE TYPE
# =============================================================================

@dataclass(frozen=True, order=True)
class Address:
    """
    32-byte record or identity address.

    Text form is base58, matching how ledger identities are usually shown.
    """
    data: bytes

    def __post_init__(self):
        if not isinstance(self.data, (bytes, bytearray)):
            raise TypeError(f"Address data must be bytes, got {type(self.data).__name__}")
        if len(self.data) != ADDRESS_LENGTH:
            raise ValueError(f"Address must be exactly {ADDRESS_LENGTH} bytes, got {len(self.data)}")
        object.__setattr__(self, "data", bytes(self.data))

    @classmethod
    def from_base58(cls, text: str) -> "Address":
        return cls(b58decode(text))

    @classmethod
    def zero(cls) -> "Address":
        """The system-reserved id (all zero bytes)."""
        return cls(b"\x00" * ADDRESS_LENGTH)

    def to_base58(self) -> str:
        return b58encode(self.data)

    def is_on_curve(self) -> bool:
        return is_on_curve(self.data)

    def __bytes__(self) -> bytes:
        return self.data

    def __str__(self) -> str:
        return self.to_base58()

    def __repr__(self) -> str:
        return f"Address({self.to_base58()})"


SYSTEM_ID = Address.zero()

SeedLike = Union[bytes, bytearray, str, Address]


# =============================================================================
# CURVE CHECK
# =============================================================================

# ed25519: -x^2 + y^2 = 1 + d x^2 y^2 over GF(2^255 - 19)
_P = 2 ** 255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P


def is_on_curve(data: bytes) -> bool:
    """
    Return True if the 32 bytes decompress to an ed25519 point.

    Follows the compressed Edwards-Y decoding: the y coordinate is the low
    255 bits (reduced mod p), and the point exists iff (y^2 - 1) / (d y^2 + 1)
    is a square in the field.
    """
    if len(data) != ADDRESS_LENGTH:
        return False
    y = int.from_bytes(data, "little") & ((1 << 255) - 1)
    y %= _P
    y2 = (y * y) % _P
    u = (y2 - 1) % _P
    v = (_D * y2 + 1) % _P
    if v == 0:
        return u == 0
    x2 = (u * pow(v, _P - 2, _P)) % _P
    if x2 == 0:
        return True
    return pow(x2, (_P - 1) // 2, _P) == 1


# =============================================================================
# DERIVATION
# =============================================================================

def _seed_bytes(seed: SeedLike) -> bytes:
    if isinstance(seed, Address):
        return seed.data
    if isinstance(seed, str):
        return seed.encode("utf-8")
    if isinstance(seed, (bytes, bytearray)):
        return bytes(seed)
    raise TypeError(f"Unsupported seed type: {type(seed).__name__}")


def normalize_seeds(seeds: Iterable[SeedLike]) -> List[bytes]:
    """Convert seeds to bytes and enforce ledger seed limits."""
    out = [_seed_bytes(s) for s in seeds]
    if len(out) > MAX_SEEDS:
        raise SeedTooLong(f"At most {MAX_SEEDS} seeds allowed, got {len(out)}")
    for i, seed in enumerate(out):
        if len(seed) > MAX_SEED_LENGTH:
            raise SeedTooLong(
                f"Seed {i} is {len(seed)} bytes (max {MAX_SEED_LENGTH})",
                seed_index=i,
            )
    return out


def create_program_address(seeds: Sequence[SeedLike], program_id: Address) -> Address:
    """
    Hash seeds and program id into an address.

    Raises InvalidSeeds when the digest is a valid curve point.
    """
    normalized = normalize_seeds(seeds)
    hasher = hashlib.sha256()
    for seed in normalized:
        hasher.update(seed)
    hasher.update(program_id.data)
    hasher.update(PDA_MARKER)
    digest = hasher.digest()
    if is_on_curve(digest):
        raise InvalidSeeds()
    return Address(digest)


def find_program_address(seeds: Sequence[SeedLike], program_id: Address) -> Tuple[Address, int]:
    """
    Find the first off-curve address for seeds, trying disambiguation bytes
    255..0. Returns (address, disambig).
    """
    normalized = normalize_seeds(seeds)
    if len(normalized) >= MAX_SEEDS:
        raise SeedTooLong(f"At most {MAX_SEEDS - 1} seeds allowed before the disambiguation byte")
    for disambig in range(255, -1, -1):
        try:
            address = create_program_address(normalized + [bytes([disambig])], program_id)
        except InvalidSeeds:
            continue
        return address, disambig
    # Probability ~2^-256; treat as invalid seeds rather than loop forever.
    raise InvalidSeeds("Unable to find a viable disambiguation byte")


def derive(namespace: SeedLike, *seeds: SeedLike, program_id: Address) -> Tuple[Address, int]:
    """Derive (address, disambig) for a namespace tag followed by seeds."""
    return find_program_address([namespace, *seeds], program_id)
