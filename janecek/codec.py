"""
Fixed-layout binary codec for campaign records.

All integers are little-endian fixed width. Every layout starts with
(type tag: u8, initialized: u8) and ends with the disambiguation byte.

    CampaignOwner   tag init author[32] campaign_state[32] disambig            67 bytes
    CampaignState   tag init owner[32] started_at:i64 ends_at:i64 disambig     51 bytes
    Party           tag init author[32] campaign_state[32] created_at:i64
                    name_len:u32 name[32] tally:i64 disambig                   119 bytes
    Voter           tag init author[32] campaign_state[32] budget:u8
                    pos1[32] pos2[32] neg1[32] disambig                        164 bytes

An all-zero buffer of any length decodes to Fresh.

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from __future__ import annotations

import struct
from typing import Callable, Dict, Tuple

from janecek.address import Address
from janecek.errors import (
    InvalidRecordData,
    LengthMismatch,
    NameTooLong,
    TypeTagMismatch,
)
from janecek.state import (
    FRESH,
    NAME_CAPACITY,
    AnyRecord,
    CampaignOwner,
    CampaignState,
    Party,
    Record,
    RecordKind,
    VoteBudget,
    Voter,
    record_kind_name,
)


OWNER_LAYOUT = struct.Struct("<BB32s32sB")
STATE_LAYOUT = struct.Struct("<BB32sqqB")
PARTY_LAYOUT = struct.Struct("<BB32s32sqI32sqB")
VOTER_LAYOUT = struct.Struct("<BB32s32sB32s32s32sB")


# =============================================================================
# FIELD HELPERS
# =============================================================================

def _flag(value: int) -> bool:
    if value not in (0, 1):
        raise InvalidRecordData(f"Initialized flag must be 0 or 1, got {value}")
    return value == 1


def _pack_name(name: bytes) -> Tuple[int, bytes]:
    if len(name) > NAME_CAPACITY:
        raise NameTooLong(f"Name is {len(name)} bytes (max {NAME_CAPACITY})")
    return len(name), name.ljust(NAME_CAPACITY, b"\x00")


def _unpack_name(length: int, buffer: bytes) -> bytes:
    if length > NAME_CAPACITY:
        raise NameTooLong(f"Embedded name length {length} exceeds {NAME_CAPACITY}")
    if any(buffer[length:]):
        raise InvalidRecordData("Name padding must be zero")
    return buffer[:length]


def _budget(value: int) -> VoteBudget:
    try:
        return VoteBudget(value)
    except ValueError:
        raise InvalidRecordData(f"Unknown vote budget state: {value}") from None


# =============================================================================
# PER-KIND CODECS
# =============================================================================

def _encode_owner(r: CampaignOwner) -> bytes:
    return OWNER_LAYOUT.pack(
        RecordKind.CAMPAIGN_OWNER, int(r.initialized),
        r.author.data, r.campaign_state.data, r.disambig,
    )


def _decode_owner(data: bytes) -> CampaignOwner:
    _, init, author, state, disambig = OWNER_LAYOUT.unpack(data)
    return CampaignOwner(
        author=Address(author),
        campaign_state=Address(state),
        disambig=disambig,
        initialized=_flag(init),
    )


def _encode_state(r: CampaignState) -> bytes:
    return STATE_LAYOUT.pack(
        RecordKind.CAMPAIGN_STATE, int(r.initialized),
        r.owner.data, r.started_at, r.ends_at, r.disambig,
    )


def _decode_state(data: bytes) -> CampaignState:
    _, init, owner, started_at, ends_at, disambig = STATE_LAYOUT.unpack(data)
    return CampaignState(
        owner=Address(owner),
        started_at=started_at,
        ends_at=ends_at,
        disambig=disambig,
        initialized=_flag(init),
    )


def _encode_party(r: Party) -> bytes:
    name_len, name_buf = _pack_name(r.name)
    return PARTY_LAYOUT.pack(
        RecordKind.PARTY, int(r.initialized),
        r.author.data, r.campaign_state.data, r.created_at,
        name_len, name_buf, r.tally, r.disambig,
    )


def _decode_party(data: bytes) -> Party:
    (_, init, author, state, created_at,
     name_len, name_buf, tally, disambig) = PARTY_LAYOUT.unpack(data)
    return Party(
        author=Address(author),
        campaign_state=Address(state),
        created_at=created_at,
        name=_unpack_name(name_len, name_buf),
        tally=tally,
        disambig=disambig,
        initialized=_flag(init),
    )


def _encode_voter(r: Voter) -> bytes:
    return VOTER_LAYOUT.pack(
        RecordKind.VOTER, int(r.initialized),
        r.author.data, r.campaign_state.data, int(r.budget),
        r.pos1.data, r.pos2.data, r.neg1.data, r.disambig,
    )


def _decode_voter(data: bytes) -> Voter:
    (_, init, author, state, budget,
     pos1, pos2, neg1, disambig) = VOTER_LAYOUT.unpack(data)
    return Voter(
        author=Address(author),
        campaign_state=Address(state),
        budget=_budget(budget),
        pos1=Address(pos1),
        pos2=Address(pos2),
        neg1=Address(neg1),
        disambig=disambig,
        initialized=_flag(init),
    )


_CODECS: Dict[RecordKind, Tuple[struct.Struct, Callable, Callable]] = {
    RecordKind.CAMPAIGN_OWNER: (OWNER_LAYOUT, _encode_owner, _decode_owner),
    RecordKind.CAMPAIGN_STATE: (STATE_LAYOUT, _encode_state, _decode_state),
    RecordKind.PARTY: (PARTY_LAYOUT, _encode_party, _decode_party),
    RecordKind.VOTER: (VOTER_LAYOUT, _encode_voter, _decode_voter),
}


def check_codec_table(codecs: Dict[RecordKind, Tuple[struct.Struct, Callable, Callable]]) -> None:
    """Every non-fresh kind must have exactly one codec entry."""
    missing = set(RecordKind) - {RecordKind.FRESH} - set(codecs)
    if missing:
        names = ", ".join(sorted(record_kind_name(k) for k in missing))
        raise RuntimeError(f"No codec registered for record kind(s): {names}")
    if RecordKind.FRESH in codecs:
        raise RuntimeError("Fresh storage has no codec")


check_codec_table(_CODECS)

RECORD_LENGTHS: Dict[RecordKind, int] = {
    kind: layout.size for kind, (layout, _, _) in _CODECS.items()
}


def record_length(kind: RecordKind) -> int:
    """Exact byte length of a record kind."""
    return RECORD_LENGTHS[kind]


# =============================================================================
# PUBLIC API
# =============================================================================

def encode(record: Record) -> bytes:
    """Encode a record to its exact fixed-length buffer."""
    kind = getattr(record, "kind", None)
    if kind not in _CODECS:
        raise TypeTagMismatch(f"Cannot encode {type(record).__name__}")
    _, encoder, _ = _CODECS[kind]
    return encoder(record)


def is_fresh(data: bytes) -> bool:
    return not any(data)


def decode(data: bytes) -> AnyRecord:
    """
    Decode a record buffer.

    Returns FRESH for zeroed storage. Raises TypeTagMismatch for unknown tags,
    LengthMismatch when the buffer size disagrees with the tagged kind, and
    NameTooLong / InvalidRecordData for inconsistent embedded fields.
    """
    data = bytes(data)
    if is_fresh(data):
        return FRESH

    tag = data[0]
    try:
        kind = RecordKind(tag)
    except ValueError:
        raise TypeTagMismatch(f"Unknown record type tag: {tag}") from None
    if kind is RecordKind.FRESH:
        raise TypeTagMismatch("Fresh tag with non-zero payload")

    layout, _, decoder = _CODECS[kind]
    if len(data) != layout.size:
        raise LengthMismatch(
            f"{record_kind_name(kind)} requires {layout.size} bytes, got {len(data)}",
            kind=record_kind_name(kind),
        )
    return decoder(data)


def decode_as(data: bytes, kind: RecordKind) -> AnyRecord:
    """Decode and require the record to be Fresh or of the given kind."""
    record = decode(data)
    if record.kind is not RecordKind.FRESH and record.kind != kind:
        raise TypeTagMismatch(
            f"Expected {record_kind_name(kind)}, found {record_kind_name(record.kind)}",
        )
    return record
