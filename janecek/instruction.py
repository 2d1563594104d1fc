"""
Instruction wire format and client helpers.

Instruction data is one tag byte followed by a fixed-size payload of
disambiguation bytes and, where a party is involved, a 32-byte zero-padded
UTF-8 name:

    0 Initialize     owner state                                 2 bytes
    1 CreateParty    owner state party name[32]                 35 bytes
    2 CreateVoter    owner state voter                           3 bytes
    3 VotePositive   owner state voter party name[32]           36 bytes
    4 VoteNegative   same as VotePositive

The builders at the bottom derive every record address and disambiguation
byte, so a client only needs identities and a party name.

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, Dict, Tuple, Type, Union

from janecek.address import Address, derive
from janecek.errors import InvalidInstruction, InvalidInstructionData, NameTooLong
from janecek.state import (
    NAME_CAPACITY,
    OWNER_NAMESPACE,
    STATE_NAMESPACE,
    VOTER_NAMESPACE,
    encode_name,
)


class InstructionTag(IntEnum):
    INITIALIZE = 0
    CREATE_PARTY = 1
    CREATE_VOTER = 2
    VOTE_POSITIVE = 3
    VOTE_NEGATIVE = 4

    @property
    def label(self) -> str:
        return "".join(part.capitalize() for part in self.name.split("_"))


# Minimum number of accounts each instruction reads.
ACCOUNT_COUNTS: Dict[InstructionTag, int] = {
    InstructionTag.INITIALIZE: 3,
    InstructionTag.CREATE_PARTY: 5,
    InstructionTag.CREATE_VOTER: 5,
    InstructionTag.VOTE_POSITIVE: 6,
    InstructionTag.VOTE_NEGATIVE: 6,
}


# =============================================================================
# ACCOUNTS
# =============================================================================

@dataclass(frozen=True)
class AccountMeta:
    """An account passed to an invocation, with its signer and writable flags."""
    address: Address
    is_signer: bool = False
    is_writable: bool = False


@dataclass(frozen=True)
class Instruction:
    program_id: Address
    accounts: Tuple[AccountMeta, ...]
    data: bytes

    @property
    def tag(self) -> InstructionTag:
        return InstructionTag(self.data[0])


# =============================================================================
# NAMES
# =============================================================================

def name_to_bytes(name: Union[str, bytes]) -> bytes:
    """Encode a party name into its zero-padded 32-byte wire form."""
    raw = encode_name(name)
    if not raw:
        raise InvalidInstructionData("Party name cannot be empty")
    if b"\x00" in raw:
        raise InvalidInstructionData("Party name cannot contain NUL bytes")
    if len(raw) > NAME_CAPACITY:
        raise NameTooLong(f"Party name is {len(raw)} bytes (max {NAME_CAPACITY})")
    return raw.ljust(NAME_CAPACITY, b"\x00")


def name_from_bytes(buffer: bytes) -> bytes:
    """Strip the zero padding from a wire name; the result is the party seed."""
    name = bytes(buffer).rstrip(b"\x00")
    if not name:
        raise InvalidInstructionData("Party name cannot be empty")
    if b"\x00" in name:
        raise InvalidInstructionData("Party name cannot contain NUL bytes")
    try:
        name.decode("utf-8")
    except UnicodeDecodeError:
        raise InvalidInstructionData("Party name is not valid UTF-8") from None
    return name


# =============================================================================
# PAYLOADS
# =============================================================================

@dataclass(frozen=True)
class InitializeArgs:
    disambig_owner: int
    disambig_state: int

    LAYOUT: ClassVar[struct.Struct] = struct.Struct("<BB")

    def pack(self) -> bytes:
        return self.LAYOUT.pack(self.disambig_owner, self.disambig_state)

    @classmethod
    def unpack(cls, payload: bytes) -> "InitializeArgs":
        return cls(*cls.LAYOUT.unpack(payload))


@dataclass(frozen=True)
class CreatePartyArgs:
    disambig_owner: int
    disambig_state: int
    disambig_party: int
    name: bytes

    LAYOUT: ClassVar[struct.Struct] = struct.Struct("<BBB32s")

    def pack(self) -> bytes:
        return self.LAYOUT.pack(
            self.disambig_owner,
            self.disambig_state,
            self.disambig_party,
            name_to_bytes(self.name),
        )

    @classmethod
    def unpack(cls, payload: bytes) -> "CreatePartyArgs":
        owner, state, party, name = cls.LAYOUT.unpack(payload)
        return cls(owner, state, party, name_from_bytes(name))


@dataclass(frozen=True)
class CreateVoterArgs:
    disambig_owner: int
    disambig_state: int
    disambig_voter: int

    LAYOUT: ClassVar[struct.Struct] = struct.Struct("<BBB")

    def pack(self) -> bytes:
        return self.LAYOUT.pack(self.disambig_owner, self.disambig_state, self.disambig_voter)

    @classmethod
    def unpack(cls, payload: bytes) -> "CreateVoterArgs":
        return cls(*cls.LAYOUT.unpack(payload))


@dataclass(frozen=True)
class VoteArgs:
    """Payload shared by VotePositive and VoteNegative."""
    disambig_owner: int
    disambig_state: int
    disambig_voter: int
    disambig_party: int
    name: bytes

    LAYOUT: ClassVar[struct.Struct] = struct.Struct("<BBBB32s")

    def pack(self) -> bytes:
        return self.LAYOUT.pack(
            self.disambig_owner,
            self.disambig_state,
            self.disambig_voter,
            self.disambig_party,
            name_to_bytes(self.name),
        )

    @classmethod
    def unpack(cls, payload: bytes) -> "VoteArgs":
        owner, state, voter, party, name = cls.LAYOUT.unpack(payload)
        return cls(owner, state, voter, party, name_from_bytes(name))


InstructionArgs = Union[InitializeArgs, CreatePartyArgs, CreateVoterArgs, VoteArgs]

PAYLOAD_TYPES: Dict[InstructionTag, Type] = {
    InstructionTag.INITIALIZE: InitializeArgs,
    InstructionTag.CREATE_PARTY: CreatePartyArgs,
    InstructionTag.CREATE_VOTER: CreateVoterArgs,
    InstructionTag.VOTE_POSITIVE: VoteArgs,
    InstructionTag.VOTE_NEGATIVE: VoteArgs,
}


def encode_instruction(tag: InstructionTag, args: InstructionArgs) -> bytes:
    if not isinstance(args, PAYLOAD_TYPES[tag]):
        raise InvalidInstructionData(f"{tag.label} does not take {type(args).__name__}")
    return bytes([tag]) + args.pack()


def decode_instruction(data: bytes) -> Tuple[InstructionTag, InstructionArgs]:
    """
    Split instruction data into its tag and decoded payload.

    Raises InvalidInstruction for empty data or an unknown tag and
    InvalidInstructionData when the payload has the wrong size or content.
    """
    if not data:
        raise InvalidInstruction("Instruction data is empty")
    try:
        tag = InstructionTag(data[0])
    except ValueError:
        raise InvalidInstruction(f"Unknown instruction tag: {data[0]}") from None

    payload_type = PAYLOAD_TYPES[tag]
    payload = bytes(data[1:])
    if len(payload) != payload_type.LAYOUT.size:
        raise InvalidInstructionData(
            f"{tag.label} payload must be {payload_type.LAYOUT.size} bytes, got {len(payload)}",
        )
    return tag, payload_type.unpack(payload)


# =============================================================================
# ADDRESS HELPERS
# =============================================================================

def get_owner_address(author: Address, program_id: Address) -> Tuple[Address, int]:
    return derive(OWNER_NAMESPACE, author, program_id=program_id)


def get_state_address(owner_address: Address, program_id: Address) -> Tuple[Address, int]:
    return derive(STATE_NAMESPACE, owner_address, program_id=program_id)


def get_party_address(
    name: Union[str, bytes],
    state_address: Address,
    program_id: Address,
) -> Tuple[Address, int]:
    """Party records are keyed by (name bytes, campaign state address)."""
    seed = name_from_bytes(name_to_bytes(name))
    return derive(seed, state_address, program_id=program_id)


def get_voter_address(
    author: Address,
    state_address: Address,
    program_id: Address,
) -> Tuple[Address, int]:
    return derive(VOTER_NAMESPACE, author, state_address, program_id=program_id)


def _campaign_addresses(
    owner_identity: Address,
    program_id: Address,
) -> Tuple[Address, int, Address, int]:
    owner_address, owner_bump = get_owner_address(owner_identity, program_id)
    state_address, state_bump = get_state_address(owner_address, program_id)
    return owner_address, owner_bump, state_address, state_bump


# =============================================================================
# BUILDERS
# =============================================================================

def initialize(author: Address, program_id: Address) -> Instruction:
    owner_address, owner_bump, state_address, state_bump = _campaign_addresses(author, program_id)
    return Instruction(
        program_id=program_id,
        accounts=(
            AccountMeta(author, is_signer=True, is_writable=True),
            AccountMeta(owner_address, is_writable=True),
            AccountMeta(state_address, is_writable=True),
        ),
        data=encode_instruction(
            InstructionTag.INITIALIZE,
            InitializeArgs(owner_bump, state_bump),
        ),
    )


def create_party(
    party_author: Address,
    owner_identity: Address,
    name: Union[str, bytes],
    program_id: Address,
) -> Instruction:
    owner_address, owner_bump, state_address, state_bump = _campaign_addresses(
        owner_identity, program_id
    )
    party_address, party_bump = get_party_address(name, state_address, program_id)
    return Instruction(
        program_id=program_id,
        accounts=(
            AccountMeta(party_author, is_signer=True, is_writable=True),
            AccountMeta(owner_identity, is_signer=True),
            AccountMeta(owner_address),
            AccountMeta(state_address),
            AccountMeta(party_address, is_writable=True),
        ),
        data=encode_instruction(
            InstructionTag.CREATE_PARTY,
            CreatePartyArgs(owner_bump, state_bump, party_bump, encode_name(name)),
        ),
    )


def create_voter(
    voter_author: Address,
    owner_identity: Address,
    program_id: Address,
) -> Instruction:
    owner_address, owner_bump, state_address, state_bump = _campaign_addresses(
        owner_identity, program_id
    )
    voter_address, voter_bump = get_voter_address(voter_author, state_address, program_id)
    return Instruction(
        program_id=program_id,
        accounts=(
            AccountMeta(voter_author, is_signer=True, is_writable=True),
            AccountMeta(owner_identity),
            AccountMeta(owner_address),
            AccountMeta(state_address),
            AccountMeta(voter_address, is_writable=True),
        ),
        data=encode_instruction(
            InstructionTag.CREATE_VOTER,
            CreateVoterArgs(owner_bump, state_bump, voter_bump),
        ),
    )


def _vote(
    tag: InstructionTag,
    voter_author: Address,
    owner_identity: Address,
    name: Union[str, bytes],
    program_id: Address,
) -> Instruction:
    owner_address, owner_bump, state_address, state_bump = _campaign_addresses(
        owner_identity, program_id
    )
    voter_address, voter_bump = get_voter_address(voter_author, state_address, program_id)
    party_address, party_bump = get_party_address(name, state_address, program_id)
    return Instruction(
        program_id=program_id,
        accounts=(
            AccountMeta(voter_author, is_signer=True),
            AccountMeta(owner_identity),
            AccountMeta(owner_address),
            AccountMeta(state_address),
            AccountMeta(voter_address, is_writable=True),
            AccountMeta(party_address, is_writable=True),
        ),
        data=encode_instruction(
            tag,
            VoteArgs(owner_bump, state_bump, voter_bump, party_bump, encode_name(name)),
        ),
    )


def vote_positive(
    voter_author: Address,
    owner_identity: Address,
    name: Union[str, bytes],
    program_id: Address,
) -> Instruction:
    return _vote(InstructionTag.VOTE_POSITIVE, voter_author, owner_identity, name, program_id)


def vote_negative(
    voter_author: Address,
    owner_identity: Address,
    name: Union[str, bytes],
    program_id: Address,
) -> Instruction:
    return _vote(InstructionTag.VOTE_NEGATIVE, voter_author, owner_identity, name, program_id)
