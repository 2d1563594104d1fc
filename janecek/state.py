"""
Campaign record types.

Four record kinds live in ledger storage, each a fixed-layout buffer starting
with a type tag and an initialized flag. A zeroed buffer is Fresh storage that
no handler has written yet.

    CampaignOwner   ("campaign_owner", author)
    CampaignState   ("campaign_state", owner address)
    Party           (name bytes, campaign state address)
    Voter           ("voter", author, campaign state address)

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Dict, Set, Union

from janecek.address import SYSTEM_ID, Address


# Seconds in the fixed campaign window (7 days)
CAMPAIGN_DURATION = 7 * 24 * 60 * 60

NAME_CAPACITY = 32

I64_MIN = -(2 ** 63)
I64_MAX = 2 ** 63 - 1

OWNER_NAMESPACE = b"campaign_owner"
STATE_NAMESPACE = b"campaign_state"
VOTER_NAMESPACE = b"voter"


class RecordKind(IntEnum):
    """Leading type tag of every record buffer."""
    FRESH = 0
    CAMPAIGN_OWNER = 1
    CAMPAIGN_STATE = 2
    PARTY = 3
    VOTER = 4


class VoteBudget(IntEnum):
    """
    Remaining ballot capacity of a voter.

    Two positive votes must be cast before the single negative vote.
    The state only ever moves forward.
    """
    FULL = 0
    ONE_SPENT = 1
    NO_MORE_POSITIVE = 2
    EXHAUSTED = 3

    def allows_positive(self) -> bool:
        return self in (VoteBudget.FULL, VoteBudget.ONE_SPENT)

    def allows_negative(self) -> bool:
        return self is VoteBudget.NO_MORE_POSITIVE

    def is_terminal(self) -> bool:
        return self is VoteBudget.EXHAUSTED


VALID_BUDGET_TRANSITIONS: Dict[VoteBudget, Set[VoteBudget]] = {
    VoteBudget.FULL: {VoteBudget.ONE_SPENT},
    VoteBudget.ONE_SPENT: {VoteBudget.NO_MORE_POSITIVE},
    VoteBudget.NO_MORE_POSITIVE: {VoteBudget.EXHAUSTED},
    VoteBudget.EXHAUSTED: set(),
}


# =============================================================================
# RECORDS
# =============================================================================

@dataclass(frozen=True)
class Fresh:
    """Zeroed storage: allocated (or not yet) but never written by a handler."""
    kind = RecordKind.FRESH
    initialized = False


@dataclass(frozen=True)
class CampaignOwner:
    """Binds a campaign author to the campaign state record."""
    author: Address
    campaign_state: Address
    disambig: int
    initialized: bool = True

    kind = RecordKind.CAMPAIGN_OWNER


@dataclass(frozen=True)
class CampaignState:
    """Campaign window; ends_at is fixed at creation."""
    owner: Address
    started_at: int
    ends_at: int
    disambig: int
    initialized: bool = True

    kind = RecordKind.CAMPAIGN_STATE

    @property
    def duration(self) -> int:
        return self.ends_at - self.started_at


@dataclass(frozen=True)
class Party:
    """A named party and its running tally (may go negative)."""
    author: Address
    campaign_state: Address
    created_at: int
    name: bytes
    tally: int
    disambig: int
    initialized: bool = True

    kind = RecordKind.PARTY

    @property
    def display_name(self) -> str:
        return self.name.decode("utf-8", errors="replace")

    def with_tally(self, tally: int) -> "Party":
        return replace(self, tally=tally)


@dataclass(frozen=True)
class Voter:
    """A voter's budget and the parties it has voted for."""
    author: Address
    campaign_state: Address
    disambig: int
    budget: VoteBudget = VoteBudget.FULL
    pos1: Address = SYSTEM_ID
    pos2: Address = SYSTEM_ID
    neg1: Address = SYSTEM_ID
    initialized: bool = True

    kind = RecordKind.VOTER


Record = Union[CampaignOwner, CampaignState, Party, Voter]
AnyRecord = Union[Fresh, CampaignOwner, CampaignState, Party, Voter]

FRESH = Fresh()


def encode_name(name: Union[str, bytes]) -> bytes:
    """
    UTF-8 encode a party name without padding.

    Length is not checked here; the codec and instruction layer enforce the
    32-byte capacity.
    """
    if isinstance(name, str):
        return name.encode("utf-8")
    return bytes(name)


def record_kind_name(kind: RecordKind) -> str:
    return {
        RecordKind.FRESH: "Fresh",
        RecordKind.CAMPAIGN_OWNER: "CampaignOwner",
        RecordKind.CAMPAIGN_STATE: "CampaignState",
        RecordKind.PARTY: "Party",
        RecordKind.VOTER: "Voter",
    }[kind]
