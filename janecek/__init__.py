"""
Janeček: D21 campaign voting core

Validation and state transition logic for a participatory vote where every
voter casts two positive votes for different parties and then one mandatory
negative vote, inside a fixed seven day campaign window. The core runs as a
deterministic program invoked by a ledger host that owns record storage.

Architecture
────────────

    HOST COLLABORATORS
      storage.py      LedgerStorage contract, rent schedule, in-memory ledger
      clock.py        Clock oracle
      signing.py      Ed25519 identities and signed transactions
      runtime.py      Local host: signature checks, atomic transactions

    PROGRAM
      processor.py    Entry point: program id check, decode, dispatch
      campaign.py     Initialize, shared campaign admission
      registry.py     CreateParty, CreateVoter
      vote.py         VotePositive, VoteNegative, vote budget transitions

    FOUNDATION
      instruction.py  Wire format, account lists, client builders
      validator.py    Admission predicates, checked i64 arithmetic
      codec.py        Fixed-layout record encoding
      state.py        Record types and vote budget
      address.py      Derived addresses, base58
      errors.py       Error codes

    AMBIENT
      config.py       YAML / environment configuration
      observability.py Structured logging

Design Principles
─────────────────

    Re-derive everything: a supplied record is accepted only if its address
    re-derives from its seeds under the program id.

    Validate, then commit: no handler touches storage until every check has
    passed, so a rejected instruction leaves no trace.

    Forward only: a voter's budget never moves backwards.

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from janecek.address import SYSTEM_ID, Address, create_program_address, derive, find_program_address
from janecek.errors import ErrorCode, ProgramError
from janecek.instruction import (
    AccountMeta,
    Instruction,
    InstructionTag,
    create_party,
    create_voter,
    get_owner_address,
    get_party_address,
    get_state_address,
    get_voter_address,
    initialize,
    name_to_bytes,
    vote_negative,
    vote_positive,
)
from janecek.processor import Processor
from janecek.state import CampaignOwner, CampaignState, Party, VoteBudget, Voter

__version__ = "0.1.0"

__all__ = [
    "SYSTEM_ID",
    "Address",
    "create_program_address",
    "derive",
    "find_program_address",
    "ErrorCode",
    "ProgramError",
    "AccountMeta",
    "Instruction",
    "InstructionTag",
    "create_party",
    "create_voter",
    "get_owner_address",
    "get_party_address",
    "get_state_address",
    "get_voter_address",
    "initialize",
    "name_to_bytes",
    "vote_negative",
    "vote_positive",
    "Processor",
    "CampaignOwner",
    "CampaignState",
    "Party",
    "VoteBudget",
    "Voter",
]
