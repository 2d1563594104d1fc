"""
Record admission checks.

Stateless predicates shared by every handler. Each one raises a specific
ProgramError on the first violation and returns None otherwise, so handlers
read as a flat list of requirements followed by a single commit step.

Security Model:
    - Every supplied address is untrusted until it re-derives from seeds
    - Every record is untrusted until its tag, flag and owner check out
    - Nothing is written until every requirement has passed

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from __future__ import annotations

from typing import Optional

from janecek.address import SYSTEM_ID, Address
from janecek.errors import (
    AccountNotWritable,
    AddressMismatch,
    AlreadyInitialized,
    ArithmeticOverflow,
    ArithmeticUnderflow,
    AuthorMismatch,
    CampaignEnded,
    CampaignOwnerMismatch,
    CampaignStateMismatch,
    DisambiguationMismatch,
    InsufficientFunding,
    LengthMismatch,
    MissingSigner,
    NotInitialized,
    OwnerMismatch,
    TypeTagMismatch,
    VoteBudgetExhausted,
)
from janecek.instruction import AccountMeta
from janecek.state import (
    I64_MAX,
    I64_MIN,
    VALID_BUDGET_TRANSITIONS,
    AnyRecord,
    CampaignOwner,
    CampaignState,
    RecordKind,
    VoteBudget,
    record_kind_name,
)
from janecek.storage import AccountInfo, LedgerStorage


class RecordValidator:
    """Collection of admission predicates."""

    # -------------------------------------------------------------------------
    # Invocation accounts
    # -------------------------------------------------------------------------

    @staticmethod
    def require_signer(account: AccountMeta) -> None:
        if not account.is_signer:
            raise MissingSigner(f"{account.address} must sign", address=account.address)

    @staticmethod
    def require_writable(account: AccountMeta) -> None:
        if not account.is_writable:
            raise AccountNotWritable(f"{account.address} must be writable", address=account.address)

    # -------------------------------------------------------------------------
    # Addresses
    # -------------------------------------------------------------------------

    @staticmethod
    def require_address_match(derived: Address, supplied: Address) -> None:
        if derived != supplied:
            raise AddressMismatch(
                f"Supplied {supplied}, derived {derived}",
                expected=derived,
                supplied=supplied,
            )

    @staticmethod
    def require_disambig_match(provided: int, derived: int, stored: Optional[int] = None) -> None:
        """
        Caller-provided, re-derived and (once initialized) stored
        disambiguation bytes must all agree.
        """
        if provided != derived:
            raise DisambiguationMismatch(f"Provided {provided}, derived {derived}")
        if stored is not None and stored != derived:
            raise DisambiguationMismatch(f"Stored {stored}, derived {derived}")

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    @staticmethod
    def require_owned_by(info: AccountInfo, program_id: Address) -> None:
        if info.owner != program_id:
            raise OwnerMismatch(f"{info.address} is owned by {info.owner}", address=info.address)

    @staticmethod
    def require_funded(info: AccountInfo, storage: LedgerStorage) -> None:
        """The record's deposit covers the rent-exempt minimum for its size."""
        minimum = storage.minimum_balance(info.size)
        if info.lamports < minimum:
            raise InsufficientFunding(
                f"{info.address} holds {info.lamports} lamports, needs {minimum}",
                address=info.address,
            )

    @staticmethod
    def require_allocatable(info: AccountInfo, size: int, program_id: Address) -> None:
        """
        The location can become a `size`-byte program record: it is either
        empty or already the right size, and unowned or already ours.
        """
        if info.owner not in (SYSTEM_ID, program_id):
            raise OwnerMismatch(f"{info.address} is owned by {info.owner}", address=info.address)
        if info.data and len(info.data) != size:
            raise LengthMismatch(
                f"{info.address} holds {len(info.data)} bytes, expected {size}",
                address=info.address,
            )

    @staticmethod
    def require_can_pay(payer: AccountInfo, amount: int) -> None:
        if payer.lamports < amount:
            raise InsufficientFunding(
                f"Payer {payer.address} has {payer.lamports} lamports, needs {amount}",
                address=payer.address,
            )

    # -------------------------------------------------------------------------
    # Record state
    # -------------------------------------------------------------------------

    @staticmethod
    def require_kind(record: AnyRecord, kind: RecordKind) -> None:
        if record.kind != kind:
            raise TypeTagMismatch(
                f"Expected {record_kind_name(kind)}, found {record_kind_name(record.kind)}",
            )

    @staticmethod
    def require_uninitialized(record: AnyRecord) -> None:
        if record.initialized:
            raise AlreadyInitialized(f"{record_kind_name(record.kind)} is already initialized")

    @staticmethod
    def require_initialized(record: AnyRecord, kind: RecordKind) -> None:
        """Initialized and of the expected kind; Fresh counts as not initialized."""
        if not record.initialized:
            raise NotInitialized(f"{record_kind_name(kind)} not initialized yet")
        RecordValidator.require_kind(record, kind)

    # -------------------------------------------------------------------------
    # Cross references
    # -------------------------------------------------------------------------

    @staticmethod
    def require_author_matches(identity: Address, recorded: Address) -> None:
        if identity != recorded:
            raise AuthorMismatch(f"{identity} is not the recorded author {recorded}")

    @staticmethod
    def require_campaign_owner(identity: Address, owner: CampaignOwner) -> None:
        if identity != owner.author:
            raise CampaignOwnerMismatch(f"{identity} does not own this campaign")

    @staticmethod
    def require_campaign_state_links(
        owner: CampaignOwner,
        owner_address: Address,
        state: CampaignState,
        state_address: Address,
    ) -> None:
        """Owner and state records point at each other."""
        if state.owner != owner_address:
            raise CampaignOwnerMismatch(
                f"Campaign state references owner {state.owner}, not {owner_address}",
            )
        if owner.campaign_state != state_address:
            raise CampaignStateMismatch(
                f"Campaign owner references state {owner.campaign_state}, not {state_address}",
            )

    @staticmethod
    def require_campaign_state_match(recorded: Address, expected: Address) -> None:
        if recorded != expected:
            raise CampaignStateMismatch(f"Record belongs to campaign {recorded}, not {expected}")

    # -------------------------------------------------------------------------
    # Time
    # -------------------------------------------------------------------------

    @staticmethod
    def require_before_deadline(now: int, ends_at: int) -> None:
        if now > ends_at:
            raise CampaignEnded(f"Voting ended at {ends_at} (now {now})")

    # -------------------------------------------------------------------------
    # Vote budget
    # -------------------------------------------------------------------------

    @staticmethod
    def require_budget_transition(current: VoteBudget, target: VoteBudget) -> None:
        if target not in VALID_BUDGET_TRANSITIONS[current]:
            raise VoteBudgetExhausted(f"Budget cannot move from {current.name} to {target.name}")


# =============================================================================
# CHECKED ARITHMETIC (i64)
# =============================================================================

def checked_add(base: int, delta: int) -> int:
    result = base + delta
    if result > I64_MAX:
        raise ArithmeticOverflow(f"{base} + {delta} overflows i64")
    if result < I64_MIN:
        raise ArithmeticUnderflow(f"{base} + {delta} underflows i64")
    return result


def checked_sub(base: int, delta: int) -> int:
    result = base - delta
    if result < I64_MIN:
        raise ArithmeticUnderflow(f"{base} - {delta} underflows i64")
    if result > I64_MAX:
        raise ArithmeticOverflow(f"{base} - {delta} overflows i64")
    return result
