"""
Campaign lifecycle.

Initialize creates the CampaignOwner/CampaignState pair for an author and
fixes the voting window to [now, now + 7 days]. load_campaign is the shared
admission path every later instruction uses to accept an existing campaign.

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass

from janecek.address import Address
from janecek.codec import record_length
from janecek.context import Allocation, InvocationContext
from janecek.instruction import (
    AccountMeta,
    InitializeArgs,
    get_owner_address,
    get_state_address,
)
from janecek.observability import ProgramLayer, get_logger, timed_operation
from janecek.state import (
    CAMPAIGN_DURATION,
    OWNER_NAMESPACE,
    STATE_NAMESPACE,
    CampaignOwner,
    CampaignState,
    RecordKind,
)
from janecek.validator import RecordValidator, checked_add


logger = get_logger("lifecycle", ProgramLayer.CAMPAIGN)


@dataclass(frozen=True)
class Campaign:
    """An admitted campaign: both records decoded and cross-checked."""
    owner_address: Address
    owner: CampaignOwner
    state_address: Address
    state: CampaignState

    @property
    def ends_at(self) -> int:
        return self.state.ends_at


def load_campaign(
    ctx: InvocationContext,
    identity: AccountMeta,
    owner_meta: AccountMeta,
    state_meta: AccountMeta,
    disambig_owner: int,
    disambig_state: int,
) -> Campaign:
    """
    Re-derive the campaign records from the owner identity and admit them.

    Both records must sit at their derived addresses, be owned by the program,
    be initialized with the right kind, carry the derived disambiguation byte,
    name `identity` as author and reference each other.
    """
    owner_address, owner_bump = get_owner_address(identity.address, ctx.program_id)
    RecordValidator.require_address_match(owner_address, owner_meta.address)
    state_address, state_bump = get_state_address(owner_address, ctx.program_id)
    RecordValidator.require_address_match(state_address, state_meta.address)

    owner = ctx.load_owned(owner_meta, RecordKind.CAMPAIGN_OWNER)
    state = ctx.load_owned(state_meta, RecordKind.CAMPAIGN_STATE)
    RecordValidator.require_disambig_match(disambig_owner, owner_bump, owner.disambig)
    RecordValidator.require_disambig_match(disambig_state, state_bump, state.disambig)

    RecordValidator.require_campaign_owner(identity.address, owner)
    RecordValidator.require_campaign_state_links(owner, owner_address, state, state_address)
    return Campaign(owner_address, owner, state_address, state)


@timed_operation(logger, "initialize")
def process_initialize(ctx: InvocationContext, args: InitializeArgs) -> Campaign:
    author, owner_meta, state_meta = ctx.require_accounts(3)

    RecordValidator.require_signer(author)
    RecordValidator.require_writable(author)
    RecordValidator.require_writable(owner_meta)
    RecordValidator.require_writable(state_meta)

    owner_address, owner_bump = get_owner_address(author.address, ctx.program_id)
    RecordValidator.require_address_match(owner_address, owner_meta.address)
    RecordValidator.require_disambig_match(args.disambig_owner, owner_bump)
    state_address, state_bump = get_state_address(owner_address, ctx.program_id)
    RecordValidator.require_address_match(state_address, state_meta.address)
    RecordValidator.require_disambig_match(args.disambig_state, state_bump)

    owner_size = record_length(RecordKind.CAMPAIGN_OWNER)
    state_size = record_length(RecordKind.CAMPAIGN_STATE)
    plan = ctx.plan_allocations(author, [
        Allocation(owner_address, owner_size, (OWNER_NAMESPACE, author.address, bytes([owner_bump]))),
        Allocation(state_address, state_size, (STATE_NAMESPACE, owner_address, bytes([state_bump]))),
    ])
    RecordValidator.require_uninitialized(ctx.load(owner_meta, RecordKind.CAMPAIGN_OWNER))
    RecordValidator.require_uninitialized(ctx.load(state_meta, RecordKind.CAMPAIGN_STATE))

    ends_at = checked_add(ctx.now, CAMPAIGN_DURATION)

    owner = CampaignOwner(author=author.address, campaign_state=state_address, disambig=owner_bump)
    state = CampaignState(
        owner=owner_address,
        started_at=ctx.now,
        ends_at=ends_at,
        disambig=state_bump,
    )
    ctx.commit(plan, [(owner_address, owner), (state_address, state)])

    logger.info(
        "Campaign initialized",
        operation="initialize",
        author=str(author.address),
        state=str(state_address),
        ends_at=ends_at,
    )
    return Campaign(owner_address, owner, state_address, state)
