"""
Party and voter registration.

Both instructions admit an open campaign, then allocate and write a single
new record keyed under the campaign state address:

    Party   (name bytes, state address)            CreateParty, owner co-signs
    Voter   ("voter", voter author, state address) CreateVoter, anyone may join

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from __future__ import annotations

from janecek.campaign import Campaign, load_campaign
from janecek.codec import record_length
from janecek.context import Allocation, InvocationContext
from janecek.instruction import (
    CreatePartyArgs,
    CreateVoterArgs,
    get_party_address,
    get_voter_address,
)
from janecek.observability import ProgramLayer, get_logger, timed_operation
from janecek.state import VOTER_NAMESPACE, Party, RecordKind, Voter
from janecek.validator import RecordValidator


logger = get_logger("registry", ProgramLayer.REGISTRY)


@timed_operation(logger, "create_party")
def process_create_party(ctx: InvocationContext, args: CreatePartyArgs) -> Party:
    author, identity, owner_meta, state_meta, party_meta = ctx.require_accounts(5)

    RecordValidator.require_signer(author)
    RecordValidator.require_signer(identity)
    RecordValidator.require_writable(author)
    RecordValidator.require_writable(party_meta)

    campaign: Campaign = load_campaign(
        ctx, identity, owner_meta, state_meta, args.disambig_owner, args.disambig_state
    )
    RecordValidator.require_before_deadline(ctx.now, campaign.ends_at)

    party_address, party_bump = get_party_address(args.name, campaign.state_address, ctx.program_id)
    RecordValidator.require_address_match(party_address, party_meta.address)
    RecordValidator.require_disambig_match(args.disambig_party, party_bump)

    plan = ctx.plan_allocations(author, [
        Allocation(
            party_address,
            record_length(RecordKind.PARTY),
            (args.name, campaign.state_address, bytes([party_bump])),
        ),
    ])
    RecordValidator.require_uninitialized(ctx.load(party_meta, RecordKind.PARTY))

    party = Party(
        author=author.address,
        campaign_state=campaign.state_address,
        created_at=ctx.now,
        name=args.name,
        tally=0,
        disambig=party_bump,
    )
    ctx.commit(plan, [(party_address, party)])

    logger.info(
        "Party registered",
        operation="create_party",
        party=party.display_name,
        address=str(party_address),
    )
    return party


@timed_operation(logger, "create_voter")
def process_create_voter(ctx: InvocationContext, args: CreateVoterArgs) -> Voter:
    author, identity, owner_meta, state_meta, voter_meta = ctx.require_accounts(5)

    # The campaign owner does not co-sign; anyone may register as a voter.
    RecordValidator.require_signer(author)
    RecordValidator.require_writable(author)
    RecordValidator.require_writable(voter_meta)

    campaign = load_campaign(
        ctx, identity, owner_meta, state_meta, args.disambig_owner, args.disambig_state
    )
    RecordValidator.require_before_deadline(ctx.now, campaign.ends_at)

    voter_address, voter_bump = get_voter_address(author.address, campaign.state_address, ctx.program_id)
    RecordValidator.require_address_match(voter_address, voter_meta.address)
    RecordValidator.require_disambig_match(args.disambig_voter, voter_bump)

    plan = ctx.plan_allocations(author, [
        Allocation(
            voter_address,
            record_length(RecordKind.VOTER),
            (VOTER_NAMESPACE, author.address, campaign.state_address, bytes([voter_bump])),
        ),
    ])
    RecordValidator.require_uninitialized(ctx.load(voter_meta, RecordKind.VOTER))

    voter = Voter(author=author.address, campaign_state=campaign.state_address, disambig=voter_bump)
    ctx.commit(plan, [(voter_address, voter)])

    logger.info("Voter registered", operation="create_voter", voter=str(author.address))
    return voter
