"""
Vote engine.

Each voter holds a budget of two positive votes followed by one mandatory
negative vote:

    FULL --(+)--> ONE_SPENT --(+)--> NO_MORE_POSITIVE --(-)--> EXHAUSTED

Both positive votes must go to different parties. The negative vote may hit
any party, including one the voter already supported. cast_vote is the pure
transition; the process_* handlers admit the records around it and persist
the Voter and Party only once the transition has succeeded.

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from __future__ import annotations

from dataclasses import replace
from enum import Enum
from typing import Tuple

from janecek.address import Address
from janecek.campaign import load_campaign
from janecek.context import InvocationContext
from janecek.errors import DuplicatePositiveTarget, NegativeBeforePositive, VoteBudgetExhausted
from janecek.instruction import VoteArgs, get_party_address, get_voter_address
from janecek.observability import ProgramLayer, get_logger, timed_operation
from janecek.state import Party, RecordKind, VoteBudget, Voter
from janecek.validator import RecordValidator, checked_add, checked_sub


logger = get_logger("engine", ProgramLayer.VOTE)


class VoteDirection(Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


def cast_vote(
    voter: Voter,
    party_address: Address,
    party: Party,
    direction: VoteDirection,
) -> Tuple[Voter, Party]:
    """Apply one vote; returns the updated (voter, party) or raises."""
    budget = voter.budget

    if direction is VoteDirection.POSITIVE:
        if not budget.allows_positive():
            raise VoteBudgetExhausted(f"No positive votes left ({budget.name})")
        if budget is VoteBudget.FULL:
            updated = replace(voter, budget=VoteBudget.ONE_SPENT, pos1=party_address)
        else:
            if voter.pos1 == party_address:
                raise DuplicatePositiveTarget(f"Already voted for {party.display_name}")
            updated = replace(voter, budget=VoteBudget.NO_MORE_POSITIVE, pos2=party_address)
        tally = checked_add(party.tally, 1)
    else:
        if budget.is_terminal():
            raise VoteBudgetExhausted("Negative vote already cast")
        if not budget.allows_negative():
            raise NegativeBeforePositive("Both positive votes must be cast first")
        updated = replace(voter, budget=VoteBudget.EXHAUSTED, neg1=party_address)
        tally = checked_sub(party.tally, 1)

    RecordValidator.require_budget_transition(budget, updated.budget)
    return updated, party.with_tally(tally)


def _process_vote(ctx: InvocationContext, args: VoteArgs, direction: VoteDirection) -> Tuple[Voter, Party]:
    author, identity, owner_meta, state_meta, voter_meta, party_meta = ctx.require_accounts(6)

    RecordValidator.require_signer(author)
    RecordValidator.require_writable(voter_meta)
    RecordValidator.require_writable(party_meta)

    campaign = load_campaign(
        ctx, identity, owner_meta, state_meta, args.disambig_owner, args.disambig_state
    )

    voter_address, voter_bump = get_voter_address(author.address, campaign.state_address, ctx.program_id)
    RecordValidator.require_address_match(voter_address, voter_meta.address)
    party_address, party_bump = get_party_address(args.name, campaign.state_address, ctx.program_id)
    RecordValidator.require_address_match(party_address, party_meta.address)

    voter = ctx.load_owned(voter_meta, RecordKind.VOTER)
    party = ctx.load_owned(party_meta, RecordKind.PARTY)
    RecordValidator.require_disambig_match(args.disambig_voter, voter_bump, voter.disambig)
    RecordValidator.require_disambig_match(args.disambig_party, party_bump, party.disambig)

    RecordValidator.require_author_matches(author.address, voter.author)
    RecordValidator.require_campaign_state_match(voter.campaign_state, campaign.state_address)
    RecordValidator.require_campaign_state_match(party.campaign_state, campaign.state_address)
    RecordValidator.require_before_deadline(ctx.now, campaign.ends_at)

    voter, party = cast_vote(voter, party_address, party, direction)
    ctx.write([(voter_address, voter), (party_address, party)])

    logger.info(
        "Vote cast",
        operation=f"vote_{direction.value}",
        party=party.display_name,
        tally=party.tally,
        budget=voter.budget.name,
    )
    return voter, party


@timed_operation(logger, "vote_positive")
def process_vote_positive(ctx: InvocationContext, args: VoteArgs) -> Tuple[Voter, Party]:
    return _process_vote(ctx, args, VoteDirection.POSITIVE)


@timed_operation(logger, "vote_negative")
def process_vote_negative(ctx: InvocationContext, args: VoteArgs) -> Tuple[Voter, Party]:
    return _process_vote(ctx, args, VoteDirection.NEGATIVE)
