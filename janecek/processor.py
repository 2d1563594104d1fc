"""
Instruction processor: the single entry point the ledger host calls.

    Processor().process(program_id, accounts, data, storage, clock)

The processor checks it is being invoked as the configured program, decodes
the tag and payload, checks the account count and routes to the handler.
Rejections propagate unchanged as ProgramError after being logged with their
error code; nothing else is caught.

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Sequence

from janecek.address import Address
from janecek.campaign import process_initialize
from janecek.clock import ClockOracle
from janecek.config import get_config
from janecek.context import InvocationContext
from janecek.errors import ProgramError, ProgramIdMismatch
from janecek.instruction import (
    ACCOUNT_COUNTS,
    AccountMeta,
    Instruction,
    InstructionTag,
    decode_instruction,
)
from janecek.observability import ProgramLayer, get_logger, invocation_scope
from janecek.registry import process_create_party, process_create_voter
from janecek.storage import LedgerStorage
from janecek.vote import process_vote_negative, process_vote_positive


logger = get_logger("dispatch", ProgramLayer.PROCESSOR)

Handler = Callable[[InvocationContext, Any], Any]

HANDLERS: Dict[InstructionTag, Handler] = {
    InstructionTag.INITIALIZE: process_initialize,
    InstructionTag.CREATE_PARTY: process_create_party,
    InstructionTag.CREATE_VOTER: process_create_voter,
    InstructionTag.VOTE_POSITIVE: process_vote_positive,
    InstructionTag.VOTE_NEGATIVE: process_vote_negative,
}


class Processor:
    """Routes instruction data to handlers for one deployed program id."""

    def __init__(self, program_id: Optional[Address] = None):
        self.program_id = program_id or get_config().program_id

    def process(
        self,
        program_id: Address,
        accounts: Sequence[AccountMeta],
        data: bytes,
        storage: LedgerStorage,
        clock: ClockOracle,
        invocation_id: Optional[str] = None,
    ) -> Any:
        """Run one instruction. Returns the handler result or raises ProgramError."""
        with invocation_scope(invocation_id):
            try:
                return self._dispatch(program_id, accounts, data, storage, clock)
            except ProgramError as exc:
                logger.warning(
                    f"Instruction rejected: {exc.message}",
                    operation="dispatch",
                    error_code=exc.code.name,
                    **{k: str(v) for k, v in exc.details.items()},
                )
                raise

    def process_instruction(
        self,
        instruction: Instruction,
        storage: LedgerStorage,
        clock: ClockOracle,
    ) -> Any:
        return self.process(
            instruction.program_id,
            instruction.accounts,
            instruction.data,
            storage,
            clock,
        )

    def _dispatch(
        self,
        program_id: Address,
        accounts: Sequence[AccountMeta],
        data: bytes,
        storage: LedgerStorage,
        clock: ClockOracle,
    ) -> Any:
        if program_id != self.program_id:
            raise ProgramIdMismatch(f"Invoked as {program_id}, deployed as {self.program_id}")

        tag, args = decode_instruction(data)
        logger.info(f"Instruction: {tag.label}", operation="dispatch")

        ctx = InvocationContext(program_id, tuple(accounts), storage, clock)
        ctx.require_accounts(ACCOUNT_COUNTS[tag])
        return HANDLERS[tag](ctx, args)
