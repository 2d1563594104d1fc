"""
Local host runtime.

Plays the part of the ledger host for tests and local simulation: verifies
transaction signatures, derives signer flags from them, runs each instruction
through the Processor and makes the whole transaction atomic by running it
inside an InMemoryLedger transaction.

Usage:
    runtime = LocalRuntime()
    owner = runtime.new_identity()
    runtime.execute(initialize(owner.address, runtime.program_id), owner)

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Union

from janecek.address import Address
from janecek.clock import ClockOracle, FixedClock
from janecek.codec import decode
from janecek.config import JanecekConfig, get_config, get_config_manager
from janecek.instruction import Instruction
from janecek.observability import ProgramLayer, get_logger, invocation_scope
from janecek.processor import Processor
from janecek.signing import Keypair, Transaction, apply_signers
from janecek.state import AnyRecord
from janecek.storage import InMemoryLedger


logger = get_logger("host", ProgramLayer.RUNTIME)

# Enough to fund a handful of records at the default rent schedule.
DEFAULT_AIRDROP = 100_000_000


@dataclass
class TransactionReceipt:
    invocation_ids: List[str] = field(default_factory=list)
    results: List[Any] = field(default_factory=list)


class LocalRuntime:
    """In-process ledger host running one program."""

    def __init__(
        self,
        ledger: Optional[InMemoryLedger] = None,
        clock: Optional[ClockOracle] = None,
        config: Optional[JanecekConfig] = None,
    ):
        config = config or get_config()
        self.ledger = ledger or InMemoryLedger(config.rent_schedule())
        self.clock = clock or FixedClock()
        self.program_id: Address = config.program_id
        self.processor = Processor(self.program_id)
        self._nonce = itertools.count(1)

    @classmethod
    def from_config(
        cls,
        path: Optional[Union[str, Path]] = None,
        log_stream: Any = None,
        clock: Optional[ClockOracle] = None,
    ) -> "LocalRuntime":
        """
        Build a runtime from configuration: the given YAML file, or the
        project default file when there is one. Installs the configured log
        handler before anything runs.
        """
        manager = get_config_manager()
        if path is not None:
            manager.load_from_file(path)
        else:
            manager.load_defaults()
        config = manager.config
        config.apply_logging(log_stream)
        return cls(clock=clock, config=config)

    def new_identity(self, lamports: int = DEFAULT_AIRDROP) -> Keypair:
        keypair = Keypair.generate()
        if lamports:
            self.ledger.airdrop(keypair.address, lamports)
        return keypair

    def send_transaction(self, tx: Transaction) -> TransactionReceipt:
        """
        Verify and execute a transaction. Either every instruction succeeds
        or the ledger is left exactly as it was.
        """
        signers = tx.verify()
        receipt = TransactionReceipt()
        with self.ledger.transaction():
            for instruction in tx.instructions:
                with invocation_scope() as invocation_id:
                    result = self.processor.process(
                        instruction.program_id,
                        apply_signers(instruction, signers),
                        instruction.data,
                        self.ledger,
                        self.clock,
                        invocation_id=invocation_id,
                    )
                receipt.invocation_ids.append(invocation_id)
                receipt.results.append(result)
        logger.debug(
            "Transaction committed",
            operation="send_transaction",
            instructions=len(tx.instructions),
        )
        return receipt

    def execute(self, instruction: Instruction, *signers: Keypair) -> Any:
        """Sign and send a single-instruction transaction; returns the handler result."""
        tx = Transaction([instruction], nonce=next(self._nonce)).sign(*signers)
        return self.send_transaction(tx).results[0]

    def record(self, address: Address) -> AnyRecord:
        return decode(self.ledger.read(address))

    def balance(self, address: Address) -> int:
        return self.ledger.account(address).lamports
