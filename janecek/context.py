"""
Per-invocation handler plumbing.

InvocationContext bundles what a handler may touch: the program id, the
supplied accounts, ledger storage and the clock. It also owns the two-phase
record allocation every creating handler goes through:

    plan = ctx.plan_allocations(payer, [Allocation(...), ...])   # read-only
    ...remaining checks...
    ctx.commit(plan, writes)                                      # mutations

plan_allocations performs every check that ensure_funded_and_owned could
fail on (owner, size, payer balance), so commit only runs once nothing can
be rejected any more.

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from janecek.address import Address, SeedLike
from janecek.clock import ClockOracle
from janecek.codec import decode_as, encode
from janecek.errors import NotEnoughAccountKeys
from janecek.instruction import AccountMeta
from janecek.state import AnyRecord, Record, RecordKind
from janecek.storage import AccountInfo, LedgerStorage
from janecek.validator import RecordValidator


@dataclass(frozen=True)
class Allocation:
    """A record location a handler needs allocated, funded and owned."""
    address: Address
    size: int
    seeds: Tuple[SeedLike, ...]


@dataclass(frozen=True)
class AllocationPlan:
    payer: Address
    allocations: Tuple[Allocation, ...]
    total_shortfall: int


@dataclass
class InvocationContext:
    program_id: Address
    accounts: Sequence[AccountMeta]
    storage: LedgerStorage
    clock: ClockOracle
    _now: int = field(default=0, init=False, repr=False)

    def __post_init__(self):
        # One timestamp per invocation.
        self._now = self.clock.now()

    @property
    def now(self) -> int:
        return self._now

    def require_accounts(self, count: int) -> List[AccountMeta]:
        if len(self.accounts) < count:
            raise NotEnoughAccountKeys(
                f"Expected {count} accounts, got {len(self.accounts)}",
                expected=count,
                supplied=len(self.accounts),
            )
        return list(self.accounts[:count])

    def info(self, meta: AccountMeta) -> AccountInfo:
        return self.storage.account(meta.address)

    def load(self, meta: AccountMeta, kind: RecordKind) -> AnyRecord:
        """Decode the record at meta; Fresh or `kind`, anything else is rejected."""
        return decode_as(self.storage.read(meta.address), kind)

    def load_owned(self, meta: AccountMeta, kind: RecordKind) -> AnyRecord:
        """Load an existing record that must be program-owned, funded and initialized."""
        info = self.info(meta)
        RecordValidator.require_owned_by(info, self.program_id)
        RecordValidator.require_funded(info, self.storage)
        record = self.load(meta, kind)
        RecordValidator.require_initialized(record, kind)
        return record

    # -- two-phase allocation --------------------------------------------------

    def plan_allocations(self, payer: AccountMeta, allocations: Sequence[Allocation]) -> AllocationPlan:
        total = 0
        for allocation in allocations:
            info = self.storage.account(allocation.address)
            RecordValidator.require_allocatable(info, allocation.size, self.program_id)
            total += self.storage.funding_shortfall(allocation.address, allocation.size)
        RecordValidator.require_can_pay(self.storage.account(payer.address), total)
        return AllocationPlan(payer.address, tuple(allocations), total)

    def commit(self, plan: AllocationPlan, writes: Sequence[Tuple[Address, Record]]) -> None:
        for allocation in plan.allocations:
            self.storage.ensure_funded_and_owned(
                allocation.address,
                allocation.size,
                self.program_id,
                allocation.seeds,
                plan.payer,
            )
            info = self.storage.account(allocation.address)
            RecordValidator.require_owned_by(info, self.program_id)
            RecordValidator.require_funded(info, self.storage)
        self.write(writes)

    def write(self, writes: Sequence[Tuple[Address, Record]]) -> None:
        for address, record in writes:
            self.storage.write(address, encode(record), self.program_id)
