"""
Ledger storage service.

Records are byte buffers owned by the host ledger. The core only reads them,
asks the host to make sure a record location is allocated, funded and owned by
the program, and writes the new encoding back. LedgerStorage is that
contract; InMemoryLedger is the reference implementation used by the local
runtime and the tests.

Funding model:
    A record is funded when its balance covers the rent-exempt minimum for
    its data size:

        minimum = (storage_overhead + size) * lamports_per_byte_year * exemption_threshold

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, replace
from decimal import ROUND_FLOOR, Decimal
from typing import Dict, Iterator, List, Optional, Sequence

from janecek.address import SYSTEM_ID, Address, SeedLike, create_program_address
from janecek.errors import (
    AddressMismatch,
    InsufficientFunding,
    InvalidSeeds,
    LengthMismatch,
    OwnerMismatch,
)
from janecek.observability import ProgramLayer, get_logger


logger = get_logger("storage", ProgramLayer.STORAGE)


# =============================================================================
# RENT
# =============================================================================

@dataclass(frozen=True)
class RentSchedule:
    """Storage deposit parameters."""
    lamports_per_byte_year: int = 3480
    exemption_threshold: Decimal = Decimal("2")
    storage_overhead: int = 128

    def minimum_balance(self, size: int) -> int:
        """Rent-exempt minimum balance for a buffer of `size` bytes."""
        if size < 0:
            raise ValueError(f"size cannot be negative: {size}")
        raw = Decimal(self.storage_overhead + size) * self.lamports_per_byte_year * self.exemption_threshold
        return int(raw.to_integral_value(rounding=ROUND_FLOOR))

    def is_exempt(self, lamports: int, size: int) -> bool:
        return lamports >= self.minimum_balance(size)


# =============================================================================
# ACCOUNT SNAPSHOT
# =============================================================================

@dataclass(frozen=True)
class AccountInfo:
    """Immutable view of one storage location."""
    address: Address
    lamports: int = 0
    owner: Address = SYSTEM_ID
    data: bytes = b""

    @property
    def exists(self) -> bool:
        return self.lamports > 0 or bool(self.data)

    @property
    def size(self) -> int:
        return len(self.data)


# =============================================================================
# STORAGE INTERFACE
# =============================================================================

class LedgerStorage(ABC):
    """Host-owned record storage as seen by the voting core."""

    @abstractmethod
    def account(self, address: Address) -> AccountInfo:
        """Return the account at address (an empty account if none exists)."""

    @abstractmethod
    def minimum_balance(self, size: int) -> int:
        """Rent-exempt minimum for a buffer of the given size."""

    @abstractmethod
    def ensure_funded_and_owned(
        self,
        address: Address,
        size: int,
        owner: Address,
        seeds: Sequence[SeedLike],
        payer: Address,
    ) -> None:
        """
        Make the location exist with `size` bytes, a rent-exempt balance and
        `owner` as owner. Idempotent: create-if-empty, top-up-if-underfunded.

        `seeds` (including the disambiguation byte) must derive `address`
        under `owner`; that is how the program proves it controls the
        location.
        """

    @abstractmethod
    def write(self, address: Address, data: bytes, writer: Address) -> None:
        """Replace the record bytes. Only the owning program may write."""

    def read(self, address: Address) -> bytes:
        return self.account(address).data

    def funding_shortfall(self, address: Address, size: int) -> int:
        """Lamports still needed for the location to be rent exempt at `size`."""
        current = self.account(address).lamports
        return max(self.minimum_balance(size) - current, 0)


# =============================================================================
# IN-MEMORY LEDGER
# =============================================================================

class InMemoryLedger(LedgerStorage):
    """
    Dictionary-backed ledger.

    Writes are immediately visible. transaction() snapshots the whole account
    map and restores it if the block raises, which is how the local runtime
    models the host's atomic transaction.
    """

    def __init__(self, rent: Optional[RentSchedule] = None):
        self.rent = rent or RentSchedule()
        self._accounts: Dict[Address, AccountInfo] = {}
        self._lock = threading.RLock()
        self._write_log: List[Address] = []

    # -- reads ---------------------------------------------------------------

    def account(self, address: Address) -> AccountInfo:
        with self._lock:
            return self._accounts.get(address) or AccountInfo(address=address)

    def minimum_balance(self, size: int) -> int:
        return self.rent.minimum_balance(size)

    def snapshot(self) -> Dict[Address, AccountInfo]:
        with self._lock:
            return dict(self._accounts)

    @property
    def write_log(self) -> List[Address]:
        """Addresses written since construction, in order."""
        return list(self._write_log)

    # -- host-side setup -----------------------------------------------------

    def set_account(
        self,
        address: Address,
        lamports: int = 0,
        owner: Address = SYSTEM_ID,
        data: bytes = b"",
    ) -> AccountInfo:
        """Place an account directly (genesis / test fixture)."""
        info = AccountInfo(address=address, lamports=lamports, owner=owner, data=bytes(data))
        with self._lock:
            self._accounts[address] = info
        return info

    def airdrop(self, address: Address, lamports: int) -> AccountInfo:
        with self._lock:
            current = self.account(address)
            info = replace(current, lamports=current.lamports + lamports)
            self._accounts[address] = info
            return info

    # -- program-facing mutations --------------------------------------------

    def _debit(self, payer: Address, amount: int) -> None:
        payer_info = self.account(payer)
        if payer_info.lamports < amount:
            raise InsufficientFunding(
                f"Payer {payer} has {payer_info.lamports} lamports, needs {amount}",
                payer=payer,
            )
        self._accounts[payer] = replace(payer_info, lamports=payer_info.lamports - amount)

    def ensure_funded_and_owned(
        self,
        address: Address,
        size: int,
        owner: Address,
        seeds: Sequence[SeedLike],
        payer: Address,
    ) -> None:
        try:
            signer = create_program_address(seeds, owner)
        except InvalidSeeds:
            raise AddressMismatch("Seeds do not derive a program address") from None
        if signer != address:
            raise AddressMismatch(
                f"Seeds derive {signer}, not {address}",
                expected=signer,
                supplied=address,
            )

        with self._lock:
            current = self.account(address)
            if current.owner not in (SYSTEM_ID, owner):
                raise OwnerMismatch(f"{address} is owned by {current.owner}")
            if current.data and len(current.data) != size:
                raise LengthMismatch(
                    f"{address} holds {len(current.data)} bytes, expected {size}",
                )

            needed = max(self.minimum_balance(size) - current.lamports, 0)
            if needed:
                self._debit(payer, needed)

            data = current.data or b"\x00" * size
            self._accounts[address] = AccountInfo(
                address=address,
                lamports=current.lamports + needed,
                owner=owner,
                data=data,
            )

        logger.debug(
            "Storage ensured",
            operation="ensure_funded_and_owned",
            address=str(address),
            size=size,
            topped_up=needed,
        )

    def write(self, address: Address, data: bytes, writer: Address) -> None:
        with self._lock:
            current = self.account(address)
            if current.owner != writer:
                raise OwnerMismatch(f"{writer} cannot write {address} owned by {current.owner}")
            if len(data) != len(current.data):
                raise LengthMismatch(
                    f"Write of {len(data)} bytes to {len(current.data)}-byte record",
                )
            self._accounts[address] = replace(current, data=bytes(data))
            self._write_log.append(address)

    @contextmanager
    def transaction(self) -> Iterator["InMemoryLedger"]:
        """Snapshot accounts; restore them if the block raises."""
        with self._lock:
            saved_accounts = dict(self._accounts)
            saved_log = list(self._write_log)
            try:
                yield self
            except BaseException:
                self._accounts = saved_accounts
                self._write_log = saved_log
                raise
