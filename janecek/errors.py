"""
Program error taxonomy.

Every rejection raised by the core is a ProgramError subclass carrying a
stable numeric ErrorCode. Errors are terminal: the invocation aborts and the
caller observes the code. Nothing in the core retries or aggregates errors;
the first violation wins.

Copyright (c) 2026 Janeček Voting. All rights reserved.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, Optional, Type


class ErrorCode(IntEnum):
    """Numeric codes surfaced to the external caller."""

    # Instruction decoding
    INVALID_INSTRUCTION = 0
    INVALID_INSTRUCTION_DATA = 1
    PROGRAM_ID_MISMATCH = 2
    NOT_ENOUGH_ACCOUNT_KEYS = 3

    # Address derivation
    ADDRESS_MISMATCH = 10
    DISAMBIGUATION_MISMATCH = 11
    SEED_TOO_LONG = 12
    INVALID_SEEDS = 13

    # Record admission
    TYPE_TAG_MISMATCH = 20
    LENGTH_MISMATCH = 21
    INVALID_RECORD_DATA = 22
    ALREADY_INITIALIZED = 23
    NOT_INITIALIZED = 24
    MISSING_SIGNER = 25
    ACCOUNT_NOT_WRITABLE = 26
    OWNER_MISMATCH = 27
    INSUFFICIENT_FUNDING = 28
    NAME_TOO_LONG = 29

    # Cross references
    AUTHOR_MISMATCH = 40
    CAMPAIGN_OWNER_MISMATCH = 41
    CAMPAIGN_STATE_MISMATCH = 42

    # Campaign / votes
    CAMPAIGN_ENDED = 50
    ARITHMETIC_OVERFLOW = 51
    ARITHMETIC_UNDERFLOW = 52
    DUPLICATE_POSITIVE_TARGET = 53
    NEGATIVE_BEFORE_POSITIVE = 54
    VOTE_BUDGET_EXHAUSTED = 55


class ProgramError(Exception):
    """Base class for every rejection raised by the voting core."""

    code: ErrorCode = ErrorCode.INVALID_INSTRUCTION
    default_message: str = "program error"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details: Dict[str, Any] = details
        super().__init__(f"{self.code.name}: {self.message}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": int(self.code),
            "name": self.code.name,
            "message": self.message,
            "details": {k: str(v) for k, v in self.details.items()},
        }


# =============================================================================
# INSTRUCTION ERRORS
# =============================================================================

class InvalidInstruction(ProgramError):
    code = ErrorCode.INVALID_INSTRUCTION
    default_message = "Invalid instruction"


class InvalidInstructionData(ProgramError):
    code = ErrorCode.INVALID_INSTRUCTION_DATA
    default_message = "Instruction did not deserialize"


class ProgramIdMismatch(ProgramError):
    code = ErrorCode.PROGRAM_ID_MISMATCH
    default_message = "Program id mismatch"


class NotEnoughAccountKeys(ProgramError):
    code = ErrorCode.NOT_ENOUGH_ACCOUNT_KEYS
    default_message = "Not enough account keys supplied"


# =============================================================================
# ADDRESS ERRORS
# =============================================================================

class AddressMismatch(ProgramError):
    code = ErrorCode.ADDRESS_MISMATCH
    default_message = "Supplied address does not match derived address"


class DisambiguationMismatch(ProgramError):
    code = ErrorCode.DISAMBIGUATION_MISMATCH
    default_message = "Disambiguation byte mismatch"


class SeedTooLong(ProgramError):
    code = ErrorCode.SEED_TOO_LONG
    default_message = "Seed exceeds maximum length"


class InvalidSeeds(ProgramError):
    code = ErrorCode.INVALID_SEEDS
    default_message = "Seeds derive into the reserved identity space"


# =============================================================================
# RECORD ADMISSION ERRORS
# =============================================================================

class TypeTagMismatch(ProgramError):
    code = ErrorCode.TYPE_TAG_MISMATCH
    default_message = "Incorrect record type"


class LengthMismatch(ProgramError):
    code = ErrorCode.LENGTH_MISMATCH
    default_message = "Record length does not match its kind"


class InvalidRecordData(ProgramError):
    code = ErrorCode.INVALID_RECORD_DATA
    default_message = "Record contains an illegal field value"


class AlreadyInitialized(ProgramError):
    code = ErrorCode.ALREADY_INITIALIZED
    default_message = "Record is already initialized"


class NotInitialized(ProgramError):
    code = ErrorCode.NOT_INITIALIZED
    default_message = "Record not initialized yet"


class MissingSigner(ProgramError):
    code = ErrorCode.MISSING_SIGNER
    default_message = "Account is not signer"


class AccountNotWritable(ProgramError):
    code = ErrorCode.ACCOUNT_NOT_WRITABLE
    default_message = "Account is not writable"


class OwnerMismatch(ProgramError):
    code = ErrorCode.OWNER_MISMATCH
    default_message = "Record is not owned by the program"


class InsufficientFunding(ProgramError):
    code = ErrorCode.INSUFFICIENT_FUNDING
    default_message = "Storage deposit does not cover record size"


class NameTooLong(ProgramError):
    code = ErrorCode.NAME_TOO_LONG
    default_message = "Name exceeds 32 bytes"


# =============================================================================
# CROSS-REFERENCE ERRORS
# =============================================================================

class AuthorMismatch(ProgramError):
    code = ErrorCode.AUTHOR_MISMATCH
    default_message = "Author mismatch"


class CampaignOwnerMismatch(ProgramError):
    code = ErrorCode.CAMPAIGN_OWNER_MISMATCH
    default_message = "Campaign owner mismatch"


class CampaignStateMismatch(ProgramError):
    code = ErrorCode.CAMPAIGN_STATE_MISMATCH
    default_message = "Campaign state mismatch"


# =============================================================================
# CAMPAIGN AND VOTE ERRORS
# =============================================================================

class CampaignEnded(ProgramError):
    code = ErrorCode.CAMPAIGN_ENDED
    default_message = "Voting ended"


class ArithmeticOverflow(ProgramError):
    code = ErrorCode.ARITHMETIC_OVERFLOW
    default_message = "Addition overflow"


class ArithmeticUnderflow(ProgramError):
    code = ErrorCode.ARITHMETIC_UNDERFLOW
    default_message = "Subtraction overflow"


class DuplicatePositiveTarget(ProgramError):
    code = ErrorCode.DUPLICATE_POSITIVE_TARGET
    default_message = "Can't vote positive twice for the same party"


class NegativeBeforePositive(ProgramError):
    code = ErrorCode.NEGATIVE_BEFORE_POSITIVE
    default_message = "Before voting negative, vote two times positive"


class VoteBudgetExhausted(ProgramError):
    code = ErrorCode.VOTE_BUDGET_EXHAUSTED
    default_message = "No more votes of this kind"


ERRORS_BY_CODE: Dict[ErrorCode, Type[ProgramError]] = {
    cls.code: cls
    for cls in ProgramError.__subclasses__()
}


def error_for_code(code: int) -> Type[ProgramError]:
    """Look up the exception class for a numeric error code."""
    try:
        return ERRORS_BY_CODE[ErrorCode(code)]
    except (KeyError, ValueError):
        raise ValueError(f"Unknown error code: {code}") from None
