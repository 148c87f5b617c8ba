"""Title escrow error codes and exceptions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorCategory(IntEnum):
    SUCCESS = 0x00
    VALIDATION = 0x01
    AUTHORIZATION = 0x02
    RESOURCE = 0x03
    STATE = 0x04
    BOUNDARY = 0x05
    INTERNAL = 0xFF


class ErrorCode(IntEnum):
    # Success
    SUCCESS = 0x0000

    # Validation
    INVALID_AMOUNT = 0x0100
    INVALID_ADDRESS = 0x0101
    SELF_OPERATION = 0x0102
    INVALID_CALL = 0x0103

    # Authorization
    UNAUTHORIZED = 0x0200

    # Resource
    INSUFFICIENT_COLLATERAL = 0x0300
    INSUFFICIENT_BALANCE = 0x0301

    # State
    ALREADY_LISTED = 0x0400
    NO_SUCH_SALE = 0x0401
    NOT_VERIFIED = 0x0402
    APPROVAL_MISSING = 0x0403
    WRONG_STATE = 0x0404

    # External boundaries
    CUSTODY_TRANSFER_FAILED = 0x0500
    PAYMENT_FAILED = 0x0501

    # Internal
    INTERNAL_ERROR = 0xFF00
    UNKNOWN = 0xFFFF

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory(self.value >> 8)


@dataclass(frozen=True)
class EscrowError(Exception):
    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.name}({self.code:#06x}): {self.message}"


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# while keeping dataclass fields frozen.
_EXCEPTION_ATTRS = frozenset(("__traceback__", "__context__", "__cause__", "__suppress_context__"))
_frozen_setattr = EscrowError.__setattr__


def _escrow_error_setattr(self: EscrowError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


EscrowError.__setattr__ = _escrow_error_setattr  # type: ignore[method-assign]


def err(code: ErrorCode, message: str) -> EscrowError:
    return EscrowError(code=code, message=message)
