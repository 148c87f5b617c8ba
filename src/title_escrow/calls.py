"""Scripted call entrypoints for the escrow surface."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from .accounts import resolve
from .errors import ErrorCode, EscrowError
from .escrow import TitleEscrow


class CallMethod(Enum):
    LIST_ASSET = "list_asset"
    VERIFY_ASSET_STATUS = "verify_asset_status"
    DEPOSIT_COLLATERAL = "deposit_collateral"
    APPROVE_SALE = "approve_sale"
    FINALIZE_SALE = "finalize_sale"
    CANCEL_SALE = "cancel_sale"
    RETRY_CUSTODY_TRANSFER = "retry_custody_transfer"
    RECLAIM_ASSET = "reclaim_asset"
    GET_BALANCE = "get_balance"
    GET_RECORD = "get_record"


# Arguments holding addresses; hex-encoded in JSON.
_ADDRESS_ARGS = frozenset({"buyer"})


@dataclass
class Call:
    method: CallMethod
    caller: bytes
    args: dict[str, Any] = field(default_factory=dict)


class CallResult:
    """Thin wrapper for call outcomes."""

    def __init__(self, ok: bool, error: Optional[EscrowError] = None, value: Any = None):
        self.ok = ok
        self.error = error
        self.value = value

    @classmethod
    def success(cls, value: Any = None) -> "CallResult":
        return cls(True, None, value)

    @classmethod
    def failure(cls, error: EscrowError) -> "CallResult":
        return cls(False, error)

    @property
    def code(self) -> ErrorCode:
        return self.error.code if self.error else ErrorCode.SUCCESS


def _arg(call: Call, name: str) -> Any:
    try:
        return call.args[name]
    except KeyError:
        raise EscrowError(ErrorCode.INVALID_CALL, f"{call.method.value}: missing argument {name!r}") from None


_HANDLERS: dict[CallMethod, Callable[[TitleEscrow, Call], Any]] = {
    CallMethod.LIST_ASSET: lambda e, c: e.list_asset(
        c.caller, _arg(c, "asset_id"), _arg(c, "buyer"), _arg(c, "price"), _arg(c, "collateral")
    ),
    CallMethod.VERIFY_ASSET_STATUS: lambda e, c: e.verify_asset_status(
        c.caller, _arg(c, "asset_id"), _arg(c, "passed")
    ),
    CallMethod.DEPOSIT_COLLATERAL: lambda e, c: e.deposit_collateral(
        c.caller, _arg(c, "asset_id"), _arg(c, "amount")
    ),
    CallMethod.APPROVE_SALE: lambda e, c: e.approve_sale(c.caller, _arg(c, "asset_id")),
    CallMethod.FINALIZE_SALE: lambda e, c: e.finalize_sale(c.caller, _arg(c, "asset_id")),
    CallMethod.CANCEL_SALE: lambda e, c: e.cancel_sale(c.caller, _arg(c, "asset_id")),
    CallMethod.RETRY_CUSTODY_TRANSFER: lambda e, c: e.retry_custody_transfer(c.caller, _arg(c, "asset_id")),
    CallMethod.RECLAIM_ASSET: lambda e, c: e.reclaim_asset(c.caller, _arg(c, "asset_id")),
    CallMethod.GET_BALANCE: lambda e, c: e.get_balance(),
    CallMethod.GET_RECORD: lambda e, c: e.get_record(_arg(c, "asset_id")),
}


def execute_call(escrow: TitleEscrow, call: Call) -> CallResult:
    """Run one call; escrow errors become a failed result, state untouched."""
    try:
        value = _HANDLERS[call.method](escrow, call)
    except EscrowError as exc:
        return CallResult.failure(exc)
    return CallResult.success(value)


def execute_calls(escrow: TitleEscrow, calls: list[Call]) -> list[CallResult]:
    """Run calls in order. Unlike a block, a failed call does not undo earlier ones."""
    return [execute_call(escrow, call) for call in calls]


def call_from_json(data: dict[str, Any]) -> Call:
    try:
        method = CallMethod(data["method"])
    except (KeyError, ValueError):
        raise EscrowError(ErrorCode.INVALID_CALL, f"unknown call method: {data.get('method')!r}") from None
    if "caller" not in data:
        raise EscrowError(ErrorCode.INVALID_CALL, f"{method.value}: missing caller")
    args = dict(data.get("args") or {})
    for name in _ADDRESS_ARGS & args.keys():
        args[name] = resolve(args[name])
    return Call(method=method, caller=resolve(data["caller"]), args=args)


def call_to_json(call: Call) -> dict[str, Any]:
    args = {
        name: (value.hex() if name in _ADDRESS_ARGS else value)
        for name, value in call.args.items()
    }
    return {"method": call.method.value, "caller": call.caller.hex(), "args": args}
