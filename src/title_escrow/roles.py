"""Role checks consulted before every ledger mutation."""

from __future__ import annotations

from .config import ADDRESS_LEN
from .errors import ErrorCode, EscrowError
from .types import Address, Roles, SaleRecord


def check_address(value: object, what: str) -> Address:
    if not isinstance(value, bytes) or len(value) != ADDRESS_LEN:
        raise EscrowError(ErrorCode.INVALID_ADDRESS, f"{what} must be a {ADDRESS_LEN}-byte address")
    return value


class RoleAuthority:
    """Fixed seller/verifier/lender roles plus the per-sale buyer."""

    def __init__(self, roles: Roles):
        check_address(roles.seller, "seller")
        check_address(roles.verifier, "verifier")
        if roles.lender is not None:
            check_address(roles.lender, "lender")
        self._roles = roles

    @property
    def roles(self) -> Roles:
        return self._roles

    @property
    def seller(self) -> Address:
        return self._roles.seller

    @property
    def verifier(self) -> Address:
        return self._roles.verifier

    @property
    def lender(self) -> Address | None:
        return self._roles.lender

    def require_seller(self, caller: Address) -> None:
        if caller != self._roles.seller:
            raise EscrowError(ErrorCode.UNAUTHORIZED, "caller is not the seller")

    def require_verifier(self, caller: Address) -> None:
        if caller != self._roles.verifier:
            raise EscrowError(ErrorCode.UNAUTHORIZED, "caller is not the verifier")

    def require_lender(self, caller: Address) -> None:
        if self._roles.lender is None or caller != self._roles.lender:
            raise EscrowError(ErrorCode.UNAUTHORIZED, "caller is not the lender")

    def require_buyer(self, record: SaleRecord, caller: Address) -> None:
        if caller != record.buyer:
            raise EscrowError(ErrorCode.UNAUTHORIZED, "caller is not the buyer for this sale")

    def require_party(self, record: SaleRecord, caller: Address) -> None:
        if not self.roles_of(caller, record):
            raise EscrowError(ErrorCode.UNAUTHORIZED, "caller is not a party to this sale")

    def roles_of(self, caller: Address, record: SaleRecord | None = None) -> frozenset[str]:
        held = set()
        if caller == self._roles.seller:
            held.add("seller")
        if caller == self._roles.verifier:
            held.add("verifier")
        if self._roles.lender is not None and caller == self._roles.lender:
            held.add("lender")
        if record is not None and caller == record.buyer:
            held.add("buyer")
        return frozenset(held)
