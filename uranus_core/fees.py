"""Fee schedule and position sizing.

Integer lamports throughout, floor division, same order of operations as the
on-chain program so client totals match what is debited.
"""
from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Union

from .constants import (
    BASE_FEE_BPS,
    BASIS_POINTS,
    LAMPORTS_PER_SOL,
    LEVERAGE_FEE_BPS,
    MAX_LEVERAGE,
    MIN_LEVERAGE,
    MIN_POSITION_SIZE_LAMPORTS,
    POSITION_ACCOUNT_SIZE,
)
from .errors import InvalidLeverage, ValidationError
from .models import FeeBreakdown, lamports_to_sol

if TYPE_CHECKING:
    from .clients.transport import LedgerTransport

SolAmount = Union[int, float, str, Decimal]

__all__ = [
    "validate_leverage",
    "sol_to_lamports",
    "lamports_to_sol",
    "compute_fees",
    "compute_position_size",
    "compute_paid_amount",
    "quote_fees",
]


def validate_leverage(leverage: object) -> int:
    if isinstance(leverage, bool) or not isinstance(leverage, int):
        raise InvalidLeverage(leverage)
    if not MIN_LEVERAGE <= leverage <= MAX_LEVERAGE:
        raise InvalidLeverage(leverage)
    return leverage


def sol_to_lamports(amount: SolAmount) -> int:
    """Convert a SOL amount to whole lamports (floor). Must be positive."""
    if isinstance(amount, bool):
        raise ValidationError(f"SOL amount must be a number, got {amount!r}")
    try:
        dec = Decimal(str(amount))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"SOL amount must be a number, got {amount!r}") from exc
    if not dec.is_finite() or dec <= 0:
        raise ValidationError(f"SOL amount must be positive, got {amount!r}")
    lamports = int((dec * LAMPORTS_PER_SOL).to_integral_value(rounding=ROUND_FLOOR))
    if lamports <= 0:
        raise ValidationError(f"SOL amount {amount!r} is below one lamport")
    return lamports


def compute_fees(principal: int, leverage: int, account_rent: int) -> FeeBreakdown:
    leverage = validate_leverage(leverage)
    if principal < MIN_POSITION_SIZE_LAMPORTS:
        raise ValidationError(
            f"principal {principal} lamports is below the minimum {MIN_POSITION_SIZE_LAMPORTS}"
        )
    if account_rent < 0:
        raise ValidationError(f"account rent must not be negative, got {account_rent}")
    base_fee = principal * BASE_FEE_BPS // BASIS_POINTS
    leverage_fee = principal * LEVERAGE_FEE_BPS * leverage // BASIS_POINTS
    return FeeBreakdown(base_fee=base_fee, leverage_fee=leverage_fee, account_rent=account_rent)


def compute_position_size(principal: int, fees: FeeBreakdown, leverage: int) -> int:
    """(principal - base fee - leverage fee - rent) * leverage."""
    leverage = validate_leverage(leverage)
    net = principal - fees.base_fee - fees.leverage_fee - fees.account_rent
    if net <= 0:
        raise ValidationError(f"principal {principal} does not cover fees of {fees.total} lamports")
    size = net * leverage
    if size < MIN_POSITION_SIZE_LAMPORTS:
        raise ValidationError(
            f"position size {size} lamports is below the minimum {MIN_POSITION_SIZE_LAMPORTS}"
        )
    return size


def compute_paid_amount(principal: int, fees: FeeBreakdown) -> int:
    """Total debited from the owner: principal plus every fee."""
    return principal + fees.total


async def quote_fees(transport: "LedgerTransport", principal: int, leverage: int) -> FeeBreakdown:
    """Like :func:`compute_fees` with rent read live for a position account."""
    validate_leverage(leverage)
    rent = await transport.get_minimum_balance_for_rent_exemption(POSITION_ACCOUNT_SIZE)
    return compute_fees(principal, leverage, rent)
