from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import IntEnum
from typing import ClassVar, Optional, Tuple, Union

from solders.hash import Hash
from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from .constants import IX_INITIALIZE, IX_USER_MODIFY, LAMPORTS_PER_SOL, POSITION_LONG, POSITION_SHORT


def lamports_to_sol(lamports: int) -> Decimal:
    return Decimal(int(lamports)) / LAMPORTS_PER_SOL


class Direction(IntEnum):
    LONG = POSITION_LONG
    SHORT = POSITION_SHORT

    @property
    def label(self) -> str:
        return self.name


# ---------------------------------------------------------------------------
# On-chain records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PositionRecord:
    """Snapshot of a position account. Amounts are raw lamports."""

    owner: Pubkey
    market_mint: Pubkey
    market_symbol: str
    entry_price: int
    liquidation_price: int
    paid_amount: int
    position_size: int
    leverage: int
    closed: int
    position_nonce: int
    pnl: int
    direction: Direction

    @property
    def is_closed(self) -> bool:
        return self.closed != 0

    @property
    def side(self) -> str:
        return "LONG" if self.direction == Direction.LONG else "SHORT"

    @property
    def entry_price_sol(self) -> Decimal:
        return lamports_to_sol(self.entry_price)

    @property
    def liquidation_price_sol(self) -> Decimal:
        return lamports_to_sol(self.liquidation_price)

    @property
    def paid_amount_sol(self) -> Decimal:
        return lamports_to_sol(self.paid_amount)

    @property
    def position_size_sol(self) -> Decimal:
        return lamports_to_sol(self.position_size)


@dataclass(frozen=True)
class OpenPositionRequest:
    DISCRIMINATOR: ClassVar[int] = IX_INITIALIZE

    market_mint: Pubkey
    market_symbol: str
    paid_amount: int
    position_size: int
    leverage: int
    position_nonce: int
    direction: Direction


@dataclass(frozen=True)
class ClosePositionRequest:
    DISCRIMINATOR: ClassVar[int] = IX_USER_MODIFY

    position_nonce: int
    close_position: bool = True


PositionInstruction = Union[OpenPositionRequest, ClosePositionRequest]


# ---------------------------------------------------------------------------
# Builder results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FeeBreakdown:
    base_fee: int
    leverage_fee: int
    account_rent: int

    @property
    def percentage_fee(self) -> int:
        return self.base_fee + self.leverage_fee

    @property
    def total(self) -> int:
        return self.base_fee + self.leverage_fee + self.account_rent

    @property
    def total_sol(self) -> Decimal:
        return lamports_to_sol(self.total)


@dataclass(frozen=True)
class OpenPositionPlan:
    request: OpenPositionRequest
    instruction: Instruction
    transaction: Transaction
    position_address: Pubkey
    market_address: Pubkey
    position_nonce: int
    fees: FeeBreakdown
    total_cost: int
    recent_blockhash: Hash

    @property
    def fees_sol(self) -> Decimal:
        return self.fees.total_sol

    @property
    def total_cost_sol(self) -> Decimal:
        return lamports_to_sol(self.total_cost)


@dataclass(frozen=True)
class ClosePositionPlan:
    request: ClosePositionRequest
    instruction: Instruction
    transaction: Transaction
    position_address: Pubkey
    recent_blockhash: Hash


# ---------------------------------------------------------------------------
# Transport snapshots
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AccountSnapshot:
    lamports: int
    data: bytes = b""
    owner: Optional[Pubkey] = None


@dataclass(frozen=True)
class KeyedAccount:
    pubkey: Pubkey
    account: AccountSnapshot


@dataclass(frozen=True)
class SignatureInfo:
    signature: str
    block_time: Optional[int]
    slot: int = 0
    err: Optional[object] = None


@dataclass(frozen=True)
class TransactionRecord:
    """The parts of a parsed transaction the activity layer reads."""

    signature: str
    block_time: Optional[int]
    program_ids: Tuple[str, ...]
    pre_balances: Tuple[int, ...]
    post_balances: Tuple[int, ...]
    log_messages: Tuple[str, ...] = ()

    def invokes(self, program_id: Pubkey) -> bool:
        return str(program_id) in self.program_ids


@dataclass(frozen=True)
class TokenMetadata:
    mint: Pubkey
    name: str
    symbol: str
    uri: str = ""


@dataclass(frozen=True)
class MarketLiquidity:
    address: Pubkey
    lamports: int

    @property
    def liquidity(self) -> Decimal:
        return lamports_to_sol(self.lamports)


@dataclass(frozen=True)
class ActivitySummary:
    market_address: Pubkey
    window_hours: float
    signatures: Tuple[SignatureInfo, ...]
    transactions: Tuple[TransactionRecord, ...]
    open_orders: Tuple[TransactionRecord, ...] = field(default_factory=tuple)
    volume_lamports: int = 0
    order_volume_lamports: int = 0

    @property
    def volume(self) -> Decimal:
        return lamports_to_sol(self.volume_lamports)

    @property
    def order_volume(self) -> Decimal:
        return lamports_to_sol(self.order_volume_lamports)

    @property
    def open_order_count(self) -> int:
        return len(self.open_orders)
