"""Market activity statistics from historical transactions.

Volume comes from balance deltas. Open orders are spotted by matching the
program's "Position initialized" log line, a text heuristic that depends on
the on-chain log wording and is kept out of the codec on purpose.
"""
from __future__ import annotations

import time
from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Sequence

from solders.pubkey import Pubkey

from ..clients.transport import LedgerTransport
from ..config import UranusConfig
from ..constants import OPEN_ORDER_LOG_MARKER, SIGNATURE_PAGE_SIZE, TRANSACTION_BATCH_SIZE
from ..errors import ValidationError
from ..logging import log
from ..models import ActivitySummary, SignatureInfo, TransactionRecord, lamports_to_sol
from ..pdas import derive_market_address


def count_volume(txns: Iterable[TransactionRecord]) -> int:
    """Signed sum of the fee payer's (account 0) pre - post balance."""
    total = 0
    for tx in txns:
        if tx.pre_balances and tx.post_balances:
            total += tx.pre_balances[0] - tx.post_balances[0]
    return total


def find_open_orders(txns: Iterable[TransactionRecord]) -> List[TransactionRecord]:
    """One entry per matching log line, so a transaction opening two positions counts twice."""
    orders: List[TransactionRecord] = []
    for tx in txns:
        for line in tx.log_messages:
            if OPEN_ORDER_LOG_MARKER in line:
                orders.append(tx)
    return orders


def order_volume(orders: Iterable[TransactionRecord]) -> int:
    """Gross balance movement: |pre - post| summed over every account."""
    total = 0
    for tx in orders:
        for pre, post in zip(tx.pre_balances, tx.post_balances):
            total += abs(pre - post)
    return total


class ActivityService:
    def __init__(
        self,
        cfg: UranusConfig,
        transport: LedgerTransport,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.cfg = cfg
        self.transport = transport
        self.clock = clock

    async def collect_signatures(self, market_address: Pubkey, window_hours: float) -> List[SignatureInfo]:
        """Page backwards from now until an entry predates the window or history ends.

        Entries without a block time are treated as outside the window.
        """
        if window_hours <= 0:
            raise ValidationError(f"window_hours must be positive, got {window_hours}")
        cutoff = int(self.clock()) - int(window_hours * 60 * 60)

        collected: List[SignatureInfo] = []
        before: Optional[str] = None
        pages = 0
        while True:
            page = await self.transport.get_signatures_for_address(
                market_address, limit=SIGNATURE_PAGE_SIZE, before=before
            )
            pages += 1
            reached_cutoff = False
            for sig in page:
                if sig.block_time is not None and sig.block_time >= cutoff:
                    collected.append(sig)
                else:
                    reached_cutoff = True
                    break
            if reached_cutoff or len(page) < SIGNATURE_PAGE_SIZE:
                break
            before = page[-1].signature

        log.debug(f"{len(collected)} signatures over {pages} pages", source="ActivityService")
        return collected

    async def fetch_program_transactions(self, signatures: Sequence[SignatureInfo]) -> List[TransactionRecord]:
        """Fetch in sequential batches and keep transactions that call the program."""
        fetched: List[Optional[TransactionRecord]] = []
        for i in range(0, len(signatures), TRANSACTION_BATCH_SIZE):
            batch = signatures[i:i + TRANSACTION_BATCH_SIZE]
            fetched.extend(await self.transport.get_parsed_transactions([s.signature for s in batch]))
        return [tx for tx in fetched if tx is not None and tx.invokes(self.cfg.program_id)]

    async def get_volume_and_orders(self, market_address: Pubkey, window_hours: float = 24) -> ActivitySummary:
        with log.timed(f"activity scan {market_address}", source="ActivityService"):
            signatures = await self.collect_signatures(market_address, window_hours)
            txns = await self.fetch_program_transactions(signatures)
        orders = find_open_orders(txns)
        summary = ActivitySummary(
            market_address=market_address,
            window_hours=window_hours,
            signatures=tuple(signatures),
            transactions=tuple(txns),
            open_orders=tuple(orders),
            volume_lamports=count_volume(txns),
            order_volume_lamports=order_volume(orders),
        )
        log.info(
            f"market {market_address}: {len(txns)} txns, {len(orders)} open orders",
            source="ActivityService",
            payload={"volume": str(summary.volume), "window_hours": window_hours},
        )
        return summary

    async def get_market_volume(
        self, market: Pubkey, window_hours: float = 24, is_market_address: bool = False
    ) -> Decimal:
        """Volume for a token mint, or for the market PDA itself when ``is_market_address``."""
        address = market if is_market_address else derive_market_address(self.cfg.program_id, market)
        signatures = await self.collect_signatures(address, window_hours)
        txns = await self.fetch_program_transactions(signatures)
        return lamports_to_sol(count_volume(txns))
