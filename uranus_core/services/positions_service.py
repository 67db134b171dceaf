from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import List, Optional

from solders.pubkey import Pubkey

from ..clients.transport import LedgerTransport
from ..codec import RecordKind, decode
from ..config import UranusConfig
from ..constants import POSITION_ACCOUNT_SIZE
from ..errors import AccountNotFound
from ..logging import log
from ..models import KeyedAccount, MarketLiquidity, PositionRecord, lamports_to_sol
from ..pdas import derive_market_address

MARKET = "market"
POSITION = "position"


def classify_account(data: bytes) -> Optional[str]:
    """Market accounts carry no data, positions exactly one record; others are neither."""
    size = len(data)
    if size == 0:
        return MARKET
    if size == POSITION_ACCOUNT_SIZE:
        return POSITION
    return None


class PositionsService:
    """Read-side queries over accounts owned by the Uranus program.

    Nothing is cached: every call goes back to the transport.
    """

    def __init__(self, cfg: UranusConfig, transport: LedgerTransport) -> None:
        self.cfg = cfg
        self.transport = transport

    async def _program_accounts(self, kind: str) -> List[KeyedAccount]:
        accounts = await self.transport.get_program_accounts(self.cfg.program_id)
        return [a for a in accounts if classify_account(a.account.data) == kind]

    async def list_positions(
        self,
        owner: Optional[Pubkey] = None,
        token_mint: Optional[Pubkey] = None,
        symbol: Optional[str] = None,
    ) -> List[PositionRecord]:
        """Decode every position account, narrowed by a single filter.

        A filter applies only when it is the sole one supplied; with two or
        more, none is applied and every position comes back. The symbol
        filter is a case-insensitive substring match.
        """
        accounts = await self._program_accounts(POSITION)
        positions = [decode(RecordKind.POSITION, a.account.data) for a in accounts]

        supplied = [
            name
            for name, given in (("owner", owner is not None), ("token_mint", token_mint is not None), ("symbol", bool(symbol)))
            if given
        ]
        if len(supplied) > 1:
            log.debug(f"filters {supplied} cannot be combined; none applied", source="PositionsService")
        elif owner is not None:
            positions = [p for p in positions if p.owner == owner]
        elif token_mint is not None:
            positions = [p for p in positions if p.market_mint == token_mint]
        elif symbol:
            needle = symbol.lower()
            positions = [p for p in positions if needle in p.market_symbol.lower()]

        log.debug(f"{len(positions)} positions", source="PositionsService")
        return positions

    async def get_position(self, position_address: Pubkey) -> PositionRecord:
        account = await self.transport.get_account_info(position_address)
        if account is None:
            raise AccountNotFound(position_address, kind="position account")
        return decode(RecordKind.POSITION, account.data)

    async def get_market_liquidity(self, token_mint: Pubkey) -> Decimal:
        market = derive_market_address(self.cfg.program_id, token_mint)
        account = await self.transport.get_account_info(market)
        if account is None:
            raise AccountNotFound(market, kind="market account")
        return lamports_to_sol(account.lamports)

    async def list_markets(self) -> List[MarketLiquidity]:
        markets = await self._program_accounts(MARKET)
        # one balance lookup per market, issued together
        infos = await asyncio.gather(*(self.transport.get_account_info(m.pubkey) for m in markets))
        out = [
            MarketLiquidity(address=m.pubkey, lamports=info.lamports if info is not None else 0)
            for m, info in zip(markets, infos)
        ]
        log.debug(f"{len(out)} markets", source="PositionsService")
        return out
