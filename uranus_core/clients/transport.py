"""The ledger operations the Uranus client needs, as a protocol.

Services depend on this protocol only; :class:`SolanaRpcTransport` is the
production implementation and tests use in-memory fakes.
"""
from __future__ import annotations

from typing import List, Optional, Protocol, Sequence

from solders.hash import Hash
from solders.pubkey import Pubkey

from ..models import AccountSnapshot, KeyedAccount, SignatureInfo, TransactionRecord


class LedgerTransport(Protocol):
    async def send_raw_transaction(self, payload: bytes) -> str:
        ...

    async def get_latest_blockhash(self) -> Hash:
        ...

    async def get_account_info(self, address: Pubkey) -> Optional[AccountSnapshot]:
        ...

    async def get_program_accounts(self, program_id: Pubkey) -> List[KeyedAccount]:
        ...

    async def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        ...

    async def get_signatures_for_address(
        self, address: Pubkey, limit: int, before: Optional[str] = None
    ) -> List[SignatureInfo]:
        ...

    async def get_parsed_transactions(
        self, signatures: Sequence[str]
    ) -> List[Optional[TransactionRecord]]:
        ...
