import os
import sys
from typing import Dict, List, Optional, Sequence

import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT)

from uranus_core.clients.metadata_client import METADATA_HEADER
from uranus_core.config import UranusConfig
from uranus_core.models import AccountSnapshot, KeyedAccount, SignatureInfo, TransactionRecord


def pk(n: int) -> Pubkey:
    """Deterministic test key: 32 copies of byte ``n``."""
    return Pubkey.from_bytes(bytes([n]) * 32)


def metadata_bytes(mint: Pubkey, symbol: str, name: str = "Test Token", uri: str = "") -> bytes:
    return METADATA_HEADER.build({
        "key": 4,
        "update_authority": bytes(32),
        "mint": bytes(mint),
        "name": name,
        "symbol": symbol,
        "uri": uri,
    })


def tx_record(sig: str, pre=(10, 0), post=(4, 6), programs=(), logs=(), block_time=None) -> TransactionRecord:
    return TransactionRecord(
        signature=sig,
        block_time=block_time,
        program_ids=tuple(str(p) for p in programs),
        pre_balances=tuple(pre),
        post_balances=tuple(post),
        log_messages=tuple(logs),
    )


class FakeTransport:
    """In-memory LedgerTransport that records every call."""

    def __init__(
        self,
        accounts: Optional[Dict[Pubkey, AccountSnapshot]] = None,
        program_accounts: Optional[List[KeyedAccount]] = None,
        rent: int = 2_000_000,
        blockhash: Optional[Hash] = None,
        signature_pages: Optional[List[List[SignatureInfo]]] = None,
        transactions: Optional[Dict[str, TransactionRecord]] = None,
    ):
        self.accounts = dict(accounts or {})
        self.program_accounts = list(program_accounts or [])
        self.rent = rent
        self.blockhash = blockhash or Hash.default()
        self.signature_pages = list(signature_pages or [])
        self.transactions = dict(transactions or {})
        self.calls: List[tuple] = []
        self.sent: List[bytes] = []
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        self.closed = True

    async def send_raw_transaction(self, payload: bytes) -> str:
        self.calls.append(("send_raw_transaction", len(payload)))
        self.sent.append(payload)
        return "sig-submitted"

    async def get_latest_blockhash(self) -> Hash:
        self.calls.append(("get_latest_blockhash",))
        return self.blockhash

    async def get_account_info(self, address: Pubkey) -> Optional[AccountSnapshot]:
        self.calls.append(("get_account_info", address))
        return self.accounts.get(address)

    async def get_program_accounts(self, program_id: Pubkey) -> List[KeyedAccount]:
        self.calls.append(("get_program_accounts", program_id))
        return list(self.program_accounts)

    async def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        self.calls.append(("get_minimum_balance_for_rent_exemption", size))
        return self.rent

    async def get_signatures_for_address(
        self, address: Pubkey, limit: int, before: Optional[str] = None
    ) -> List[SignatureInfo]:
        self.calls.append(("get_signatures_for_address", address, limit, before))
        if not self.signature_pages:
            return []
        return self.signature_pages.pop(0)

    async def get_parsed_transactions(self, signatures: Sequence[str]) -> List[Optional[TransactionRecord]]:
        self.calls.append(("get_parsed_transactions", list(signatures)))
        return [self.transactions.get(s) for s in signatures]

    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def cfg() -> UranusConfig:
    return UranusConfig(rpc_url="https://rpc.test", price_url="https://price.test/price")


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
