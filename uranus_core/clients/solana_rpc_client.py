from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

import httpx
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment
from solana.rpc.core import RPCException
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature

from ..config import UranusConfig
from ..errors import TransportError
from ..logging import log
from ..models import AccountSnapshot, KeyedAccount, SignatureInfo, TransactionRecord

_HEADERS = {"Content-Type": "application/json", "User-Agent": "uranus-core"}

# solana-py raises these for node errors and connection failures
_RPC_ERRORS = (SolanaRpcException, RPCException, httpx.HTTPError)


@contextmanager
def _rpc_call(method: str) -> Iterator[None]:
    try:
        yield
    except _RPC_ERRORS as exc:
        raise TransportError(f"{method} failed: {exc}") from exc


def parse_transaction(signature: str, result: Optional[Dict[str, Any]]) -> Optional[TransactionRecord]:
    """Flatten a ``getTransaction`` (jsonParsed) result into a TransactionRecord."""
    if not result:
        return None
    tx = result.get("transaction") or {}
    message = tx.get("message") or {}
    meta = result.get("meta") or {}
    program_ids = tuple(
        str(ix.get("programId"))
        for ix in (message.get("instructions") or [])
        if isinstance(ix, dict) and ix.get("programId")
    )
    sigs = tx.get("signatures") or []
    return TransactionRecord(
        signature=sigs[0] if sigs else signature,
        block_time=result.get("blockTime"),
        program_ids=program_ids,
        pre_balances=tuple(int(b) for b in (meta.get("preBalances") or [])),
        post_balances=tuple(int(b) for b in (meta.get("postBalances") or [])),
        log_messages=tuple(meta.get("logMessages") or []),
    )


class SolanaRpcTransport:
    """:class:`LedgerTransport` over solana-py's AsyncClient.

    ``getTransaction`` has no batch form in solana-py, so parsed transactions
    go out as one JSON-RPC batch POST through httpx.
    """

    def __init__(
        self,
        cfg: UranusConfig,
        client: Optional[AsyncClient] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.cfg = cfg
        self.commitment = Commitment(cfg.commitment)
        self.client = client or AsyncClient(cfg.rpc_url, commitment=self.commitment, timeout=cfg.http_timeout)
        self._http_transport = http_transport

    async def __aenter__(self) -> "SolanaRpcTransport":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.close()

    # ---------- typed calls ----------
    async def send_raw_transaction(self, payload: bytes) -> str:
        with _rpc_call("sendTransaction"):
            resp = await self.client.send_raw_transaction(payload)
        return str(resp.value)

    async def get_latest_blockhash(self) -> Hash:
        with _rpc_call("getLatestBlockhash"):
            resp = await self.client.get_latest_blockhash(commitment=self.commitment)
        return resp.value.blockhash

    async def get_account_info(self, address: Pubkey) -> Optional[AccountSnapshot]:
        with _rpc_call("getAccountInfo"):
            resp = await self.client.get_account_info(address, commitment=self.commitment)
        acc = resp.value
        if acc is None:
            return None
        return AccountSnapshot(lamports=acc.lamports, data=bytes(acc.data), owner=acc.owner)

    async def get_program_accounts(self, program_id: Pubkey) -> List[KeyedAccount]:
        with _rpc_call("getProgramAccounts"):
            resp = await self.client.get_program_accounts(
                program_id, commitment=self.commitment, encoding="base64"
            )
        out: List[KeyedAccount] = []
        for item in resp.value or []:
            acc = item.account
            out.append(
                KeyedAccount(
                    pubkey=item.pubkey,
                    account=AccountSnapshot(lamports=acc.lamports, data=bytes(acc.data), owner=acc.owner),
                )
            )
        log.debug(f"getProgramAccounts -> {len(out)} accounts", source="SolanaRpcTransport")
        return out

    async def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        with _rpc_call("getMinimumBalanceForRentExemption"):
            resp = await self.client.get_minimum_balance_for_rent_exemption(size, commitment=self.commitment)
        return int(resp.value)

    async def get_signatures_for_address(
        self, address: Pubkey, limit: int, before: Optional[str] = None
    ) -> List[SignatureInfo]:
        with _rpc_call("getSignaturesForAddress"):
            resp = await self.client.get_signatures_for_address(
                address,
                before=Signature.from_string(before) if before else None,
                limit=limit,
                commitment=self.commitment,
            )
        return [
            SignatureInfo(
                signature=str(s.signature),
                block_time=s.block_time,
                slot=s.slot,
                err=s.err,
            )
            for s in (resp.value or [])
        ]

    # ---------- raw JSON-RPC batch ----------
    async def get_parsed_transactions(
        self, signatures: Sequence[str]
    ) -> List[Optional[TransactionRecord]]:
        if not signatures:
            return []
        body = [
            {
                "jsonrpc": "2.0",
                "id": i,
                "method": "getTransaction",
                "params": [
                    sig,
                    {
                        "encoding": "jsonParsed",
                        "maxSupportedTransactionVersion": 0,
                        "commitment": self.cfg.commitment,
                    },
                ],
            }
            for i, sig in enumerate(signatures)
        ]
        replies = await self._post_batch(body)
        by_id: Dict[int, Dict[str, Any]] = {}
        for reply in replies:
            if "error" in reply:
                raise TransportError(f"getTransaction error: {reply['error']}")
            by_id[int(reply.get("id", -1))] = reply
        return [parse_transaction(sig, (by_id.get(i) or {}).get("result")) for i, sig in enumerate(signatures)]

    async def _post_batch(self, body: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        kwargs: Dict[str, Any] = {"timeout": self.cfg.http_timeout, "headers": _HEADERS}
        if self._http_transport is not None:
            kwargs["transport"] = self._http_transport
        with _rpc_call("getTransaction batch"):
            async with httpx.AsyncClient(**kwargs) as http:
                resp = await http.post(self.cfg.rpc_url, json=body)
        if resp.status_code != 200:
            raise TransportError(f"HTTP {resp.status_code} {resp.text[:200]}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise TransportError(f"RPC batch reply is not JSON: {resp.text[:200]}") from exc
        if isinstance(data, dict):
            # whole-batch rejection comes back as a single error object
            raise TransportError(f"RPC batch rejected: {data.get('error', data)}")
        return data
