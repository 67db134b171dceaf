from __future__ import annotations

import secrets
import time
from typing import Callable, List, Optional

from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from ..clients.metadata_client import TokenMetadataClient
from ..clients.transport import LedgerTransport
from ..codec import encode_instruction
from ..config import UranusConfig
from ..constants import SYSTEM_PROGRAM
from ..errors import InvalidDirection, ValidationError
from ..fees import (
    SolAmount,
    compute_paid_amount,
    compute_position_size,
    quote_fees,
    sol_to_lamports,
    validate_leverage,
)
from ..logging import log
from ..models import (
    ClosePositionPlan,
    ClosePositionRequest,
    Direction,
    OpenPositionPlan,
    OpenPositionRequest,
)
from ..pdas import derive_market_address, derive_position_address, nonce_seed

__all__ = [
    "parse_direction",
    "default_nonce",
    "open_position_accounts",
    "close_position_accounts",
    "build_open_position_instruction",
    "build_close_position_instruction",
    "TransactionBuilder",
]


def parse_direction(direction: object) -> Direction:
    if isinstance(direction, Direction):
        return direction
    if isinstance(direction, str):
        d = direction.strip().lower()
        if d == "long":
            return Direction.LONG
        if d == "short":
            return Direction.SHORT
    raise InvalidDirection(direction)


def default_nonce() -> int:
    """Millisecond clock with three random low digits; stays below 2**53."""
    return int(time.time() * 1000) * 1000 + secrets.randbelow(1000)


def _require_pubkey(name: str, value: object) -> Pubkey:
    if not isinstance(value, Pubkey):
        raise ValidationError(f"{name} is required and must be a Pubkey")
    return value


# ---------------------------------------------------------------------------
# Account roles (order and flags are part of the wire contract)
# ---------------------------------------------------------------------------

def open_position_accounts(
    cfg: UranusConfig, owner: Pubkey, position_address: Pubkey, market_address: Pubkey
) -> List[AccountMeta]:
    return [
        AccountMeta(pubkey=owner, is_signer=True, is_writable=True),
        AccountMeta(pubkey=owner, is_signer=False, is_writable=False),
        AccountMeta(pubkey=position_address, is_signer=False, is_writable=True),
        AccountMeta(pubkey=market_address, is_signer=False, is_writable=True),
        AccountMeta(pubkey=cfg.dex_pubkey, is_signer=False, is_writable=True),
        AccountMeta(pubkey=cfg.dex_fees_pubkey, is_signer=False, is_writable=True),
        AccountMeta(pubkey=SYSTEM_PROGRAM, is_signer=False, is_writable=False),
    ]


def close_position_accounts(owner: Pubkey, position_address: Pubkey) -> List[AccountMeta]:
    return [
        AccountMeta(pubkey=position_address, is_signer=False, is_writable=True),
        AccountMeta(pubkey=owner, is_signer=True, is_writable=True),
    ]


def build_open_position_instruction(
    cfg: UranusConfig,
    owner: Pubkey,
    request: OpenPositionRequest,
    position_address: Optional[Pubkey] = None,
    market_address: Optional[Pubkey] = None,
) -> Instruction:
    if position_address is None:
        position_address = derive_position_address(cfg.program_id, owner, request.position_nonce)
    if market_address is None:
        market_address = derive_market_address(cfg.program_id, request.market_mint)
    return Instruction(
        program_id=cfg.program_id,
        accounts=open_position_accounts(cfg, owner, position_address, market_address),
        data=encode_instruction(request),
    )


def build_close_position_instruction(
    cfg: UranusConfig, owner: Pubkey, request: ClosePositionRequest, position_address: Optional[Pubkey] = None
) -> Instruction:
    if position_address is None:
        position_address = derive_position_address(cfg.program_id, owner, request.position_nonce)
    return Instruction(
        program_id=cfg.program_id,
        accounts=close_position_accounts(owner, position_address),
        data=encode_instruction(request),
    )


def _unsigned_transaction(instruction: Instruction, fee_payer: Pubkey, blockhash: Hash) -> Transaction:
    message = Message.new_with_blockhash([instruction], fee_payer, blockhash)
    return Transaction.new_unsigned(message)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

class TransactionBuilder:
    """Builds unsigned open/close transactions for the Uranus program.

    Signing is left to the caller; :meth:`submit_transaction` forwards an
    already-signed transaction to the transport.
    """

    def __init__(
        self,
        cfg: UranusConfig,
        transport: LedgerTransport,
        metadata: Optional[TokenMetadataClient] = None,
        nonce_factory: Callable[[], int] = default_nonce,
    ) -> None:
        self.cfg = cfg
        self.transport = transport
        self.metadata = metadata or TokenMetadataClient(cfg, transport)
        self.nonce_factory = nonce_factory

    async def build_open_position(
        self,
        owner: Pubkey,
        token_mint: Pubkey,
        sol_amount: SolAmount,
        leverage: int,
        direction: str,
        position_nonce: Optional[int] = None,
    ) -> OpenPositionPlan:
        owner = _require_pubkey("owner", owner)
        token_mint = _require_pubkey("token_mint", token_mint)
        side = parse_direction(direction)
        leverage = validate_leverage(leverage)
        principal = sol_to_lamports(sol_amount)
        nonce = self.nonce_factory() if position_nonce is None else position_nonce
        nonce_seed(nonce)

        # the symbol is written into the account verbatim; no fallback
        symbol = await self.metadata.fetch_symbol(token_mint)

        fees = await quote_fees(self.transport, principal, leverage)
        position_size = compute_position_size(principal, fees, leverage)
        paid_amount = compute_paid_amount(principal, fees)

        request = OpenPositionRequest(
            market_mint=token_mint,
            market_symbol=symbol,
            paid_amount=paid_amount,
            position_size=position_size,
            leverage=leverage,
            position_nonce=nonce,
            direction=side,
        )
        position_address = derive_position_address(self.cfg.program_id, owner, nonce)
        market_address = derive_market_address(self.cfg.program_id, token_mint)
        instruction = build_open_position_instruction(self.cfg, owner, request, position_address, market_address)

        blockhash = await self.transport.get_latest_blockhash()
        transaction = _unsigned_transaction(instruction, owner, blockhash)

        log.info(
            f"open {side.label} {symbol} x{leverage}",
            source="TransactionBuilder",
            payload={"position": str(position_address), "nonce": nonce, "paid": paid_amount, "size": position_size},
        )
        return OpenPositionPlan(
            request=request,
            instruction=instruction,
            transaction=transaction,
            position_address=position_address,
            market_address=market_address,
            position_nonce=nonce,
            fees=fees,
            total_cost=paid_amount,
            recent_blockhash=blockhash,
        )

    async def build_close_position(
        self,
        owner: Pubkey,
        position_nonce: int,
        position_address: Optional[Pubkey] = None,
    ) -> ClosePositionPlan:
        owner = _require_pubkey("owner", owner)
        nonce_seed(position_nonce)
        if position_address is None:
            position_address = derive_position_address(self.cfg.program_id, owner, position_nonce)
        else:
            position_address = _require_pubkey("position_address", position_address)

        request = ClosePositionRequest(position_nonce=position_nonce, close_position=True)
        instruction = build_close_position_instruction(self.cfg, owner, request, position_address)
        blockhash = await self.transport.get_latest_blockhash()
        transaction = _unsigned_transaction(instruction, owner, blockhash)

        log.info(
            "close position",
            source="TransactionBuilder",
            payload={"position": str(position_address), "nonce": position_nonce},
        )
        return ClosePositionPlan(
            request=request,
            instruction=instruction,
            transaction=transaction,
            position_address=position_address,
            recent_blockhash=blockhash,
        )

    async def submit_transaction(self, signed: Transaction) -> str:
        if not signed.is_signed():
            raise ValidationError("transaction must be fully signed before submission")
        signature = await self.transport.send_raw_transaction(bytes(signed))
        log.info("submitted transaction", source="TransactionBuilder", payload={"signature": signature})
        return signature
