from __future__ import annotations

from borsh_construct import CStruct, String, U8
from construct import Bytes, ConstructError
from solders.pubkey import Pubkey

from ..config import UranusConfig
from ..errors import MalformedRecord, MetadataIncomplete, MetadataNotFound
from ..logging import log
from ..models import TokenMetadata
from ..pdas import derive_metadata_address
from .transport import LedgerTransport

# Leading fields of a Metaplex Metadata account; the rest is not read.
METADATA_HEADER = CStruct(
    "key" / U8,
    "update_authority" / Bytes(32),
    "mint" / Bytes(32),
    "name" / String,
    "symbol" / String,
    "uri" / String,
)


def _clean(value: str) -> str:
    # on-chain strings are NUL-padded to their max length
    return value.replace("\x00", "").strip()


def parse_metadata(mint: Pubkey, data: bytes) -> TokenMetadata:
    try:
        c = METADATA_HEADER.parse(bytes(data))
    except (ConstructError, UnicodeDecodeError) as exc:
        raise MalformedRecord(f"unreadable metadata account for mint {mint}: {exc}") from exc
    return TokenMetadata(mint=mint, name=_clean(c.name), symbol=_clean(c.symbol), uri=_clean(c.uri))


class TokenMetadataClient:
    """Reads a mint's Metaplex metadata through the ledger transport."""

    def __init__(self, cfg: UranusConfig, transport: LedgerTransport) -> None:
        self.cfg = cfg
        self.transport = transport

    def metadata_address(self, mint: Pubkey) -> Pubkey:
        return derive_metadata_address(mint, self.cfg.metadata_program_id)

    async def fetch_token_metadata(self, mint: Pubkey) -> TokenMetadata:
        address = self.metadata_address(mint)
        account = await self.transport.get_account_info(address)
        if account is None or not account.data:
            raise MetadataNotFound(f"Metadata account not found for mint {mint} ({address})")
        meta = parse_metadata(mint, account.data)
        log.debug(f"metadata {mint}: symbol={meta.symbol!r}", source="TokenMetadataClient")
        return meta

    async def fetch_symbol(self, mint: Pubkey) -> str:
        meta = await self.fetch_token_metadata(mint)
        if not meta.symbol:
            raise MetadataIncomplete(f"Market metadata symbol not found for mint {mint}")
        return meta.symbol
