"""Collaborator clients: ledger transport, token metadata, price service."""

from .metadata_client import TokenMetadataClient
from .price_client import PriceClient
from .solana_rpc_client import SolanaRpcTransport
from .transport import LedgerTransport

__all__ = ["LedgerTransport", "SolanaRpcTransport", "TokenMetadataClient", "PriceClient"]
