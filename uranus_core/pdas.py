from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from solders.pubkey import Pubkey

from .constants import (
    MARKET_SEED,
    MARKET_VERSION,
    METADATA_PROGRAM,
    METADATA_SEED,
    POSITION_SEED,
)
from .errors import AddressDerivationExhausted, ValidationError

__all__ = [
    "create_program_address",
    "find_program_address",
    "derive_market_address",
    "derive_position_address",
    "derive_metadata_address",
    "nonce_seed",
]

MAX_SEEDS = 16
MAX_SEED_LEN = 32

# ---------------------------------------------------------------------------
# Core helper
# ---------------------------------------------------------------------------

def _check_seeds(seeds: Sequence[bytes]) -> List[bytes]:
    if len(seeds) >= MAX_SEEDS:
        # one slot is reserved for the bump
        raise ValidationError(f"too many seeds ({len(seeds)}); max {MAX_SEEDS - 1} plus bump")
    out: List[bytes] = []
    for s in seeds:
        if not isinstance(s, (bytes, bytearray)):
            raise ValidationError(f"seed must be bytes, got {type(s).__name__}")
        if len(s) > MAX_SEED_LEN:
            raise ValidationError(f"seed too long ({len(s)}B > {MAX_SEED_LEN}B)")
        out.append(bytes(s))
    return out


def create_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Optional[Pubkey]:
    """Address for one full seed list (bump included); None when it lands on the curve."""
    try:
        return Pubkey.create_program_address(list(seeds), program_id)
    except ValueError:
        return None


def find_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Tuple[Pubkey, int]:
    """Try bumps 255..0 and return the first off-curve address with its bump."""
    checked = _check_seeds(seeds)
    for bump in range(255, -1, -1):
        pda = create_program_address([*checked, bytes([bump])], program_id)
        if pda is not None:
            return pda, bump
    raise AddressDerivationExhausted(
        f"no off-curve address for {len(checked)} seeds under program {program_id}"
    )


# ---------------------------------------------------------------------------
# Uranus addresses
# ---------------------------------------------------------------------------

def nonce_seed(nonce: int) -> bytes:
    if isinstance(nonce, bool) or not isinstance(nonce, int):
        raise ValidationError(f"position nonce must be an integer, got {nonce!r}")
    if not 0 <= nonce < 2**64:
        raise ValidationError(f"position nonce {nonce} does not fit in u64")
    return nonce.to_bytes(8, "little")


def derive_market_address(program_id: Pubkey, token_mint: Pubkey) -> Pubkey:
    """Market liquidity PDA: seeds = ["uranus_market", mint, "v1"]."""
    return find_program_address([MARKET_SEED, bytes(token_mint), MARKET_VERSION], program_id)[0]


def derive_position_address(program_id: Pubkey, owner: Pubkey, nonce: int) -> Pubkey:
    """Position PDA: seeds = ["uranus_position", owner, nonce_u64_le]."""
    return find_program_address([POSITION_SEED, bytes(owner), nonce_seed(nonce)], program_id)[0]


def derive_metadata_address(mint: Pubkey, metadata_program: Pubkey = METADATA_PROGRAM) -> Pubkey:
    """Metaplex metadata PDA: seeds = ["metadata", metadata_program, mint]."""
    return find_program_address(
        [METADATA_SEED, bytes(metadata_program), bytes(mint)],
        metadata_program,
    )[0]
