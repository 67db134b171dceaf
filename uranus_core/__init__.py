"""Uranus client core.

Builds and decodes transactions for the Uranus leveraged-position program on
Solana: fixed-layout codec, PDA derivation, fee arithmetic, transaction
building and read-side queries.

Run the console with ``python -m uranus_core``.
"""

__all__ = ["codec", "config", "constants", "errors", "fees", "models", "pdas"]
