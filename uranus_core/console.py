"""
Uranus Core Console (read-only)

Commands:
  ping
  config
  markets
  positions [--owner <pubkey> | --mint <pubkey> | --symbol <text>]
  liquidity <mint>
  volume <mint> [--hours 24] [--market-address]
  price <ticker>
  fees <sol> <leverage>

Global options: --config <yaml>, --debug.

Configuration comes from --config (YAML with an 'uranus' section) or from
URANUS_* environment variables / .env. Nothing here signs or submits.
"""
from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import asdict, is_dataclass
from decimal import Decimal
from typing import Any, List, Optional

from solders.pubkey import Pubkey

from .clients.price_client import PriceClient
from .clients.solana_rpc_client import SolanaRpcTransport
from .config import UranusConfig, as_dict, load_config, load_config_from_env
from .errors import UranusError
from .fees import compute_fees, compute_paid_amount, compute_position_size, quote_fees, sol_to_lamports
from .logging import configure_console_log
from .models import lamports_to_sol
from .pdas import derive_market_address
from .services.activity_service import ActivityService
from .services.positions_service import PositionsService


# --------- helpers ---------
def _default(obj: Any) -> Any:
    if isinstance(obj, (Pubkey, Decimal)):
        return str(obj)
    if is_dataclass(obj):
        return asdict(obj)
    if isinstance(obj, bytes):
        return obj.hex()
    return str(obj)


def pretty(obj: Any) -> str:
    return json.dumps(obj, indent=2, sort_keys=True, default=_default)


def _load_cfg(args) -> UranusConfig:
    if getattr(args, "config", None):
        return load_config(args.config)
    return load_config_from_env()


def _pubkey(value: str, label: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{label} must be a base58 address: {value!r}") from exc


def _position_row(p) -> dict:
    return {
        "owner": str(p.owner),
        "market_mint": str(p.market_mint),
        "market_symbol": p.market_symbol,
        "entry_price": str(p.entry_price_sol),
        "liquidation_price": str(p.liquidation_price_sol),
        "paid_amount": str(p.paid_amount_sol),
        "position_size": str(p.position_size_sol),
        "leverage": p.leverage,
        "closed": p.closed,
        "position_nonce": p.position_nonce,
        "direction": p.side,
    }


# --------- commands ---------
def cmd_ping(args, cfg):
    print("OK: uranus_core console is alive.")


def cmd_config(args, cfg):
    print(pretty(as_dict(cfg)))


async def cmd_markets(args, cfg):
    async with SolanaRpcTransport(cfg) as transport:
        markets = await PositionsService(cfg, transport).list_markets()
    print(pretty([{"market_account": str(m.address), "liquidity": m.liquidity} for m in markets]))


async def cmd_positions(args, cfg):
    owner = _pubkey(args.owner, "--owner") if args.owner else None
    mint = _pubkey(args.mint, "--mint") if args.mint else None
    async with SolanaRpcTransport(cfg) as transport:
        positions = await PositionsService(cfg, transport).list_positions(owner, mint, args.symbol)
    print(pretty([_position_row(p) for p in positions]))


async def cmd_liquidity(args, cfg):
    mint = _pubkey(args.mint, "mint")
    async with SolanaRpcTransport(cfg) as transport:
        liquidity = await PositionsService(cfg, transport).get_market_liquidity(mint)
    print(pretty({"mint": args.mint, "liquidity": liquidity}))


async def cmd_volume(args, cfg):
    address = _pubkey(args.mint, "mint")
    async with SolanaRpcTransport(cfg) as transport:
        service = ActivityService(cfg, transport)
        if not args.market_address:
            address = derive_market_address(cfg.program_id, address)
        summary = await service.get_volume_and_orders(address, args.hours)
    print(pretty({
        "market_account": str(summary.market_address),
        "window_hours": summary.window_hours,
        "transactions": len(summary.transactions),
        "volume": summary.volume,
        "open_orders": summary.open_order_count,
        "order_volume": summary.order_volume,
    }))


async def cmd_price(args, cfg):
    price = await PriceClient(cfg).get_ticker_price(args.ticker)
    print(pretty({"symbol": args.ticker.upper(), "price": price}))


async def cmd_fees(args, cfg):
    principal = sol_to_lamports(args.sol)
    if args.rent is not None:
        fees = compute_fees(principal, args.leverage, args.rent)
    else:
        async with SolanaRpcTransport(cfg) as transport:
            fees = await quote_fees(transport, principal, args.leverage)
    size = compute_position_size(principal, fees, args.leverage)
    print(pretty({
        "base_fee": lamports_to_sol(fees.base_fee),
        "leverage_fee": lamports_to_sol(fees.leverage_fee),
        "account_rent": lamports_to_sol(fees.account_rent),
        "fees": fees.total_sol,
        "total_cost": lamports_to_sol(compute_paid_amount(principal, fees)),
        "position_size": lamports_to_sol(size),
    }))


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="uranus_core", description="Uranus Core Console")
    p.add_argument("--config", help="YAML config with an 'uranus' section")
    p.add_argument("--debug", action="store_true", help="verbose logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("ping").set_defaults(func=cmd_ping)
    sub.add_parser("config").set_defaults(func=cmd_config)
    sub.add_parser("markets").set_defaults(func=cmd_markets)

    sp = sub.add_parser("positions")
    grp = sp.add_mutually_exclusive_group()
    grp.add_argument("--owner")
    grp.add_argument("--mint")
    grp.add_argument("--symbol")
    sp.set_defaults(func=cmd_positions)

    sp = sub.add_parser("liquidity")
    sp.add_argument("mint")
    sp.set_defaults(func=cmd_liquidity)

    sp = sub.add_parser("volume")
    sp.add_argument("mint", help="token mint, or the market account with --market-address")
    sp.add_argument("--hours", type=float, default=24.0)
    sp.add_argument("--market-address", action="store_true")
    sp.set_defaults(func=cmd_volume)

    sp = sub.add_parser("price")
    sp.add_argument("ticker")
    sp.set_defaults(func=cmd_price)

    sp = sub.add_parser("fees")
    sp.add_argument("sol")
    sp.add_argument("leverage", type=int)
    sp.add_argument("--rent", type=int, help="rent in lamports; skips the RPC lookup")
    sp.set_defaults(func=cmd_fees)
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.debug:
        configure_console_log(debug=True)
    try:
        cfg = _load_cfg(args)
        result = args.func(args, cfg)
        if asyncio.iscoroutine(result):
            asyncio.run(result)
    except (UranusError, argparse.ArgumentTypeError) as exc:
        print(f"error: {exc}")
        return 2
    return 0
