from decimal import Decimal

import pytest

from conftest import FakeTransport, pk
from uranus_core.codec import RecordKind, encode
from uranus_core.constants import PROGRAM_ID
from uranus_core.errors import AccountNotFound, MalformedRecord
from uranus_core.models import AccountSnapshot, Direction, KeyedAccount, PositionRecord
from uranus_core.pdas import derive_market_address
from uranus_core.services.positions_service import PositionsService, classify_account


def position(owner, mint, symbol, nonce=1, direction=Direction.LONG) -> PositionRecord:
    return PositionRecord(
        owner=owner,
        market_mint=mint,
        market_symbol=symbol,
        entry_price=100,
        liquidation_price=80,
        paid_amount=1_025_000_000,
        position_size=2_925_000_000,
        leverage=3,
        closed=0,
        position_nonce=nonce,
        pnl=0,
        direction=direction,
    )


def keyed(n, data=b"", lamports=1) -> KeyedAccount:
    return KeyedAccount(pubkey=pk(n), account=AccountSnapshot(lamports=lamports, data=data))


ALICE, BOB = pk(1), pk(2)
BONK, WIF = pk(10), pk(11)

P1 = position(ALICE, BONK, "BONK", nonce=1)
P2 = position(BOB, WIF, "WIF", nonce=2, direction=Direction.SHORT)
P3 = position(BOB, BONK, "BONK", nonce=3)


@pytest.fixture
def service(cfg):
    transport = FakeTransport(program_accounts=[
        keyed(50, encode(RecordKind.POSITION, P1)),
        keyed(51, encode(RecordKind.POSITION, P2)),
        keyed(52, encode(RecordKind.POSITION, P3)),
        keyed(60),
        keyed(61),
        keyed(70, bytes(50)),
    ])
    transport.accounts = {
        pk(60): AccountSnapshot(lamports=5_000_000_000),
        derive_market_address(PROGRAM_ID, BONK): AccountSnapshot(lamports=2_500_000_000),
        pk(50): AccountSnapshot(lamports=1, data=encode(RecordKind.POSITION, P1)),
    }
    return PositionsService(cfg, transport)


def test_classify_account():
    assert classify_account(b"") == "market"
    assert classify_account(bytes(147)) == "position"
    assert classify_account(bytes(139)) is None
    assert classify_account(bytes(8)) is None


@pytest.mark.asyncio
async def test_list_positions_decodes_only_position_accounts(service):
    got = await service.list_positions()
    assert got == [P1, P2, P3]
    assert service.transport.calls == [("get_program_accounts", PROGRAM_ID)]


@pytest.mark.asyncio
async def test_filter_by_owner(service):
    assert await service.list_positions(owner=BOB) == [P2, P3]


@pytest.mark.asyncio
async def test_filter_by_mint(service):
    assert await service.list_positions(token_mint=BONK) == [P1, P3]


@pytest.mark.asyncio
async def test_filter_by_symbol_substring_case_insensitive(service):
    assert await service.list_positions(symbol="wi") == [P2]


@pytest.mark.asyncio
async def test_combined_filters_return_every_position(service):
    assert await service.list_positions(owner=ALICE, symbol="wif") == [P1, P2, P3]
    assert await service.list_positions(token_mint=WIF, symbol="BONK") == [P1, P2, P3]
    assert await service.list_positions(owner=BOB, token_mint=BONK, symbol="BONK") == [P1, P2, P3]


@pytest.mark.asyncio
async def test_get_position(service):
    assert await service.get_position(pk(50)) == P1
    with pytest.raises(AccountNotFound):
        await service.get_position(pk(51))


@pytest.mark.asyncio
async def test_get_position_wrong_size(cfg):
    transport = FakeTransport(accounts={pk(5): AccountSnapshot(lamports=1, data=bytes(139))})
    with pytest.raises(MalformedRecord):
        await PositionsService(cfg, transport).get_position(pk(5))


@pytest.mark.asyncio
async def test_market_liquidity(service):
    assert await service.get_market_liquidity(BONK) == Decimal("2.5")
    with pytest.raises(AccountNotFound):
        await service.get_market_liquidity(WIF)


@pytest.mark.asyncio
async def test_list_markets(service):
    markets = await service.list_markets()
    assert [(m.address, m.lamports) for m in markets] == [(pk(60), 5_000_000_000), (pk(61), 0)]
    assert markets[0].liquidity == Decimal("5")
    lookups = [c[1] for c in service.transport.calls if c[0] == "get_account_info"]
    assert sorted(lookups, key=bytes) == [pk(60), pk(61)]
