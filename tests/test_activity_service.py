from decimal import Decimal

import pytest

from conftest import FakeTransport, pk, tx_record
from uranus_core.constants import PROGRAM_ID
from uranus_core.errors import ValidationError
from uranus_core.models import SignatureInfo
from uranus_core.pdas import derive_market_address
from uranus_core.services.activity_service import (
    ActivityService,
    count_volume,
    find_open_orders,
    order_volume,
)

NOW = 1_700_000_000
DAY = 24 * 60 * 60
MARKET = pk(30)


def sigs(start, count, age=0):
    return [SignatureInfo(signature=f"sig-{i}", block_time=NOW - age - i) for i in range(start, start + count)]


def service(cfg, transport):
    return ActivityService(cfg, transport, clock=lambda: NOW)


@pytest.mark.asyncio
async def test_pages_until_short_page(cfg):
    transport = FakeTransport(signature_pages=[sigs(0, 100), sigs(100, 100), sigs(200, 30)])
    got = await service(cfg, transport).collect_signatures(MARKET, 24)

    assert len(got) == 230
    befores = [c[3] for c in transport.calls]
    limits = {c[2] for c in transport.calls}
    assert befores == [None, "sig-99", "sig-199"]
    assert limits == {100}


@pytest.mark.asyncio
async def test_cutoff_on_third_page(cfg):
    third = sigs(200, 25) + [SignatureInfo(signature="old", block_time=NOW - DAY - 1)] + sigs(226, 74, age=DAY)
    transport = FakeTransport(signature_pages=[sigs(0, 100), sigs(100, 100), third, sigs(300, 100)])
    got = await service(cfg, transport).collect_signatures(MARKET, 24)

    assert len(transport.calls) == 3
    assert [c[3] for c in transport.calls] == [None, "sig-99", "sig-199"]
    assert [s.signature for s in got] == [f"sig-{i}" for i in range(225)]
    assert len(transport.signature_pages) == 1


@pytest.mark.asyncio
async def test_stops_at_window_cutoff(cfg):
    page = sigs(0, 60) + [SignatureInfo(signature="old", block_time=NOW - DAY - 1)] + sigs(61, 39)
    transport = FakeTransport(signature_pages=[page, sigs(100, 100)])
    got = await service(cfg, transport).collect_signatures(MARKET, 24)

    assert [s.signature for s in got] == [f"sig-{i}" for i in range(60)]
    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_entry_exactly_at_cutoff_is_kept(cfg):
    page = [SignatureInfo("a", NOW - DAY), SignatureInfo("b", NOW - DAY - 1)]
    got = await service(cfg, FakeTransport(signature_pages=[page])).collect_signatures(MARKET, 24)
    assert [s.signature for s in got] == ["a"]


@pytest.mark.asyncio
async def test_missing_block_time_ends_window(cfg):
    page = [SignatureInfo("a", NOW - 5), SignatureInfo("b", None), SignatureInfo("c", NOW - 6)]
    got = await service(cfg, FakeTransport(signature_pages=[page])).collect_signatures(MARKET, 1)
    assert [s.signature for s in got] == ["a"]


@pytest.mark.asyncio
async def test_full_page_then_empty_history(cfg):
    transport = FakeTransport(signature_pages=[sigs(0, 100), []])
    got = await service(cfg, transport).collect_signatures(MARKET, 24)
    assert len(got) == 100
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_window_must_be_positive(cfg):
    transport = FakeTransport()
    with pytest.raises(ValidationError):
        await service(cfg, transport).collect_signatures(MARKET, 0)
    assert transport.calls == []


@pytest.mark.asyncio
async def test_transactions_fetched_in_batches_of_50(cfg):
    signatures = sigs(0, 120)
    txs = {s.signature: tx_record(s.signature, programs=[PROGRAM_ID]) for s in signatures}
    txs["sig-3"] = tx_record("sig-3", programs=[pk(99)])
    del txs["sig-4"]
    transport = FakeTransport(transactions=txs)

    got = await service(cfg, transport).fetch_program_transactions(signatures)

    assert [len(c[1]) for c in transport.calls] == [50, 50, 20]
    assert len(got) == 118
    assert {"sig-3", "sig-4"}.isdisjoint(t.signature for t in got)


def test_count_volume_is_signed_fee_payer_delta():
    txns = [
        tx_record("a", pre=(10, 0), post=(4, 6)),
        tx_record("b", pre=(3, 9), post=(5, 7)),
        tx_record("c", pre=(), post=()),
    ]
    assert count_volume(txns) == 4


def test_open_orders_counted_per_log_line():
    both = tx_record("a", logs=["Program log: Position initialized", "Program log: Position initialized"])
    one = tx_record("b", logs=["Program log: Position initialized: BONK"])
    none = tx_record("c", logs=["Program log: Position closed"])
    orders = find_open_orders([both, one, none])
    assert [t.signature for t in orders] == ["a", "a", "b"]


def test_order_volume_sums_absolute_deltas():
    orders = [tx_record("a", pre=(10, 0, 5), post=(4, 6, 5)), tx_record("b", pre=(1,), post=(3,))]
    assert order_volume(orders) == 6 + 6 + 2


@pytest.mark.asyncio
async def test_volume_and_orders_summary(cfg):
    page = [SignatureInfo("open", NOW - 10), SignatureInfo("close", NOW - 20)]
    txs = {
        "open": tx_record(
            "open", pre=(2_000_000_000, 0), post=(1_000_000_000, 1_000_000_000),
            programs=[PROGRAM_ID], logs=["Program log: Position initialized"],
        ),
        "close": tx_record("close", pre=(500_000_000, 0), post=(1_000_000_000, 0), programs=[PROGRAM_ID]),
    }
    transport = FakeTransport(signature_pages=[page], transactions=txs)

    summary = await service(cfg, transport).get_volume_and_orders(MARKET, 24)

    assert summary.market_address == MARKET
    assert len(summary.transactions) == 2
    assert summary.volume == Decimal("0.5")
    assert summary.open_order_count == 1
    assert summary.order_volume == Decimal("2")


@pytest.mark.asyncio
async def test_market_volume_derives_market_address(cfg):
    mint = pk(31)
    page = [SignatureInfo("a", NOW - 10)]
    txs = {"a": tx_record("a", pre=(3_000_000_000,), post=(1_000_000_000,), programs=[PROGRAM_ID])}
    transport = FakeTransport(signature_pages=[page], transactions=txs)

    volume = await service(cfg, transport).get_market_volume(mint)

    assert volume == Decimal("2")
    assert transport.calls[0][1] == derive_market_address(PROGRAM_ID, mint)


@pytest.mark.asyncio
async def test_market_volume_with_market_address(cfg):
    transport = FakeTransport(signature_pages=[[]])
    volume = await service(cfg, transport).get_market_volume(MARKET, 6, is_market_address=True)
    assert volume == Decimal("0")
    assert transport.calls[0][1] == MARKET
    assert transport.call_names() == ["get_signatures_for_address"]
