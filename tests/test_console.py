import json
import textwrap
from pathlib import Path

from conftest import FakeTransport, pk
from uranus_core import console as cmod
from uranus_core.codec import RecordKind, encode
from uranus_core.constants import PROGRAM_ID
from uranus_core.models import AccountSnapshot, Direction, KeyedAccount, PositionRecord
from uranus_core.pdas import derive_market_address


def make_cfg(tmp_path: Path) -> str:
    p = tmp_path / "uranus.yaml"
    p.write_text(textwrap.dedent("""
    uranus:
      rpc_url: "https://rpc.example"
      commitment: confirmed
    """), encoding="utf-8")
    return str(p)


def test_console_ping_and_config(tmp_path, capsys):
    assert cmod.main(["ping"]) == 0
    assert "console is alive" in capsys.readouterr().out

    assert cmod.main(["--config", make_cfg(tmp_path), "config"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["rpc_url"] == "https://rpc.example"
    assert out["program_id"] == str(PROGRAM_ID)


def test_console_fees_offline(capsys):
    assert cmod.main(["fees", "1", "3", "--rent", "2000000"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["base_fee"] == "0.02"
    assert out["leverage_fee"] == "0.003"
    assert out["total_cost"] == "1.025"
    assert out["position_size"] == "2.925"


def test_console_reports_errors(capsys):
    assert cmod.main(["fees", "1", "9", "--rent", "0"]) == 2
    assert "leverage" in capsys.readouterr().out


def test_console_positions_and_liquidity(monkeypatch, tmp_path, capsys):
    owner, mint = pk(1), pk(2)
    rec = PositionRecord(
        owner=owner, market_mint=mint, market_symbol="BONK", entry_price=10, liquidation_price=8,
        paid_amount=1_025_000_000, position_size=2_925_000_000, leverage=3, closed=0,
        position_nonce=9, pnl=0, direction=Direction.SHORT,
    )
    fake = FakeTransport(
        accounts={derive_market_address(PROGRAM_ID, mint): AccountSnapshot(lamports=3_000_000_000)},
        program_accounts=[KeyedAccount(pubkey=pk(50), account=AccountSnapshot(1, encode(RecordKind.POSITION, rec)))],
    )
    monkeypatch.setattr(cmod, "SolanaRpcTransport", lambda cfg: fake)
    cfg_path = make_cfg(tmp_path)

    assert cmod.main(["--config", cfg_path, "positions", "--owner", str(owner)]) == 0
    rows = json.loads(capsys.readouterr().out)
    assert rows[0]["market_symbol"] == "BONK"
    assert rows[0]["direction"] == "SHORT"
    assert rows[0]["paid_amount"] == "1.025"

    assert cmod.main(["--config", cfg_path, "liquidity", str(mint)]) == 0
    assert json.loads(capsys.readouterr().out)["liquidity"] == "3"
    assert fake.closed


def test_console_rejects_bad_address(tmp_path, capsys):
    assert cmod.main(["--config", make_cfg(tmp_path), "liquidity", "not-a-key"]) == 2
    assert "base58" in capsys.readouterr().out
