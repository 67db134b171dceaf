"""Fixed-layout borsh codec for the Uranus program's records.

Every layout is fixed width and little-endian. ``decode`` insists on the
exact width of the record kind; short or long input is a
:class:`MalformedRecord`, never a partially filled record.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, Union

from borsh_construct import Bool, CStruct, I8, I64, U8, U64
from construct import Bytes, ConstructError
from solders.pubkey import Pubkey

from .constants import (
    CLOSE_POSITION_SIZE,
    OPEN_POSITION_SIZE,
    POSITION_ACCOUNT_SIZE,
    SYMBOL_WIDTH,
)
from .errors import DecodeError, MalformedRecord, ValidationError
from .models import (
    ClosePositionRequest,
    Direction,
    OpenPositionRequest,
    PositionInstruction,
    PositionRecord,
)

__all__ = [
    "RecordKind",
    "encode",
    "decode",
    "encode_instruction",
    "decode_instruction",
    "encode_fixed_str",
    "decode_fixed_str",
]

PUBKEY = Bytes(32)
SYMBOL = Bytes(SYMBOL_WIDTH)

POSITION_LAYOUT = CStruct(
    "owner" / PUBKEY,
    "market_mint" / PUBKEY,
    "market_symbol" / SYMBOL,
    "entry_price" / U64,
    "liquidation_price" / U64,
    "paid_amount" / U64,
    "position_size" / U64,
    "leverage" / U8,
    "closed" / U8,
    "position_nonce" / U64,
    "pnl" / I64,
    "direction" / I8,
)

OPEN_POSITION_LAYOUT = CStruct(
    "market_mint" / PUBKEY,
    "market_symbol" / SYMBOL,
    "paid_amount" / U64,
    "position_size" / U64,
    "leverage" / U8,
    "position_nonce" / U64,
    "direction" / I8,
)

CLOSE_POSITION_LAYOUT = CStruct(
    "close_position" / Bool,
    "position_nonce" / U64,
)

_RANGES = {
    "u8": (0, 2**8 - 1),
    "u64": (0, 2**64 - 1),
    "i8": (-(2**7), 2**7 - 1),
    "i64": (-(2**63), 2**63 - 1),
}


class RecordKind(Enum):
    POSITION = "position"
    OPEN_POSITION = "open_position"
    CLOSE_POSITION = "close_position"

    @property
    def size(self) -> int:
        return _SIZES[self]


_SIZES = {
    RecordKind.POSITION: POSITION_ACCOUNT_SIZE,
    RecordKind.OPEN_POSITION: OPEN_POSITION_SIZE,
    RecordKind.CLOSE_POSITION: CLOSE_POSITION_SIZE,
}


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def encode_fixed_str(text: str, width: int = SYMBOL_WIDTH) -> bytes:
    """UTF-8 encode ``text`` into a NUL-padded buffer of ``width`` bytes.

    At most ``width - 1`` bytes are kept so the buffer always ends in NUL.
    Truncation backs off to a character boundary.
    """
    if not isinstance(text, str):
        raise ValidationError(f"symbol must be a string, got {type(text).__name__}")
    if "\x00" in text:
        raise ValidationError("symbol must not contain NUL characters")
    raw = text.encode("utf-8")[: width - 1]
    raw = raw.decode("utf-8", errors="ignore").encode("utf-8")
    return raw.ljust(width, b"\x00")


def decode_fixed_str(buf: bytes) -> str:
    try:
        return bytes(buf).rstrip(b"\x00").decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"fixed-width text is not valid UTF-8: {bytes(buf)!r}") from exc


def _check_int(name: str, value: Any, kind: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer, got {value!r}")
    lo, hi = _RANGES[kind]
    if not lo <= value <= hi:
        raise ValidationError(f"{name}={value} does not fit in {kind}")
    return int(value)


def _pubkey_bytes(name: str, value: Any) -> bytes:
    if not isinstance(value, Pubkey):
        raise ValidationError(f"{name} must be a Pubkey, got {type(value).__name__}")
    return bytes(value)


def _direction(raw: int) -> Direction:
    try:
        return Direction(raw)
    except ValueError as exc:
        raise MalformedRecord(f"direction byte must be 1 or -1, got {raw}") from exc


# ---------------------------------------------------------------------------
# Per-kind encoders / decoders
# ---------------------------------------------------------------------------

def _encode_position(rec: PositionRecord) -> bytes:
    return POSITION_LAYOUT.build({
        "owner": _pubkey_bytes("owner", rec.owner),
        "market_mint": _pubkey_bytes("market_mint", rec.market_mint),
        "market_symbol": encode_fixed_str(rec.market_symbol),
        "entry_price": _check_int("entry_price", rec.entry_price, "u64"),
        "liquidation_price": _check_int("liquidation_price", rec.liquidation_price, "u64"),
        "paid_amount": _check_int("paid_amount", rec.paid_amount, "u64"),
        "position_size": _check_int("position_size", rec.position_size, "u64"),
        "leverage": _check_int("leverage", rec.leverage, "u8"),
        "closed": _check_int("closed", rec.closed, "u8"),
        "position_nonce": _check_int("position_nonce", rec.position_nonce, "u64"),
        "pnl": _check_int("pnl", rec.pnl, "i64"),
        "direction": _check_int("direction", int(rec.direction), "i8"),
    })


def _decode_position(data: bytes) -> PositionRecord:
    c = POSITION_LAYOUT.parse(data)
    return PositionRecord(
        owner=Pubkey.from_bytes(c.owner),
        market_mint=Pubkey.from_bytes(c.market_mint),
        market_symbol=decode_fixed_str(c.market_symbol),
        entry_price=c.entry_price,
        liquidation_price=c.liquidation_price,
        paid_amount=c.paid_amount,
        position_size=c.position_size,
        leverage=c.leverage,
        closed=c.closed,
        position_nonce=c.position_nonce,
        pnl=c.pnl,
        direction=_direction(c.direction),
    )


def _encode_open(req: OpenPositionRequest) -> bytes:
    return OPEN_POSITION_LAYOUT.build({
        "market_mint": _pubkey_bytes("market_mint", req.market_mint),
        "market_symbol": encode_fixed_str(req.market_symbol),
        "paid_amount": _check_int("paid_amount", req.paid_amount, "u64"),
        "position_size": _check_int("position_size", req.position_size, "u64"),
        "leverage": _check_int("leverage", req.leverage, "u8"),
        "position_nonce": _check_int("position_nonce", req.position_nonce, "u64"),
        "direction": _check_int("direction", int(req.direction), "i8"),
    })


def _decode_open(data: bytes) -> OpenPositionRequest:
    c = OPEN_POSITION_LAYOUT.parse(data)
    return OpenPositionRequest(
        market_mint=Pubkey.from_bytes(c.market_mint),
        market_symbol=decode_fixed_str(c.market_symbol),
        paid_amount=c.paid_amount,
        position_size=c.position_size,
        leverage=c.leverage,
        position_nonce=c.position_nonce,
        direction=_direction(c.direction),
    )


def _encode_close(req: ClosePositionRequest) -> bytes:
    return CLOSE_POSITION_LAYOUT.build({
        "close_position": bool(req.close_position),
        "position_nonce": _check_int("position_nonce", req.position_nonce, "u64"),
    })


def _decode_close(data: bytes) -> ClosePositionRequest:
    flag = data[0]
    if flag not in (0, 1):
        raise MalformedRecord(f"close flag must be 0 or 1, got {flag}")
    c = CLOSE_POSITION_LAYOUT.parse(data)
    return ClosePositionRequest(position_nonce=c.position_nonce, close_position=bool(c.close_position))


_ENCODERS: Dict[RecordKind, Callable[[Any], bytes]] = {
    RecordKind.POSITION: _encode_position,
    RecordKind.OPEN_POSITION: _encode_open,
    RecordKind.CLOSE_POSITION: _encode_close,
}

_DECODERS: Dict[RecordKind, Callable[[bytes], Any]] = {
    RecordKind.POSITION: _decode_position,
    RecordKind.OPEN_POSITION: _decode_open,
    RecordKind.CLOSE_POSITION: _decode_close,
}

_TYPES = {
    RecordKind.POSITION: PositionRecord,
    RecordKind.OPEN_POSITION: OpenPositionRequest,
    RecordKind.CLOSE_POSITION: ClosePositionRequest,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

Record = Union[PositionRecord, OpenPositionRequest, ClosePositionRequest]


def encode(kind: RecordKind, record: Record) -> bytes:
    if not isinstance(record, _TYPES[kind]):
        raise ValidationError(f"{kind.value} expects {_TYPES[kind].__name__}, got {type(record).__name__}")
    return _ENCODERS[kind](record)


def decode(kind: RecordKind, data: bytes) -> Record:
    data = bytes(data)
    if len(data) != kind.size:
        raise MalformedRecord(f"{kind.value} record must be {kind.size} bytes, got {len(data)}")
    try:
        return _DECODERS[kind](data)
    except ConstructError as exc:
        raise MalformedRecord(f"cannot parse {kind.value} record: {exc}") from exc


_INSTRUCTION_KINDS = {
    OpenPositionRequest.DISCRIMINATOR: RecordKind.OPEN_POSITION,
    ClosePositionRequest.DISCRIMINATOR: RecordKind.CLOSE_POSITION,
}


def encode_instruction(request: PositionInstruction) -> bytes:
    """Discriminator byte followed by the request body."""
    if isinstance(request, OpenPositionRequest):
        kind = RecordKind.OPEN_POSITION
    elif isinstance(request, ClosePositionRequest):
        kind = RecordKind.CLOSE_POSITION
    else:
        raise ValidationError(f"not an instruction request: {type(request).__name__}")
    return bytes([request.DISCRIMINATOR]) + encode(kind, request)


def decode_instruction(data: bytes) -> PositionInstruction:
    data = bytes(data)
    if not data:
        raise MalformedRecord("empty instruction data")
    kind = _INSTRUCTION_KINDS.get(data[0])
    if kind is None:
        raise MalformedRecord(f"unsupported instruction discriminator {data[0]}")
    return decode(kind, data[1:])
