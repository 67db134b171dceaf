"""Exceptions raised by the Uranus client."""


class UranusError(RuntimeError):
    """Base class for every error this package raises."""


class ConfigError(UranusError):
    pass


class ValidationError(UranusError, ValueError):
    """A caller-supplied parameter is missing or out of range."""


class InvalidLeverage(ValidationError):
    def __init__(self, leverage: object) -> None:
        super().__init__(f"leverage must be an integer between 1 and 5, got {leverage!r}")
        self.leverage = leverage


class InvalidDirection(ValidationError):
    def __init__(self, direction: object) -> None:
        super().__init__(f"direction must be 'long' or 'short', got {direction!r}")
        self.direction = direction


class MetadataNotFound(UranusError):
    """The token mint has no Metaplex metadata account."""


class MetadataIncomplete(UranusError):
    """The metadata account exists but carries no symbol."""


class MalformedRecord(UranusError):
    """Wire bytes do not match the expected fixed layout."""


class DecodeError(UranusError):
    """A fixed-width text field is not valid UTF-8 after trimming."""


class AddressDerivationExhausted(UranusError):
    pass


class AccountNotFound(UranusError):
    def __init__(self, address: object, kind: str = "account") -> None:
        super().__init__(f"{kind} {address} not found")
        self.address = address
        self.kind = kind


class TransportError(UranusError):
    """The RPC node answered with an error."""


class PriceFetchFailed(UranusError):
    """Raised when the price service returns a non-success status or a bad body."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None) -> None:
        prefix = f"[HTTP {status_code}] " if status_code is not None else ""
        super().__init__(f"{prefix}{message}")
        self.status_code = status_code
        self.body = body
