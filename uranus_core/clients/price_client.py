from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import httpx

from ..config import UranusConfig
from ..errors import PriceFetchFailed, ValidationError


class PriceClient:
    """Client for the Uranus price service (``GET /price?symbol=TICKER``)."""

    def __init__(self, cfg: UranusConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.cfg = cfg
        self._client_kwargs: Dict[str, Any] = dict(
            timeout=cfg.http_timeout,
            headers={"Accept": "application/json", "User-Agent": "uranus-core"},
        )
        if transport is not None:
            self._client_kwargs["transport"] = transport

    async def get_ticker_price(self, ticker: str) -> Decimal:
        if not ticker or not ticker.strip():
            raise ValidationError("ticker is required")
        params = {"symbol": ticker.strip().upper()}

        # short-lived client so nothing is tied to a closed event loop
        try:
            async with httpx.AsyncClient(**self._client_kwargs) as client:
                resp = await client.get(self.cfg.price_url, params=params)
        except httpx.HTTPError as exc:
            raise PriceFetchFailed(f"Price request failed: {exc}") from exc

        if not resp.is_success:
            raise PriceFetchFailed("Failed to fetch price", resp.status_code, resp.text)
        try:
            data = resp.json()
        except ValueError as exc:
            raise PriceFetchFailed("Price response is not JSON", resp.status_code, resp.text) from exc

        raw = data.get("price") if isinstance(data, dict) else None
        if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
            raise PriceFetchFailed("Price response has no numeric 'price'", resp.status_code, resp.text)
        try:
            price = Decimal(str(raw))
        except InvalidOperation as exc:
            raise PriceFetchFailed("Price response has no numeric 'price'", resp.status_code, resp.text) from exc
        if not price.is_finite():
            raise PriceFetchFailed("Price is not finite", resp.status_code, resp.text)
        return price
