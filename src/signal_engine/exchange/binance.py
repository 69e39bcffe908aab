"""Binance spot market-data client — REST only, public endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import httpx

from signal_engine.models import HistoricalData, PriceQuote

QUOTE_ASSET = "USDT"


class BinanceClient:
    """Async client for Binance's public ticker and kline endpoints.

    Implements the PriceFeed interface. HTTP errors propagate as ``httpx``
    exceptions; callers decide how to degrade.
    """

    def __init__(
        self,
        base_url: str = "https://api.binance.com",
        timeout_s: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    async def _get_http(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport)
        return self._http

    async def close(self) -> None:
        if self._http and not self._http.is_closed:
            await self._http.aclose()

    @staticmethod
    def format_symbol(symbol: str) -> str:
        """Bare tickers trade against USDT: ``BTC`` → ``BTCUSDT``."""
        symbol = symbol.upper()
        return symbol if symbol.endswith(QUOTE_ASSET) else f"{symbol}{QUOTE_ASSET}"

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        http = await self._get_http()
        resp = await http.get(f"{self.base_url}{path}", params=params)
        resp.raise_for_status()
        return resp.json()

    async def get_current_price(self, symbol: str) -> PriceQuote:
        """Last price and 24h change from ``/api/v3/ticker/24hr``."""
        data = await self._get("/api/v3/ticker/24hr", {"symbol": self.format_symbol(symbol)})
        return PriceQuote(
            symbol=symbol,
            price=Decimal(data["lastPrice"]),
            change=Decimal(data["priceChange"]),
            change_percent=Decimal(data["priceChangePercent"]),
        )

    async def get_historical_candles(
        self,
        symbol: str,
        interval: str,
        count: int,
    ) -> HistoricalData:
        """Most recent *count* klines, oldest first.

        Each kline is ``[open_time_ms, open, high, low, close, volume, ...]``.
        """
        klines = await self._get("/api/v3/klines", {
            "symbol": self.format_symbol(symbol),
            "interval": interval,
            "limit": min(count, 1000),
        })
        return self.parse_klines(klines)

    @staticmethod
    def parse_klines(klines: list[list[Any]]) -> HistoricalData:
        return HistoricalData(
            timestamps=[datetime.fromtimestamp(k[0] / 1000, tz=timezone.utc) for k in klines],
            opens=[Decimal(str(k[1])) for k in klines],
            highs=[Decimal(str(k[2])) for k in klines],
            lows=[Decimal(str(k[3])) for k in klines],
            closes=[Decimal(str(k[4])) for k in klines],
            volumes=[Decimal(str(k[5])) for k in klines],
        )
