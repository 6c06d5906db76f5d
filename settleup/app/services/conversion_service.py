"""
services/conversion_service.py: Currency conversion and exchange rate lookup.

The engine itself only ever multiplies: convert(amount, from, to, rate).
Getting a rate is an external, asynchronous capability. This module wraps it:

  fetch_exchange_rate()  default fetcher: GET {api_url}/{base} returning
                         {"rates": {...}, "date": "YYYY-MM-DD"}
  RateCache              one entry per ORDERED currency pair, 24 h TTL,
                         injected clock, last write wins (no locking needed)
  CurrencyConverter      cache-first rate lookup; a failed fetch raises
                         ConversionError and is never replaced by a guess
  ConversionSession      per-form helper: debounced lookups where only the
                         newest request's result is applied

Failure policy:
  A rate that cannot be fetched surfaces as ConversionError (recoverable).
  The caller then asks for a manually entered rate and calls resolve_rate()
  with it. Settlement and balance code never touch this module.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import NamedTuple

import requests

from settleup.app.errors import AppError, ConversionError, ErrorCode
from settleup.app.services.request_gate import Debouncer, LatestRequestGate
from settleup.config import DEFAULT_RATE_API_URL


logger = logging.getLogger(__name__)

RATE_CACHE_TTL_SECONDS = 24 * 60 * 60


class RateQuote(NamedTuple):
    rate: Decimal
    as_of: str    # ISO date the source reports the rate for
    source: str   # "exchangerate-api", "cache", "manual", "same-currency", ...


RateFetcher = Callable[[str, str], Awaitable[RateQuote]]
Clock = Callable[[], float]


def convert(
        amount: Decimal,
        from_currency: str,
        to_currency: str,
        rate: Decimal,
) -> Decimal:
    """amount * rate, or amount unchanged when the currencies match (rate ignored)."""
    if from_currency == to_currency:
        return Decimal(amount)
    return Decimal(amount) * Decimal(rate)


# ── Default fetcher ────────────────────────────────────────────────────────

async def fetch_exchange_rate(
        from_currency: str,
        to_currency: str,
        *,
        api_url: str = DEFAULT_RATE_API_URL,
        timeout: float = 10,
) -> RateQuote:
    """
    Fetches the from→to rate from an exchangerate-api style endpoint.

    The blocking HTTP call runs on a worker thread so the event loop stays free.

    Raises:
        ConversionError -- network failure, non-200 response, unreadable body,
                           or no rate for `to_currency` in the response.
    """
    url = f"{api_url.rstrip('/')}/{from_currency}"
    try:
        response = await asyncio.to_thread(requests.get, url, timeout=timeout)
    except requests.RequestException as exc:
        raise ConversionError(from_currency, to_currency, f"request failed ({exc})") from exc

    if response.status_code != 200:
        raise ConversionError(
            from_currency,
            to_currency,
            f"rate service answered {response.status_code} {response.reason or ''}".rstrip(),
        )

    try:
        data = response.json()
    except ValueError as exc:
        raise ConversionError(from_currency, to_currency, "rate service sent invalid JSON") from exc

    rates = data.get("rates") or {}
    if to_currency not in rates:
        raise ConversionError(from_currency, to_currency, f"no rate available for {to_currency}")

    try:
        rate = Decimal(str(rates[to_currency]))
    except InvalidOperation as exc:
        raise ConversionError(from_currency, to_currency, "rate is not a number") from exc

    as_of = data.get("date") or datetime.now(timezone.utc).date().isoformat()
    return RateQuote(rate, as_of, "exchangerate-api")


# ── Cache ──────────────────────────────────────────────────────────────────

class RateCache:

    def __init__(
            self,
            ttl_seconds: float = RATE_CACHE_TTL_SECONDS,
            clock: Clock = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[tuple[str, str], tuple[RateQuote, float]] = {}

    def get(self, from_currency: str, to_currency: str) -> RateQuote | None:
        """Returns the cached quote if it is younger than the TTL, else None."""
        entry = self._entries.get((from_currency, to_currency))
        if entry is None:
            return None
        quote, stored_at = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            return None
        return quote

    def put(self, from_currency: str, to_currency: str, quote: RateQuote) -> None:
        self._entries[(from_currency, to_currency)] = (quote, self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# ── Converter ──────────────────────────────────────────────────────────────

class CurrencyConverter:
    """
    Rate lookup with caching and an explicit manual-rate fallback.

    Args:
        fetcher: async (from, to) -> RateQuote. Defaults to fetch_exchange_rate.
        cache:   RateCache to use. A fresh one (24 h TTL) by default.
        clock:   time source for same-currency quotes' as_of date.
    """

    def __init__(
            self,
            fetcher: RateFetcher | None = None,
            cache: RateCache | None = None,
            clock: Clock = time.time,
    ) -> None:
        self._fetcher = fetcher or fetch_exchange_rate
        self._clock = clock
        self.cache = cache if cache is not None else RateCache(clock=clock)

    def _today(self) -> str:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc).date().isoformat()

    async def get_rate(self, from_currency: str, to_currency: str) -> RateQuote:
        """
        Rate for from→to. Same currency → 1. A fresh cached rate is returned
        without querying the source again.

        Raises:
            ConversionError -- the fetch failed and nothing fresh was cached.
        """
        if from_currency == to_currency:
            return RateQuote(Decimal("1"), self._today(), "same-currency")

        cached = self.cache.get(from_currency, to_currency)
        if cached is not None:
            logger.debug("Rate cache hit for %s→%s.", from_currency, to_currency)
            return cached._replace(source="cache")

        logger.debug("Rate cache miss for %s→%s; fetching.", from_currency, to_currency)
        try:
            quote = await self._fetcher(from_currency, to_currency)
        except ConversionError as exc:
            logger.warning("Exchange rate fetch failed: %s", exc.message)
            raise
        except (OSError, ValueError, LookupError) as exc:
            logger.warning(
                "Exchange rate fetch for %s→%s failed: %s", from_currency, to_currency, exc
            )
            raise ConversionError(from_currency, to_currency, str(exc)) from exc

        self.cache.put(from_currency, to_currency, quote)
        return quote

    async def resolve_rate(
            self,
            from_currency: str,
            to_currency: str,
            manual_rate: Decimal | None = None,
    ) -> RateQuote:
        """
        A manually entered rate wins and skips the fetch entirely. Without
        one, this is get_rate().

        Raises:
            AppError(INVALID_FIELD, 400) -- manual_rate is not positive.
            ConversionError              -- no manual rate and the fetch failed.
        """
        if manual_rate is not None:
            manual_rate = Decimal(manual_rate)
            if manual_rate <= 0:
                raise AppError(
                    ErrorCode.INVALID_FIELD,
                    "Exchange rate must be greater than zero.",
                    400,
                    field="manual_rate",
                )
            return RateQuote(manual_rate, self._today(), "manual")
        return await self.get_rate(from_currency, to_currency)

    async def convert_amount(
            self,
            amount: Decimal,
            from_currency: str,
            to_currency: str,
            manual_rate: Decimal | None = None,
    ) -> tuple[Decimal, RateQuote]:
        """Resolves a rate and converts `amount` with it. Returns (converted, quote)."""
        quote = await self.resolve_rate(from_currency, to_currency, manual_rate)
        return convert(amount, from_currency, to_currency, quote.rate), quote


class ConversionSession:
    """
    Conversion state for one open expense form.

    Every keystroke may call request(); lookups are debounced and a result
    is only returned for the newest request. Superseded calls resolve to
    None, whether they were dropped during the debounce delay or during
    the lookup.
    """

    def __init__(self, converter: CurrencyConverter, debounce_seconds: float = 0.5) -> None:
        self._converter = converter
        self._gate = LatestRequestGate()
        self._debouncer = Debouncer(debounce_seconds, self._lookup)

    async def _lookup(self, amount, from_currency, to_currency, manual_rate):
        return await self._gate.run(
            self._converter.convert_amount(amount, from_currency, to_currency, manual_rate)
        )

    async def request(
            self,
            amount: Decimal,
            from_currency: str,
            to_currency: str,
            manual_rate: Decimal | None = None,
    ) -> tuple[Decimal, RateQuote] | None:
        """
        Returns (converted, quote) for the newest request, or None when a
        newer request superseded this one.

        Raises:
            ConversionError -- the newest request's rate fetch failed.
        """
        debounced = await self._debouncer.call(amount, from_currency, to_currency, manual_rate)
        if not debounced.current:
            return None
        gated = debounced.value
        return gated.value if gated.current else None

    def cancel(self) -> None:
        self._debouncer.cancel()
