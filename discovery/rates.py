# discovery/rates.py
import asyncio
import logging
from typing import Iterable

from redis.asyncio import Redis
from redis.exceptions import RedisError

from discovery.config import settings

logger = logging.getLogger(__name__)

# Used when the rate source cannot be reached at all. Adding a currency here
# adds it to SUPPORTED_CURRENCIES too.
FALLBACK_RATES: dict[str, str] = {
    "fiat-CNY": "0.14",
    "fiat-EUR": "1.12",
    "fiat-GBP": "1.22",
    "fiat-JPY": "0.0094",
    "fiat-KRW": "0.00082",
    "fiat-SGD": "0.72",
    "fiat-USD": "1",
    "token-DAI": "1.0",
    "token-ETH": "200.0",
}

SUPPORTED_CURRENCIES: tuple[str, ...] = tuple(FALLBACK_RATES)

QUOTE_CURRENCY = "USD"

def currency_code(currency: str) -> str:
    """'token-ETH' -> 'ETH', 'fiat-KRW' -> 'KRW'."""
    return currency.split("-", 1)[-1]

def rate_key(currency: str) -> str:
    return f"{currency_code(currency)}-{QUOTE_CURRENCY}_price"

class ExchangeRateProvider:
    """Exchange rates of fiat currencies and tokens to USD, read from Redis.

    The rates are written by the bridge server. A currency missing from Redis
    is left out of the result (rate unknown). If Redis cannot be reached the
    static FALLBACK_RATES table is served instead, so callers never fail
    because of a rates outage.
    """

    def __init__(self, redis: Redis, timeout: float | None = None):
        self.redis = redis
        self.timeout = settings.RATES_TIMEOUT if timeout is None else timeout

    async def rates(self, currencies: Iterable[str] = SUPPORTED_CURRENCIES) -> dict[str, str]:
        currencies = list(dict.fromkeys(currencies))
        to_fetch = [c for c in currencies if currency_code(c) != QUOTE_CURRENCY]
        try:
            fetched = await asyncio.wait_for(
                asyncio.gather(*(self.redis.get(rate_key(c)) for c in to_fetch)),
                timeout=self.timeout,
            )
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            logger.warning(
                "Error retrieving exchange rates from redis, using defaults: %r", e,
                extra={"event": "rates_fallback"},
            )
            return self._fallback(currencies)

        by_currency = dict(zip(to_fetch, fetched))
        exchange_rates: dict[str, str] = {}
        for currency in currencies:
            if currency not in by_currency:
                exchange_rates[currency] = "1"
                continue
            rate = by_currency[currency]
            if rate is None:
                logger.warning(
                    "No exchange rate for %s in redis (key %s). Check the bridge server.",
                    currency, rate_key(currency),
                    extra={"event": "rate_missing"},
                )
                continue
            exchange_rates[currency] = rate.decode() if isinstance(rate, bytes) else str(rate)
        logger.debug("Exchange rates: %s", exchange_rates)
        return exchange_rates

    @staticmethod
    def _fallback(currencies: list[str]) -> dict[str, str]:
        table: dict[str, str] = {}
        for currency in currencies:
            if currency_code(currency) == QUOTE_CURRENCY:
                table[currency] = "1"
            elif currency in FALLBACK_RATES:
                table[currency] = FALLBACK_RATES[currency]
        return table
