# discovery/search/sort.py
import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from discovery.rates import SUPPORTED_CURRENCIES, ExchangeRateProvider

logger = logging.getLogger(__name__)

PRICE_SORT = "price.amount"
SORT_WHITELIST = (PRICE_SORT,)
ORDER_WHITELIST = ("asc", "desc")

# Malformed listings sort to the back whatever the direction
SENTINEL_ASC = 1_000_000_000
SENTINEL_DESC = 0

# Wrapped in try/catch to be robust to malformed listings, and to currencies
# whose rate is unknown (a null rate fails parseFloat). String.valueOf lets
# amounts stored as JSON numbers parse like string amounts.
PRICE_SORT_SCRIPT = """
try {
  float amount = Float.parseFloat(String.valueOf(params._source.price.amount));
  float rate = Float.parseFloat(String.valueOf(params.exchangeRates[params._source.price.currency.id]));
  return amount * rate;
} catch (Exception e) {
  return params.order == "asc" ? params.sentinelAsc : params.sentinelDesc;
}
"""

def _currency_id(price: dict) -> Any:
    currency = price.get("currency")
    if isinstance(currency, dict):
        return currency.get("id")
    return currency

def price_sort_value(source: dict, exchange_rates: dict[str, str], order: str) -> float:
    """Python rendition of PRICE_SORT_SCRIPT for a single document."""
    try:
        price = source["price"]
        amount = Decimal(str(price["amount"]))
        rate = Decimal(str(exchange_rates[_currency_id(price)]))
        value = float(amount * rate)
    except (KeyError, TypeError, InvalidOperation):
        return SENTINEL_ASC if order == "asc" else SENTINEL_DESC
    if value != value or value in (float("inf"), float("-inf")):
        return SENTINEL_ASC if order == "asc" else SENTINEL_DESC
    return value

class SortResolver:
    def __init__(self, rate_provider: ExchangeRateProvider):
        self.rate_provider = rate_provider

    async def resolve(self, sort: str | None, order: str | None) -> list[dict]:
        """Sort clauses for the search request; [] keeps relevance order."""
        if not sort or not order:
            return []
        if sort not in SORT_WHITELIST or order not in ORDER_WHITELIST:
            logger.warning(
                "Sort variables are not whitelisted - sort = %s, order = %s, disabling sorting",
                sort, order,
                extra={"event": "sort_rejected"},
            )
            return []

        if sort == PRICE_SORT:
            exchange_rates = await self.rate_provider.rates(SUPPORTED_CURRENCIES)
            return [{
                "_script": {
                    "type": "number",
                    "script": {
                        "lang": "painless",
                        "source": PRICE_SORT_SCRIPT,
                        "params": {
                            "order": order,
                            "exchangeRates": exchange_rates,
                            "sentinelAsc": SENTINEL_ASC,
                            "sentinelDesc": SENTINEL_DESC,
                        },
                    },
                    "order": order,
                }
            }]
        return [{sort: {"order": order}}]
