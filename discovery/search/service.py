# discovery/search/service.py
import asyncio
import logging
import time
from typing import Any, Iterable

from elasticsearch import AsyncElasticsearch
from elasticsearch import ApiError, TransportError

from discovery.config import settings
from discovery.errors import IndexUnavailableError
from discovery.schemas import LEGACY_PAGE_SIZE, Filter, ListingView, Price, PriceStats, SearchResult
from discovery.search.query import FilterClause, QueryBuilder, parse_filter
from discovery.search.ranking import ranked
from discovery.search.sort import PRICE_SORT, SortResolver

logger = logging.getLogger(__name__)

# FIXME: page size -1 is kept while the DApp moves to the paginated
# interface; it means "up to 1000 listings".
LEGACY_MAX_ITEMS = 1000

SOURCE_FIELDS = [
    "title",
    "description",
    "category",
    "subCategory",
    "price",
    "commissionPerUnit",
    "scoreMultiplier",
    "scoreTags",
]

INDEX_ERRORS = (ApiError, TransportError, asyncio.TimeoutError)

def _body(response: Any) -> dict:
    # ObjectApiResponse keeps the decoded JSON in .body
    return getattr(response, "body", response)

def _total(hits: dict) -> int:
    total = hits.get("total", 0)
    if isinstance(total, dict):
        return int(total.get("value", 0))
    return int(total or 0)

def to_listing_view(hit: dict) -> ListingView:
    source = hit.get("_source") or {}
    price = source.get("price") or {}
    currency = price.get("currency")
    if isinstance(currency, dict):
        currency = currency.get("id")
    amount = price.get("amount")
    return ListingView(
        id=str(hit["_id"]),
        title=source.get("title"),
        category=source.get("category"),
        subCategory=source.get("subCategory"),
        description=source.get("description"),
        price=Price(
            amount="0" if amount is None else str(amount),
            currency=currency or "fiat-USD",
        ),
    )

class SearchService:
    """Listing search: ranked page of listings plus price statistics.

    The ranked search and the min/max price aggregation run concurrently
    against the index. Either one failing fails the whole call.
    """

    def __init__(
        self,
        es: AsyncElasticsearch,
        sort_resolver: SortResolver,
        index: str | None = None,
        query_builder: QueryBuilder | None = None,
    ):
        self.es = es
        self.sort_resolver = sort_resolver
        self.index = index or settings.LISTINGS_INDEX
        self.query_builder = query_builder or QueryBuilder()

    async def search(
        self,
        query: str | None = None,
        sort: str | None = None,
        order: str | None = None,
        filters: Iterable[Filter | dict] | None = None,
        page_size: int = 100,
        offset: int = 0,
    ) -> SearchResult:
        if page_size == LEGACY_PAGE_SIZE:
            page_size = LEGACY_MAX_ITEMS
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1 or {LEGACY_PAGE_SIZE}, got {page_size}")
        if offset < 0:
            raise ValueError(f"offset must be >= 0, got {offset}")

        clauses: list[FilterClause] = [parse_filter(f) for f in (filters or [])]
        ranked_query, aggregation_query = self.query_builder.build(query, clauses)
        sort_spec = await self.sort_resolver.resolve(sort, order)

        search_request = asyncio.ensure_future(self.es.search(
            index=self.index,
            query=ranked(ranked_query, now=time.time()),
            from_=offset,
            size=page_size,
            sort=sort_spec or None,
            source=SOURCE_FIELDS,
            track_total_hits=True,
        ))
        aggregation_request = asyncio.ensure_future(self.es.search(
            index=self.index,
            query=aggregation_query,
            size=0,
            aggs={
                "max_price": {"max": {"field": PRICE_SORT}},
                "min_price": {"min": {"field": PRICE_SORT}},
            },
        ))
        try:
            search_response, aggregation_response = await asyncio.gather(
                search_request, aggregation_request
            )
        except INDEX_ERRORS as e:
            raise IndexUnavailableError(f"Listing search failed: {e}") from e
        finally:
            for request in (search_request, aggregation_request):
                if not request.done():
                    request.cancel()

        search_response, aggregation_response = _body(search_response), _body(aggregation_response)
        listings = [to_listing_view(hit) for hit in search_response["hits"]["hits"]]
        aggregations = aggregation_response.get("aggregations") or {}
        stats = PriceStats(
            maxPrice=(aggregations.get("max_price") or {}).get("value") or 0,
            minPrice=(aggregations.get("min_price") or {}).get("value") or 0,
            totalNumberOfListings=_total(search_response["hits"]),
        )
        logger.debug("search listings - %s", listings)
        return SearchResult(listings=listings, stats=stats)
