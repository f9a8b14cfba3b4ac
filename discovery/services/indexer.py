# discovery/services/indexer.py
import asyncio
import logging
from typing import Any, Iterable

from elasticsearch import AsyncElasticsearch, ApiError, NotFoundError, TransportError

from discovery.config import settings
from discovery.errors import IndexUnavailableError, ListingNotFoundError
from discovery.normalizer import normalize_for_index
from discovery.scoring import HIDDEN_TAGS, ScoringPolicy, default_policy

logger = logging.getLogger(__name__)

INDEX_ERRORS = (ApiError, TransportError, asyncio.TimeoutError)

# Only touches the two fields, server side, which keeps the window small when
# two systems update the same listing at the same time.
SCORE_TAGS_UPDATE_SCRIPT = """
ctx._source.scoreTags = params.scoreTags;
ctx._source.scoreMultiplier = params.scoreMultiplier;
"""

def _body(response: Any) -> dict:
    return getattr(response, "body", response)

class IndexWriter:
    def __init__(self, es: AsyncElasticsearch, policy: ScoringPolicy | None = None, index: str | None = None):
        self.es = es
        self.policy = policy or default_policy
        self.index_name = index or settings.LISTINGS_INDEX

    async def index(self, listing_id: str, listing: dict) -> str:
        """Indexes a listing with a freshly computed scoreMultiplier."""
        doc = normalize_for_index(listing)

        # commissionPerUnit feeds the score, a listing without it is likely a bug
        if not doc.get("commissionPerUnit"):
            logger.warning(
                "Missing field commissionPerUnit on listing %s", listing_id,
                extra={"event": "missing_commission"},
            )

        doc["scoreMultiplier"] = self.policy.score_listing(doc)
        try:
            await self.es.index(index=self.index_name, id=listing_id, document=doc)
        except INDEX_ERRORS as e:
            raise IndexUnavailableError(f"Indexing listing {listing_id} failed: {e}") from e
        logger.info("Indexed listing %s (scoreMultiplier=%.3f)", listing_id, doc["scoreMultiplier"])
        return listing_id

    async def get(self, listing_id: str) -> dict:
        try:
            result = await self.es.get(index=self.index_name, id=listing_id)
        except NotFoundError:
            raise ListingNotFoundError(listing_id) from None
        except INDEX_ERRORS as e:
            raise IndexUnavailableError(f"Reading listing {listing_id} failed: {e}") from e
        return _body(result)["_source"]

    async def get_by_ids(self, ids: Iterable[str]) -> list[dict]:
        """Listings by id, leaving out the ones moderated as hidden."""
        ids = list(ids)
        if not ids:
            return []
        try:
            result = await self.es.search(
                index=self.index_name,
                query={
                    "bool": {
                        "must": {"ids": {"values": ids}},
                        "must_not": {"terms": {"scoreTags": list(HIDDEN_TAGS)}},
                    }
                },
                size=len(ids),
            )
        except INDEX_ERRORS as e:
            raise IndexUnavailableError(f"Reading listings failed: {e}") from e
        return [hit["_source"] for hit in _body(result)["hits"]["hits"]]

    async def count(self) -> int:
        try:
            result = await self.es.count(index=self.index_name)
        except INDEX_ERRORS as e:
            raise IndexUnavailableError(f"Counting listings failed: {e}") from e
        count = int(_body(result)["count"])
        logger.info("Counted %d listings in the search index.", count)
        return count

    async def update_score_tags(self, listing_id: str, score_tags: list[str]) -> dict:
        """Replaces a listing's scoreTags and recomputes its scoreMultiplier.

        The score depends on the whole listing, so the current document is
        read first. Not transactional: concurrent moderation updates are
        last write wins.
        """
        listing = await self.get(listing_id)
        listing["scoreTags"] = list(score_tags)
        listing["scoreMultiplier"] = self.policy.score_listing(listing)
        try:
            await self.es.update(
                index=self.index_name,
                id=listing_id,
                script={
                    "lang": "painless",
                    "source": SCORE_TAGS_UPDATE_SCRIPT,
                    "params": {
                        "scoreTags": listing["scoreTags"],
                        "scoreMultiplier": listing["scoreMultiplier"],
                    },
                },
            )
        except NotFoundError:
            raise ListingNotFoundError(listing_id) from None
        except INDEX_ERRORS as e:
            raise IndexUnavailableError(f"Updating listing {listing_id} failed: {e}") from e
        logger.info("Updated scoreTags of listing %s to %s", listing_id, listing["scoreTags"])
        return listing
