# discovery/search/mapping.py
import logging

from elasticsearch import AsyncElasticsearch, BadRequestError

logger = logging.getLogger(__name__)

_TEXT_COPY = {"type": "text", "copy_to": "all_text"}
_KEYWORD_COPY = {"type": "keyword", "copy_to": "all_text"}

LISTINGS_MAPPING = {
    "properties": {
        # every searchable field is copied here, see discovery.search.query
        "all_text": {"type": "text"},
        "title": _TEXT_COPY,
        "description": _TEXT_COPY,
        "category": _KEYWORD_COPY,
        "subCategory": _KEYWORD_COPY,
        "status": {"type": "keyword"},
        "valid": {"type": "boolean"},
        "scoreTags": {"type": "keyword"},
        "scoreMultiplier": {"type": "float"},
        "price": {
            "properties": {
                "amount": {"type": "float"},
                "currency": {"properties": {"id": {"type": "keyword"}}},
            }
        },
        "commissionPerUnit": {"type": "object", "enabled": False},
        "createdEvent": {"properties": {"timestamp": {"type": "long"}}},
        "media": {"type": "object", "enabled": False},
        "offers": {"type": "object", "enabled": False},
    }
}

async def ensure_index(es: AsyncElasticsearch, index: str) -> bool:
    """Create the listings index if missing. Returns True when it was created."""
    if await es.indices.exists(index=index):
        return False
    try:
        await es.indices.create(index=index, mappings=LISTINGS_MAPPING)
    except BadRequestError as e:
        # another replica created it first
        if "resource_already_exists_exception" not in str(e):
            raise
        return False
    logger.info("Created search index %s", index)
    return True
