# discovery/web/server.py
import logging
from typing import Any, Dict

from fastapi import Body, FastAPI, Request
from fastapi.responses import JSONResponse

from discovery.errors import IndexUnavailableError, InvalidFilterError, ListingNotFoundError
from discovery.schemas import ListingIds, ScoreTagsUpdate, SearchRequest, SearchResult
from discovery.search.service import SearchService
from discovery.services.indexer import IndexWriter

logger = logging.getLogger(__name__)

def create_app(search_service: SearchService, index_writer: IndexWriter) -> FastAPI:
    app = FastAPI(title="Listing Discovery")

    @app.exception_handler(InvalidFilterError)
    async def invalid_filter(request: Request, exc: InvalidFilterError):
        return JSONResponse(status_code=422, content={"detail": str(exc), "filter": exc.filter_name})

    @app.exception_handler(ListingNotFoundError)
    async def not_found(request: Request, exc: ListingNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(IndexUnavailableError)
    async def index_unavailable(request: Request, exc: IndexUnavailableError):
        logger.error("%s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": "Search index unavailable"})

    @app.get("/healthz")
    async def healthz():
        return {"ok": True}

    @app.post("/search", response_model=SearchResult)
    async def search(req: SearchRequest):
        return await search_service.search(
            query=req.query,
            sort=req.sort,
            order=req.order,
            filters=req.filters,
            page_size=req.pageSize,
            offset=req.offset,
        )

    @app.get("/listings/count")
    async def count_listings():
        return {"count": await index_writer.count()}

    @app.post("/listings/by-ids")
    async def listings_by_ids(req: ListingIds):
        return await index_writer.get_by_ids(req.ids)

    @app.get("/listings/{listing_id}")
    async def get_listing(listing_id: str):
        return await index_writer.get(listing_id)

    @app.put("/listings/{listing_id}")
    async def index_listing(listing_id: str, listing: Dict[str, Any] = Body(...)):
        return {"id": await index_writer.index(listing_id, listing)}

    @app.put("/listings/{listing_id}/score-tags")
    async def update_score_tags(listing_id: str, req: ScoreTagsUpdate):
        return await index_writer.update_score_tags(listing_id, req.scoreTags)

    return app
