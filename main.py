# main.py: Elasticsearch + Redis clients, APScheduler and FastAPI on one event loop
import asyncio
import logging

import uvicorn
from discovery.config import settings
from discovery.clients import get_es_client, get_redis_client
from discovery.jobs.scheduler import start_scheduler
from discovery.rates import ExchangeRateProvider
from discovery.search.mapping import ensure_index
from discovery.search.service import SearchService
from discovery.search.sort import SortResolver
from discovery.services.indexer import IndexWriter
from discovery.web.server import create_app

logger = logging.getLogger(__name__)
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL))

async def run():
    # 1) Clients
    es = await get_es_client()
    redis = get_redis_client()
    await ensure_index(es, settings.LISTINGS_INDEX)

    # 2) Components
    rates = ExchangeRateProvider(redis)
    search_service = SearchService(es, SortResolver(rates))
    index_writer = IndexWriter(es)

    # 3) Scheduler
    scheduler = await start_scheduler(es, index_writer)

    # 4) FastAPI via Uvicorn (blocks until Ctrl+C / shutdown)
    web_app = create_app(search_service, index_writer)
    server = uvicorn.Server(
        uvicorn.Config(
            web_app,
            host=settings.WEB_HOST,
            port=settings.WEB_PORT,
            log_level=settings.LOG_LEVEL.lower(),
        )
    )

    try:
        await server.serve()
    finally:
        scheduler.shutdown(wait=False)
        await redis.aclose()
        await es.close()
        logger.info("Discovery server stopped")

if __name__ == "__main__":
    try:
        asyncio.run(run())
    except (KeyboardInterrupt, SystemExit):
        pass
