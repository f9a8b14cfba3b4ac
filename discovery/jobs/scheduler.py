# discovery/jobs/scheduler.py
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from elasticsearch import AsyncElasticsearch

from discovery.clients import cluster_health
from discovery.config import settings
from discovery.errors import IndexUnavailableError
from discovery.services.indexer import IndexWriter

logger = logging.getLogger(__name__)

async def report_index_health(es: AsyncElasticsearch, writer: IndexWriter) -> dict:
    health = await cluster_health(es)
    report = {"status": health.get("status"), "listings": None}
    try:
        report["listings"] = await writer.count()
    except IndexUnavailableError as e:
        logger.warning("Could not count listings: %s", e)
    logger.info("Search cluster health: %s, %s listings indexed", report["status"], report["listings"])
    return report

async def start_scheduler(es: AsyncElasticsearch, writer: IndexWriter) -> AsyncIOScheduler:
    sched = AsyncIOScheduler(timezone="UTC")
    sched.add_job(
        report_index_health,
        CronTrigger(minute=settings.HEALTH_REPORT_MINUTE),
        args=[es, writer],
    )
    sched.start()
    return sched
