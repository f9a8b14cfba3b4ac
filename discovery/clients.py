# discovery/clients.py
import asyncio
import logging
from typing import Optional

from elasticsearch import AsyncElasticsearch
from elasticsearch import ApiError, TransportError
from redis.asyncio import Redis

from discovery.config import settings

logger = logging.getLogger(__name__)

async def get_es_client(
    host: Optional[str] = None,
    wait_ready: bool = True,
    retries: Optional[int] = None,
    backoff_sec: Optional[float] = None,
) -> AsyncElasticsearch:
    """Create the search index client and optionally wait until the cluster answers.

    Defaults come from settings: ELASTICSEARCH_HOST, ES_REQUEST_TIMEOUT,
    ES_CONNECT_RETRIES, ES_RETRY_BACKOFF_SEC.
    """
    host = host or settings.ELASTICSEARCH_HOST
    retries = settings.ES_CONNECT_RETRIES if retries is None else retries
    backoff_sec = settings.ES_RETRY_BACKOFF_SEC if backoff_sec is None else backoff_sec
    client = AsyncElasticsearch(hosts=[host], request_timeout=settings.ES_REQUEST_TIMEOUT)

    if wait_ready:
        for i in range(max(1, retries)):
            try:
                await client.info()
                break
            except (ApiError, TransportError) as e:
                if i == retries - 1:
                    await client.close()
                    raise
                logger.warning("Elasticsearch at %s not ready (%s), retrying in %ss", host, e, backoff_sec)
                await asyncio.sleep(backoff_sec)
    return client

def get_redis_client(url: Optional[str] = None) -> Redis:
    return Redis.from_url(
        url or settings.REDIS_URL,
        decode_responses=True,
        socket_timeout=settings.RATES_TIMEOUT,
        socket_connect_timeout=settings.RATES_TIMEOUT,
    )

async def cluster_health(es: AsyncElasticsearch) -> dict:
    resp = await es.cluster.health()
    return getattr(resp, "body", resp)
