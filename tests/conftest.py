"""
Pytest configuration and fixtures.
"""
import time

import pytest

from discovery.rates import ExchangeRateProvider
from discovery.search.service import SearchService
from discovery.search.sort import SortResolver
from discovery.services.indexer import IndexWriter
from tests.fakes import FakeElasticsearch, FakeRedis

DAY = 24 * 60 * 60


@pytest.fixture
def now():
    return time.time()


@pytest.fixture
def listings(now):
    """A small catalogue covering the visibility rules and currencies."""
    old = now - 60 * DAY
    return {
        "camera": {
            "title": "Vintage film camera",
            "description": "Working 35mm camera with leather case",
            "category": "schema.forSale",
            "subCategory": "schema.electronics",
            "price": {"amount": "10", "currency": {"id": "fiat-USD"}},
            "scoreMultiplier": 1.0,
            "scoreTags": [],
            "valid": True,
            "status": "active",
            "createdEvent": {"timestamp": old},
        },
        "bike": {
            "title": "Road bike",
            "description": "Carbon frame, barely used",
            "category": "schema.forSale",
            "subCategory": "schema.sports",
            "price": {"amount": "0.1", "currency": {"id": "token-ETH"}},
            "scoreMultiplier": 2.0,
            "scoreTags": [],
            "valid": True,
            "status": "active",
            "createdEvent": {"timestamp": old},
        },
        "lesson": {
            "title": "Guitar lesson",
            "description": "One hour lesson, camera friendly studio",
            "category": "schema.services",
            "subCategory": "schema.music",
            "price": {"amount": "25", "currency": {"id": "fiat-EUR"}},
            "scoreMultiplier": 1.5,
            "scoreTags": [],
            "valid": True,
            "status": "active",
            "createdEvent": {"timestamp": old},
        },
        "hidden": {
            "title": "Hidden camera",
            "description": "Moderated away",
            "category": "schema.forSale",
            "subCategory": "schema.electronics",
            "price": {"amount": "5", "currency": {"id": "fiat-USD"}},
            "scoreMultiplier": 0.0,
            "scoreTags": ["Hide"],
            "valid": True,
            "status": "active",
        },
        "deleted": {
            "title": "Deleted camera",
            "description": "Spam",
            "category": "schema.forSale",
            "subCategory": "schema.electronics",
            "price": {"amount": "1", "currency": {"id": "fiat-USD"}},
            "scoreTags": ["Delete"],
            "valid": True,
            "status": "active",
        },
        "withdrawn": {
            "title": "Withdrawn camera",
            "description": "No longer for sale",
            "category": "schema.forSale",
            "subCategory": "schema.electronics",
            "price": {"amount": "2", "currency": {"id": "fiat-USD"}},
            "scoreMultiplier": 1.0,
            "valid": True,
            "status": "withdrawn",
        },
        "invalid": {
            "title": "Invalid camera",
            "description": "Failed validation",
            "category": "schema.forSale",
            "subCategory": "schema.electronics",
            "price": {"amount": "3", "currency": {"id": "fiat-USD"}},
            "scoreMultiplier": 1.0,
            "valid": False,
            "status": "active",
        },
    }


@pytest.fixture
def es(listings):
    return FakeElasticsearch(listings)


@pytest.fixture
def redis():
    return FakeRedis({"ETH-USD_price": "200", "EUR-USD_price": "1.1", "DAI-USD_price": "1.0"})


@pytest.fixture
def rate_provider(redis):
    return ExchangeRateProvider(redis, timeout=1.0)


@pytest.fixture
def search_service(es, rate_provider):
    return SearchService(es, SortResolver(rate_provider), index="listings")


@pytest.fixture
def index_writer(es):
    return IndexWriter(es, index="listings")
