"""
Unit tests for filter parsing and query construction.
"""
import asyncio

import pytest

from discovery.errors import InvalidFilterError
from discovery.search.query import (
    ContainsAnyFilter,
    EqualsFilter,
    QueryBuilder,
    RangeFilter,
    parse_filter,
    visibility_clauses,
)


@pytest.fixture
def builder():
    return QueryBuilder()


def test_visibility_rules_always_present(builder):
    for query in ("", "camera"):
        ranked, aggregation = builder.build(query, [])
        for q in (ranked, aggregation):
            assert q["bool"]["must_not"] == [
                {"match": {"status": "withdrawn"}},
                {"term": {"valid": False}},
                {"terms": {"scoreTags": ["Hide", "Delete"]}},
            ]


def test_empty_query_matches_everything(builder):
    ranked, _ = builder.build("   ", [])
    assert ranked["bool"]["must"] == [{"match_all": {}}]
    assert ranked["bool"]["should"] == []


def test_text_query_clauses(builder):
    ranked, _ = builder.build("red bike", [])
    assert ranked["bool"]["must"] == [{
        "match": {"all_text": {"query": "red bike", "fuzziness": "AUTO", "minimum_should_match": "-20%"}}
    }]
    assert ranked["bool"]["should"] == [
        {"match": {"title": {"query": "red bike", "boost": 2, "fuzziness": "AUTO"}}},
        {"match_phrase": {"all_text": {"query": "red bike", "slop": 50}}},
    ]


def test_aggregation_query_strips_ranking_clauses_only(builder):
    filters = [{"name": "price.amount", "operator": "LESSER_OR_EQUAL", "value": "50", "valueType": "FLOAT"}]
    ranked, aggregation = builder.build("bike", filters)
    assert "should" not in aggregation["bool"]
    assert aggregation["bool"]["must"] == ranked["bool"]["must"]
    assert aggregation["bool"]["must_not"] == ranked["bool"]["must_not"]
    assert aggregation["bool"]["filter"] == ranked["bool"]["filter"] == [{"range": {"price.amount": {"lte": 50.0}}}]


def test_aggregation_query_is_independent_copy(builder):
    ranked, aggregation = builder.build("bike", [])
    aggregation["bool"]["must_not"].append({"term": {"x": 1}})
    assert len(ranked["bool"]["must_not"]) == 3
    assert len(visibility_clauses()) == 3


def test_filter_clauses(builder):
    filters = [
        {"name": "price.amount", "operator": "GREATER_OR_EQUAL", "value": "1.5", "valueType": "FLOAT"},
        {"name": "price.amount", "operator": "LESSER_OR_EQUAL", "value": 10, "valueType": "FLOAT"},
        {"name": "category", "operator": "EQUALS", "value": "schema.forSale", "valueType": "STRING"},
        {"name": "subCategory", "operator": "CONTAINS", "value": "a,b, c", "valueType": "ARRAY_STRING"},
    ]
    ranked, _ = builder.build("", filters)
    assert ranked["bool"]["filter"] == [
        {"range": {"price.amount": {"gte": 1.5}}},
        {"range": {"price.amount": {"lte": 10.0}}},
        {"term": {"category": "schema.forSale"}},
        {"bool": {"should": [
            {"term": {"subCategory": "a"}},
            {"term": {"subCategory": "b"}},
            {"term": {"subCategory": "c"}},
        ]}},
    ]


def test_parse_filter_variants():
    assert parse_filter({"name": "n", "operator": "GREATER_OR_EQUAL", "value": "2020-01-01", "valueType": "DATE"}) == \
        RangeFilter("n", "2020-01-01", "gte")
    assert parse_filter({"name": "n", "operator": "EQUALS", "value": True, "valueType": "BOOLEAN"}) == \
        EqualsFilter("n", True)
    assert parse_filter({"name": "n", "operator": "CONTAINS", "value": ["x", "y"], "valueType": "ARRAY_STRING"}) == \
        ContainsAnyFilter("n", ("x", "y"))


@pytest.mark.parametrize(
    "raw",
    [
        {"name": "n", "operator": "STARTS_WITH", "value": "x", "valueType": "STRING"},
        {"name": "n", "operator": "CONTAINS", "value": "x", "valueType": "STRING"},
        {"name": "n", "operator": "CONTAINS", "value": " , ", "valueType": "ARRAY_STRING"},
        {"name": "n", "operator": "GREATER_OR_EQUAL", "value": "cheap", "valueType": "FLOAT"},
        {"name": "n", "operator": "EQUALS", "value": None, "valueType": "STRING"},
        {"name": "n", "operator": "GREATER_OR_EQUAL", "value": "a,b", "valueType": "ARRAY_STRING"},
        {"name": "n", "operator": "LESSER_OR_EQUAL", "value": "ten", "valueType": None},
        {"name": "n", "operator": "LESSER_OR_EQUAL", "value": "ten", "valueType": "STRING"},
        {"name": "n", "operator": "GREATER_OR_EQUAL", "value": "yesterday", "valueType": "DATE"},
        {"name": "n", "operator": "GREATER_OR_EQUAL", "value": "nan", "valueType": "FLOAT"},
        {"name": "n", "operator": "EQUALS", "value": "x", "valueType": "BANANA"},
        {"name": "n", "operator": "EQUALS", "value": "x", "valueType": None},
        {"name": "n", "operator": "EQUALS", "value": "maybe", "valueType": "BOOLEAN"},
        {"name": "n", "operator": "EQUALS", "value": 3, "valueType": "STRING"},
    ],
)
def test_unsupported_filters_are_rejected(builder, raw):
    with pytest.raises(InvalidFilterError) as exc:
        builder.build("", [raw])
    assert exc.value.filter_name == "n"


def test_filter_values_coerce_to_their_type():
    assert parse_filter({"name": "n", "operator": "LESSER_OR_EQUAL", "value": 1700000000, "valueType": "DATE"}) == \
        RangeFilter("n", 1700000000, "lte")
    assert parse_filter({"name": "n", "operator": "EQUALS", "value": "false", "valueType": "BOOLEAN"}) == \
        EqualsFilter("n", False)
    assert parse_filter({"name": "n", "operator": "EQUALS", "value": "3", "valueType": "FLOAT"}) == \
        EqualsFilter("n", 3.0)


def test_mistyped_range_is_rejected_before_reaching_the_index(search_service, es):
    bad = {"name": "price.amount", "operator": "GREATER_OR_EQUAL", "value": "a,b", "valueType": "ARRAY_STRING"}
    with pytest.raises(InvalidFilterError):
        asyncio.run(search_service.search(filters=[bad]))
    assert es.searches == []
