# discovery/search/query.py
import copy
from datetime import datetime
from dataclasses import dataclass
from typing import Any, Iterable, Union

from discovery.errors import InvalidFilterError
from discovery.schemas import Filter
from discovery.scoring import HIDDEN_TAGS

# all_text is the field every searchable field gets copied to (see mapping.py)
ALL_TEXT_FIELD = "all_text"
TITLE_FIELD = "title"
TITLE_BOOST = 2
PHRASE_SLOP = 50
# most query tokens must be in the listing
MINIMUM_SHOULD_MATCH = "-20%"

GREATER_OR_EQUAL = "GREATER_OR_EQUAL"
LESSER_OR_EQUAL = "LESSER_OR_EQUAL"
EQUALS = "EQUALS"
CONTAINS = "CONTAINS"
ARRAY_STRING = "ARRAY_STRING"
FLOAT = "FLOAT"
DATE = "DATE"
STRING = "STRING"
BOOLEAN = "BOOLEAN"

RANGE_VALUE_TYPES = (FLOAT, DATE)
EQUALS_VALUE_TYPES = (STRING, FLOAT, DATE, BOOLEAN)

@dataclass(frozen=True)
class RangeFilter:
    field: str
    bound: Any
    direction: str  # "gte" | "lte"

    def to_clause(self) -> dict:
        return {"range": {self.field: {self.direction: self.bound}}}

@dataclass(frozen=True)
class EqualsFilter:
    field: str
    value: Any

    def to_clause(self) -> dict:
        return {"term": {self.field: self.value}}

@dataclass(frozen=True)
class ContainsAnyFilter:
    field: str
    values: tuple[str, ...]

    def to_clause(self) -> dict:
        return {"bool": {"should": [{"term": {self.field: v}} for v in self.values]}}

FilterClause = Union[RangeFilter, EqualsFilter, ContainsAnyFilter]

def _float(f: Filter) -> float:
    if isinstance(f.value, bool):
        raise InvalidFilterError(f"Filter {f.name}: {f.value!r} is not a number", f.name)
    try:
        value = float(f.value)
    except (TypeError, ValueError):
        raise InvalidFilterError(f"Filter {f.name}: {f.value!r} is not a number", f.name) from None
    if value != value or value in (float("inf"), float("-inf")):
        raise InvalidFilterError(f"Filter {f.name}: {f.value!r} is not a finite number", f.name)
    return value

def _date(f: Filter) -> Any:
    # epoch seconds or an ISO 8601 date/datetime
    if isinstance(f.value, (int, float)) and not isinstance(f.value, bool):
        return f.value
    if isinstance(f.value, str):
        try:
            datetime.fromisoformat(f.value.strip().replace("Z", "+00:00"))
        except ValueError:
            pass
        else:
            return f.value.strip()
    raise InvalidFilterError(f"Filter {f.name}: {f.value!r} is not a date", f.name)

def _coerce(f: Filter, allowed: tuple[str, ...]) -> Any:
    if f.valueType not in allowed:
        raise InvalidFilterError(
            f"Filter {f.name}: {f.operator} does not support valueType {f.valueType!r}", f.name
        )
    if f.value is None:
        raise InvalidFilterError(f"Filter {f.name} has no value", f.name)
    if f.valueType == FLOAT:
        return _float(f)
    if f.valueType == DATE:
        return _date(f)
    if f.valueType == BOOLEAN:
        if isinstance(f.value, bool):
            return f.value
        if isinstance(f.value, str) and f.value.strip().lower() in ("true", "false"):
            return f.value.strip().lower() == "true"
        raise InvalidFilterError(f"Filter {f.name}: {f.value!r} is not a boolean", f.name)
    if not isinstance(f.value, str) or not f.value:
        raise InvalidFilterError(f"Filter {f.name}: {f.value!r} is not a string", f.name)
    return f.value

def parse_filter(f: Filter | dict) -> FilterClause:
    """Turn a wire filter into one of the supported clause variants.

    Unknown operator/valueType combinations are rejected with
    InvalidFilterError: ranges take FLOAT or DATE, EQUALS takes STRING,
    FLOAT, DATE or BOOLEAN, CONTAINS takes ARRAY_STRING only. Values
    that do not coerce to their valueType are rejected too.
    """
    if isinstance(f, dict):
        f = Filter(**f)

    if f.operator == GREATER_OR_EQUAL:
        return RangeFilter(f.name, _coerce(f, RANGE_VALUE_TYPES), "gte")
    if f.operator == LESSER_OR_EQUAL:
        return RangeFilter(f.name, _coerce(f, RANGE_VALUE_TYPES), "lte")
    if f.operator == EQUALS:
        return EqualsFilter(f.name, _coerce(f, EQUALS_VALUE_TYPES))
    if f.operator == CONTAINS:
        if f.valueType != ARRAY_STRING:
            raise InvalidFilterError(
                f"Filter {f.name}: CONTAINS requires valueType {ARRAY_STRING}, got {f.valueType!r}", f.name
            )
        if isinstance(f.value, (list, tuple)):
            parts = [str(v) for v in f.value]
        elif isinstance(f.value, str):
            parts = f.value.split(",")
        else:
            raise InvalidFilterError(f"Filter {f.name}: expected a comma separated list", f.name)
        values = tuple(v.strip() for v in parts if v.strip())
        if not values:
            raise InvalidFilterError(f"Filter {f.name}: empty value list", f.name)
        return ContainsAnyFilter(f.name, values)
    raise InvalidFilterError(f"Filter {f.name}: unsupported operator {f.operator!r}", f.name)

def visibility_clauses() -> list[dict]:
    return [
        {"match": {"status": "withdrawn"}},
        # Never return any invalid listings
        {"term": {"valid": False}},
        # Never return any listings moderated as hidden
        {"terms": {"scoreTags": list(HIDDEN_TAGS)}},
    ]

class QueryBuilder:
    """Builds the ranked query and the aggregation query for a search.

    Both share the same must/must_not/filter clauses; the aggregation query
    drops the should clauses, which only affect ranking.
    """

    def build(self, query: str | None, filters: Iterable[FilterClause | Filter | dict] = ()) -> tuple[dict, dict]:
        bool_query: dict[str, list] = {
            "must": [],
            "must_not": visibility_clauses(),
            "should": [],
            "filter": [],
        }

        query = (query or "").strip()
        if query:
            bool_query["must"].append({
                "match": {
                    ALL_TEXT_FIELD: {
                        "query": query,
                        "fuzziness": "AUTO",
                        "minimum_should_match": MINIMUM_SHOULD_MATCH,
                    }
                }
            })
            # extra score if the query matches in the title
            bool_query["should"].append({
                "match": {TITLE_FIELD: {"query": query, "boost": TITLE_BOOST, "fuzziness": "AUTO"}}
            })
            # extra score for query words in proximity to each other
            bool_query["should"].append({
                "match_phrase": {ALL_TEXT_FIELD: {"query": query, "slop": PHRASE_SLOP}}
            })
        else:
            bool_query["must"].append({"match_all": {}})

        for f in filters:
            clause = f if isinstance(f, (RangeFilter, EqualsFilter, ContainsAnyFilter)) else parse_filter(f)
            bool_query["filter"].append(clause.to_clause())

        ranked = {"bool": bool_query}
        aggregation = copy.deepcopy(ranked)
        del aggregation["bool"]["should"]
        return ranked, aggregation
