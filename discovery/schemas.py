# discovery/schemas.py
from pydantic import BaseModel, Field, field_validator
from typing import Any, List, Optional

LEGACY_PAGE_SIZE = -1

class Filter(BaseModel):
    # operator/valueType are checked by parse_filter
    name: str = Field(..., min_length=1)
    operator: str
    value: Any = None
    valueType: Optional[str] = None

class SearchRequest(BaseModel):
    query: Optional[str] = None
    sort: Optional[str] = None
    order: Optional[str] = None
    filters: List[Filter] = Field(default_factory=list)
    pageSize: int = 100
    offset: int = Field(0, ge=0)

    @field_validator("pageSize")
    @classmethod
    def _page_size(cls, v: int) -> int:
        if v < 1 and v != LEGACY_PAGE_SIZE:
            raise ValueError("pageSize must be >= 1 (or -1 for the legacy unpaged listing)")
        return v

class Price(BaseModel):
    amount: str = "0"
    currency: str = "fiat-USD"

class ListingView(BaseModel):
    id: str
    title: Optional[str] = None
    category: Optional[str] = None
    subCategory: Optional[str] = None
    description: Optional[str] = None
    price: Price = Field(default_factory=Price)

class PriceStats(BaseModel):
    minPrice: float = 0
    maxPrice: float = 0
    totalNumberOfListings: int = 0

class SearchResult(BaseModel):
    listings: List[ListingView] = Field(default_factory=list)
    stats: PriceStats = Field(default_factory=PriceStats)

class ScoreTagsUpdate(BaseModel):
    scoreTags: List[str] = Field(default_factory=list)

class ListingIds(BaseModel):
    ids: List[str] = Field(default_factory=list)
