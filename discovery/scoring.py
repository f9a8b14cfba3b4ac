# discovery/scoring.py
import time
from decimal import Decimal, InvalidOperation
from typing import Any

# Recency boost, mirrored by the painless script in discovery/search/ranking.py
BOOST_WINDOW_SECONDS = 18 * 24 * 60 * 60
RECENT_BOOST_AMOUNT = 0.5

HIDDEN_TAGS = ("Hide", "Delete")
DEFAULT_TAG_MULTIPLIERS = {
    "Hide": 0.0,
    "Delete": 0.0,
    "LowQuality": 0.5,
    "Featured": 2.0,
}

COMMISSION_BOOST_PER_UNIT = 0.05
COMMISSION_BOOST_CAP = 10
NO_MEDIA_PENALTY = 0.8
NO_DESCRIPTION_PENALTY = 0.9

def recency_boost(created_ts: float | None, now: float | None = None) -> float:
    # Grows linearly with age inside the window, no boost at or beyond it
    if created_ts is None:
        return 1.0
    now = time.time() if now is None else now
    age = now - created_ts
    if 0 < age < BOOST_WINDOW_SECONDS:
        return 1.0 + (age / BOOST_WINDOW_SECONDS) * RECENT_BOOST_AMOUNT
    return 1.0

def final_rank_score(
    base: float,
    score_multiplier: float | None,
    created_ts: float | None,
    now: float | None = None,
) -> float:
    score = base
    if score_multiplier is not None:
        score *= score_multiplier
    return score * recency_boost(created_ts, now)

def _commission_units(raw: Any) -> Decimal:
    if isinstance(raw, dict):
        raw = raw.get("amount")
    if raw is None or isinstance(raw, bool):
        return Decimal(0)
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        return Decimal(0)
    if not value.is_finite() or value < 0:
        return Decimal(0)
    return value

class ScoringPolicy:
    """Static quality multiplier of a listing.

    Computed when a listing is indexed and whenever its moderation tags
    change, then stored on the document as ``scoreMultiplier`` so ranking
    only has to multiply it in at query time. Always >= 0; a listing
    tagged Hide or Delete scores 0.
    """

    def __init__(
        self,
        tag_multipliers: dict[str, float] | None = None,
        commission_boost_per_unit: float = COMMISSION_BOOST_PER_UNIT,
        commission_boost_cap: int = COMMISSION_BOOST_CAP,
    ):
        self.tag_multipliers = dict(DEFAULT_TAG_MULTIPLIERS if tag_multipliers is None else tag_multipliers)
        self.commission_boost_per_unit = commission_boost_per_unit
        self.commission_boost_cap = commission_boost_cap

    def score_listing(self, listing: dict) -> float:
        multiplier = 1.0
        for tag in set(listing.get("scoreTags") or []):
            multiplier *= max(0.0, self.tag_multipliers.get(tag, 1.0))
        if multiplier == 0.0:
            return 0.0

        commission = min(_commission_units(listing.get("commissionPerUnit")), Decimal(self.commission_boost_cap))
        multiplier *= 1.0 + self.commission_boost_per_unit * float(commission)

        if not listing.get("media"):
            multiplier *= NO_MEDIA_PENALTY
        if not (listing.get("description") or "").strip():
            multiplier *= NO_DESCRIPTION_PENALTY
        return multiplier

default_policy = ScoringPolicy()

def score_listing(listing: dict) -> float:
    return default_policy.score_listing(listing)
