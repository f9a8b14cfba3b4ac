# discovery/search/ranking.py
"""Query-time ranking, evaluated by Elasticsearch as a painless script.

All non time based scoring is computed ahead of time and stored in a
listing's ``scoreMultiplier`` field (see discovery.scoring.ScoringPolicy).
The script multiplies it into the text relevance score and applies the
recency boost. ``discovery.scoring.final_rank_score`` is the Python
rendition of the same formula; keep both in step and bump
RANKING_SCRIPT_VERSION when the script changes.
"""
import time

from discovery.scoring import BOOST_WINDOW_SECONDS, RECENT_BOOST_AMOUNT

RANKING_SCRIPT_VERSION = 2

CREATED_TIMESTAMP_FIELD = "createdEvent.timestamp"
SCORE_MULTIPLIER_FIELD = "scoreMultiplier"

RANKING_SCRIPT = f"""double score = _score;

if (doc.containsKey('{SCORE_MULTIPLIER_FIELD}') && doc['{SCORE_MULTIPLIER_FIELD}'].size() > 0) {{
  score *= doc['{SCORE_MULTIPLIER_FIELD}'].value;
}}

if (doc.containsKey('{CREATED_TIMESTAMP_FIELD}') && doc['{CREATED_TIMESTAMP_FIELD}'].size() > 0) {{
  double recentBoostAmount = params.recentBoostAmount;
  long boostPeriod = params.boostPeriod;
  long age = params.now - doc['{CREATED_TIMESTAMP_FIELD}'].value;
  if (age > 0 && age < boostPeriod) {{
    score *= 1.0 + ((double)age / (double)boostPeriod) * recentBoostAmount;
  }}
}}

return score;
"""

def ranking_params(now: float | None = None) -> dict:
    # now goes in as a parameter so every node uses the same value and the
    # script never needs recompiling
    return {
        "now": int(time.time() if now is None else now),
        "boostPeriod": BOOST_WINDOW_SECONDS,
        "recentBoostAmount": RECENT_BOOST_AMOUNT,
    }

def ranked(query: dict, now: float | None = None) -> dict:
    """Wrap a bool query in the function_score that applies the ranking script."""
    return {
        "function_score": {
            "query": query,
            "script_score": {
                "script": {
                    "lang": "painless",
                    "source": RANKING_SCRIPT,
                    "params": ranking_params(now),
                }
            },
            "boost_mode": "replace",
        }
    }
