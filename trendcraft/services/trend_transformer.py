import math
import re
import logging
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from trendcraft.services.platforms import get_platform_spec

# Configure logging
logger = logging.getLogger(__name__)

Number = Union[int, float]

_NOISE_CHARS = re.compile(r"[#@]")
_NON_NUMERIC = re.compile(r"[^0-9.]")
_LEADING_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_WHITESPACE = re.compile(r"\s+")

# Stand-in volume for "under 10K"-style ranges
UNDER_RANGE_VOLUME = 5000
BASE_SCORE = 50
MAX_SCORE = 99


class Demographics(BaseModel):
    age: str = "N/A"
    interests: List[str] = Field(default_factory=list)


class TrendRecord(BaseModel):
    """A trending keyword, normalized to the same shape for every platform."""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    keyword: str
    category: str = "General"
    trend_score: int = Field(alias="trendScore", ge=0, le=MAX_SCORE)
    volume: Number = Field(ge=0)
    growth: str = "+0%"
    platforms: List[str]
    related_hashtags: List[str] = Field(alias="relatedHashtags")
    peak_time: str = Field(default="N/A", alias="peakTime")
    demographics: Demographics = Field(default_factory=Demographics)


def clean_keyword(keyword: Any) -> Optional[str]:
    """Strip '#' and '@' from a raw keyword. Returns None for non-strings."""
    if not keyword or not isinstance(keyword, str):
        return None
    return _NOISE_CHARS.sub("", keyword).strip()


def _integral(value: float) -> Number:
    return int(value) if value.is_integer() else value


def parse_volume(volume: Any) -> Number:
    """
    Convert a human-readable volume ("12.3K", "2.5M", "under 10K") to a number.

    Args:
        volume: Raw volume as scraped, string or number.

    Returns:
        Number: Non-negative estimate, 0 when nothing can be read from it.
    """
    if not volume or isinstance(volume, bool):
        return 0

    if isinstance(volume, (int, float)):
        try:
            if not math.isfinite(volume) or volume < 0:
                return 0
        except OverflowError:
            # Integers beyond float range
            return 0
        return volume

    if not isinstance(volume, str):
        return 0

    lower = volume.lower()
    if "under" in lower:
        return UNDER_RANGE_VOLUME

    match = _LEADING_NUMBER.match(_NON_NUMERIC.sub("", lower))
    if not match:
        return 0

    number = float(match.group())
    if "k" in lower:
        number *= 1000
    elif "m" in lower:
        number *= 1000000
    if not math.isfinite(number):
        return 0
    # 12.3 * 1000 is 12300.000000000002 in binary floating point
    return _integral(round(number, 6))


def calculate_trend_score(volume: Number, platform: Optional[str] = None) -> int:
    """
    Score a trend from its volume, 50 for unknown volume and capped at 99.

    `platform` is accepted for per-platform weighting but not used yet.
    """
    if not volume or volume <= 0:
        return BASE_SCORE

    # Math.round semantics: halves round up
    score = math.floor(BASE_SCORE + math.log10(volume) * 5 + 0.5)
    return max(0, min(score, MAX_SCORE))


def transform_trend_data(raw_items: Any, platform: Any) -> List[TrendRecord]:
    """
    Transform raw Apify dataset items into TrendRecord models.

    Items without a usable keyword are dropped; ids follow output position.

    Args:
        raw_items: Dataset items as returned by the actor run
        platform: Platform tag the items were scraped from

    Returns:
        List[TrendRecord]: Normalized trends, in input order
    """
    if not raw_items or not isinstance(raw_items, list):
        return []

    spec = get_platform_spec(platform)
    if spec is None:
        logger.warning(f"No transformer registered for platform: {platform}")
        return []

    platform_tag = str(getattr(platform, "value", platform))
    trends: List[TrendRecord] = []

    for item in raw_items:
        if not isinstance(item, dict):
            continue

        raw = spec.extract(item)
        if raw is None:
            continue

        raw_keyword, raw_volume = raw
        keyword = clean_keyword(raw_keyword)
        if not keyword:
            continue

        volume = parse_volume(raw_volume)
        trends.append(
            TrendRecord(
                id=len(trends) + 1,
                keyword=keyword,
                trend_score=calculate_trend_score(volume, platform_tag),
                volume=volume,
                platforms=[platform_tag],
                related_hashtags=[_WHITESPACE.sub("", keyword)],
            )
        )

    logger.info(f"Successfully transformed {len(trends)} trends for {platform_tag}")
    return trends
