from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, Field


class Platform(str, Enum):
    """Social platforms with a registered trend scraper."""
    TWITTER = "twitter"
    TIKTOK = "tiktok"


class PlatformConfig(BaseModel):
    """Apify actor and run input used to scrape one platform."""
    actor_id: str
    input: Dict[str, Any] = Field(default_factory=dict)

    def run_input(self, location: Optional[str] = None) -> Dict[str, Any]:
        run_input = dict(self.input)
        if location and "location" in run_input:
            run_input["location"] = location
        return run_input


# (raw keyword, raw volume) pulled out of a scraped item
RawTrend = Tuple[Any, Any]
Extractor = Callable[[Mapping[str, Any]], Optional[RawTrend]]


def _first_present(item: Mapping[str, Any], *fields: str) -> Any:
    for field in fields:
        value = item.get(field)
        if value:
            return value
    return None


def extract_twitter(item: Mapping[str, Any]) -> Optional[RawTrend]:
    keyword = _first_present(item, "topic", "trend", "name", "query")
    if not keyword:
        return None
    return keyword, _first_present(item, "tweet_volume", "volume")


def extract_tiktok(item: Mapping[str, Any]) -> Optional[RawTrend]:
    keyword = _first_present(item, "desc", "description", "title")
    if not keyword:
        return None
    return keyword, _first_present(item, "playCount", "diggCount") or 0


@dataclass(frozen=True)
class PlatformSpec:
    config: PlatformConfig
    extract: Extractor


PLATFORMS: Dict[Platform, PlatformSpec] = {
    Platform.TWITTER: PlatformSpec(
        config=PlatformConfig(
            actor_id="apify/twitter-trends-scraper",
            input={"location": "United States", "limit": 10},
        ),
        extract=extract_twitter,
    ),
    Platform.TIKTOK: PlatformSpec(
        config=PlatformConfig(
            actor_id="novi/fast-tiktok-api",
            input={"type": "TREND", "country": "US", "limit": 20},
        ),
        extract=extract_tiktok,
    ),
}


def get_platform_spec(platform: Any) -> Optional[PlatformSpec]:
    """Look up the registered spec for a platform tag, or None if unsupported."""
    try:
        return PLATFORMS.get(Platform(platform))
    except (TypeError, ValueError):
        return None


# Locations offered to clients, keyed by Yahoo WOEID
TREND_LOCATIONS = [
    {"name": "Worldwide", "woeid": 1},
    {"name": "United States", "woeid": 23424977},
    {"name": "United Kingdom", "woeid": 23424975},
    {"name": "Canada", "woeid": 23424775},
    {"name": "India", "woeid": 23424848},
    {"name": "Australia", "woeid": 23424748},
]


def resolve_location(woeid: Any) -> Optional[str]:
    """Map a WOEID (int or numeric string) to its location name."""
    try:
        woeid = int(woeid)
    except (TypeError, ValueError):
        return None
    for location in TREND_LOCATIONS:
        if location["woeid"] == woeid:
            return location["name"]
    return None
