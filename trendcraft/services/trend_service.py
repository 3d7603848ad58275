import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from trendcraft.services.apify_service import ApifyService
from trendcraft.services.platforms import Platform, get_platform_spec, resolve_location
from trendcraft.services.trend_transformer import TrendRecord, transform_trend_data

# Configure logging
logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class RunStatus(str, Enum):
    """Terminal and in-flight Apify run statuses."""
    READY = "READY"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    ABORTED = "ABORTED"
    TIMED_OUT = "TIMED-OUT"


FAILED_STATUSES = {RunStatus.FAILED.value, RunStatus.ABORTED.value, RunStatus.TIMED_OUT.value}


class FetchStatus(str, Enum):
    SUCCESS = "success"
    EMPTY = "empty"
    FAILED = "failed"


class TrendFetchResult(BaseModel):
    """Outcome of one trend fetch, so "nothing trending" and "provider down" stay distinguishable."""
    platform: str
    status: FetchStatus
    trends: List[TrendRecord] = Field(default_factory=list)
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != FetchStatus.FAILED


@dataclass(frozen=True)
class PollPolicy:
    """Bounded fixed-interval polling of an actor run."""
    max_attempts: int = 30
    interval: float = 2.0


class TrendService:
    """Runs a platform's Apify actor, waits for it and normalizes the dataset into trends."""

    def __init__(
        self,
        apify_service: Optional[ApifyService],
        poll_policy: Optional[PollPolicy] = None,
        sleep: Sleep = asyncio.sleep,
        actor_ids: Optional[Dict[str, str]] = None,
    ):
        """
        Args:
            apify_service: Apify client, or None when no API token is configured.
            poll_policy: Attempts and interval used while waiting for a run.
            sleep: Coroutine used between status checks.
            actor_ids: Per-platform actor overrides, keyed by platform tag.
        """
        self.apify_service = apify_service
        self.poll_policy = poll_policy or PollPolicy()
        self.sleep = sleep
        self.actor_ids = {tag: actor for tag, actor in (actor_ids or {}).items() if actor}

    async def fetch_trends(self, platform: str, location: Optional[str] = None) -> TrendFetchResult:
        """
        Fetch current trends for a platform.

        Never raises for provider problems: they come back as a FAILED result.

        Args:
            platform: Platform tag, e.g. "twitter"
            location: Optional WOEID narrowing platforms that support locations

        Returns:
            TrendFetchResult: Status, reason and the normalized trends
        """
        spec = get_platform_spec(platform)
        if spec is None:
            logger.info(f"No actor config for platform: {platform}")
            return TrendFetchResult(platform=str(platform), status=FetchStatus.EMPTY, reason="unsupported platform")

        platform = Platform(platform).value
        if self.apify_service is None:
            logger.warning(f"Apify API token not configured, skipping trend fetch for {platform}")
            return self._failed(platform, "Apify API token not configured")

        actor_id = self.actor_ids.get(platform) or spec.config.actor_id
        run_input = spec.config.run_input(resolve_location(location))

        try:
            run = await self.apify_service.start_actor_run(actor_id, run_input)
            run_id = run.get("id")
            dataset_id = run.get("defaultDatasetId")
            if not run_id or not dataset_id:
                return self._failed(platform, "malformed run response")
            logger.info(f"Actor run started for {platform}. Run ID: {run_id}")

            status = await self._wait_for_run(run_id)
            if status != RunStatus.SUCCEEDED.value:
                if status in FAILED_STATUSES:
                    return self._failed(platform, f"actor run {status}")
                return self._failed(
                    platform,
                    f"actor run timed out after {self.poll_policy.max_attempts} status checks",
                )

            items = await self.apify_service.get_dataset_items(dataset_id)
            logger.info(f"Retrieved {len(items)} raw items for {platform}")

            trends = transform_trend_data(items, platform)
        except Exception as e:
            logger.error(f"Error fetching trends for {platform}: {str(e)}", exc_info=True)
            return self._failed(platform, str(e))

        if not trends:
            return TrendFetchResult(platform=platform, status=FetchStatus.EMPTY, reason="no trends in dataset")
        return TrendFetchResult(platform=platform, status=FetchStatus.SUCCESS, trends=trends)

    async def _wait_for_run(self, run_id: str) -> Optional[str]:
        """
        Poll a run until it finishes or the attempts run out.

        Returns:
            Optional[str]: The terminal status, or the last seen status on timeout.
        """
        status = None
        for attempt in range(self.poll_policy.max_attempts):
            run = await self.apify_service.get_run(run_id)
            status = run.get("status")

            if status == RunStatus.SUCCEEDED.value or status in FAILED_STATUSES:
                return status

            logger.debug(f"Apify actor run {run_id} status: {status}, attempt {attempt + 1}/{self.poll_policy.max_attempts}")
            if attempt < self.poll_policy.max_attempts - 1:
                await self.sleep(self.poll_policy.interval)

        return status

    def _failed(self, platform: str, reason: str) -> TrendFetchResult:
        logger.error(f"Trend fetch failed for {platform}: {reason}")
        return TrendFetchResult(platform=platform, status=FetchStatus.FAILED, reason=reason)
