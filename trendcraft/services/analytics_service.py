from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from trendcraft.store import Post


class AnalyticsOverview(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_posts: int = Field(alias="totalPosts")
    total_engagement: int = Field(alias="totalEngagement")
    total_impressions: int = Field(alias="totalImpressions")
    avg_viral_score: float = Field(alias="avgViralScore")
    weekly_growth: str = Field(alias="weeklyGrowth")
    top_performing_post: Optional[Post] = Field(default=None, alias="topPerformingPost")


class PerformancePoint(BaseModel):
    date: str
    impressions: int
    engagement: int
    clicks: int


def _format_growth(current: int, previous: int) -> str:
    if previous <= 0:
        return "+0%"
    change = round((current - previous) / previous * 100)
    return f"{'+' if change >= 0 else ''}{change}%"


def build_overview(posts: List[Post], now: Optional[datetime] = None) -> AnalyticsOverview:
    """Aggregate totals for a user's posts, with week-over-week engagement growth."""
    now = now or datetime.now(timezone.utc)
    week_ago = now - timedelta(days=7)
    two_weeks_ago = now - timedelta(days=14)

    this_week = sum(p.engagement.total for p in posts if p.created_at >= week_ago)
    last_week = sum(p.engagement.total for p in posts if two_weeks_ago <= p.created_at < week_ago)

    avg_viral_score = round(sum(p.viral_score for p in posts) / len(posts), 1) if posts else 0.0
    top_post = max(posts, key=lambda p: p.engagement.total, default=None)

    return AnalyticsOverview(
        total_posts=len(posts),
        total_engagement=sum(p.engagement.total for p in posts),
        total_impressions=sum(p.performance.impressions for p in posts),
        avg_viral_score=avg_viral_score,
        weekly_growth=_format_growth(this_week, last_week),
        top_performing_post=top_post,
    )


def build_performance(posts: List[Post]) -> List[PerformancePoint]:
    """Per-day impressions, engagement and clicks, oldest day first."""
    by_day: Dict[str, PerformancePoint] = {}
    for post in sorted(posts, key=lambda p: p.created_at):
        day = post.created_at.date().isoformat()
        point = by_day.setdefault(day, PerformancePoint(date=day, impressions=0, engagement=0, clicks=0))
        point.impressions += post.performance.impressions
        point.engagement += post.engagement.total
        point.clicks += post.performance.click_through
    return list(by_day.values())
