"""
In-memory user and post repositories.

The API has no database; these repositories hold the demo data for the
lifetime of the process and are injected into the routes as dependencies.
"""

import itertools
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserProfile(BaseModel):
    name: str = ""
    bio: str = ""
    avatar: Optional[str] = None


class User(BaseModel):
    id: int
    username: str
    email: str
    password_hash: str
    profile: UserProfile = Field(default_factory=UserProfile)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PublicUser(BaseModel):
    """User as returned to clients, without the password hash."""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    username: str
    email: str
    profile: UserProfile
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_user(cls, user: User) -> "PublicUser":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            profile=user.profile,
            created_at=user.created_at,
        )


class Engagement(BaseModel):
    likes: int = 0
    retweets: int = 0
    comments: int = 0
    shares: int = 0

    @property
    def total(self) -> int:
        return self.likes + self.retweets + self.comments + self.shares


class Performance(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    impressions: int = 0
    reach: int = 0
    click_through: int = Field(default=0, alias="clickThrough")


class Post(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    user_id: int = Field(alias="userId")
    content: str
    platform: str
    viral_score: int = Field(default=0, alias="viralScore")
    engagement: Engagement = Field(default_factory=Engagement)
    hashtags: List[str] = Field(default_factory=list)
    status: str = "draft"
    scheduled_for: Optional[datetime] = Field(default=None, alias="scheduledFor")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="createdAt")
    performance: Performance = Field(default_factory=Performance)


class UserRepository:
    def __init__(self):
        self._users: Dict[int, User] = {}
        self._ids = itertools.count(1)

    def add(self, username: str, email: str, password_hash: str, profile: Optional[UserProfile] = None,
            created_at: Optional[datetime] = None) -> User:
        user = User(
            id=next(self._ids),
            username=username,
            email=email,
            password_hash=password_hash,
            profile=profile or UserProfile(),
            created_at=created_at or datetime.now(timezone.utc),
        )
        self._users[user.id] = user
        return user

    def get(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        email = email.strip().lower()
        return next((u for u in self._users.values() if u.email.lower() == email), None)

    def update_profile(self, user_id: int, **changes) -> Optional[User]:
        user = self._users.get(user_id)
        if user is None:
            return None
        profile = user.profile.model_copy(update={k: v for k, v in changes.items() if v is not None})
        user = user.model_copy(update={"profile": profile})
        self._users[user_id] = user
        return user


class PostRepository:
    def __init__(self):
        self._posts: Dict[int, Post] = {}
        self._ids = itertools.count(1)

    def add(self, user_id: int, content: str, platform: str, **fields) -> Post:
        post = Post(id=next(self._ids), user_id=user_id, content=content, platform=platform, **fields)
        self._posts[post.id] = post
        return post

    def list_for_user(self, user_id: int) -> List[Post]:
        """Posts owned by a user, newest first."""
        posts = [p for p in self._posts.values() if p.user_id == user_id]
        return sorted(posts, key=lambda p: p.created_at, reverse=True)

    def delete(self, user_id: int, post_id: int) -> bool:
        post = self._posts.get(post_id)
        if post is None or post.user_id != user_id:
            return False
        del self._posts[post_id]
        return True


def seed_demo_data(users: UserRepository, posts: PostRepository, password_hash: str) -> User:
    """Create the demo account and its two published posts."""
    demo = users.add(
        username="demo",
        email="demo@trendcraft.ai",
        password_hash=password_hash,
        profile=UserProfile(
            name="Demo User",
            bio="Content creator exploring AI-powered social media",
            avatar="https://images.pexels.com/photos/614810/pexels-photo-614810.jpeg?auto=compress&cs=tinysrgb&w=150&h=150&fit=crop",
        ),
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )

    now = datetime.now(timezone.utc)
    posts.add(
        demo.id,
        "🚀 Just discovered the future of content creation with AI! The possibilities are endless when you "
        "combine creativity with technology. What's your take on AI-powered social media? "
        "#AI #ContentCreation #TechTrends",
        "twitter",
        viral_score=87,
        engagement=Engagement(likes=342, retweets=89, comments=23, shares=45),
        hashtags=["#AI", "#ContentCreation", "#TechTrends"],
        status="published",
        scheduled_for=now,
        created_at=datetime(2024, 1, 15, tzinfo=timezone.utc),
        performance=Performance(impressions=12500, reach=8900, click_through=156),
    )
    posts.add(
        demo.id,
        "💡 Hot take: The best social media strategy isn't about posting more, it's about posting smarter. "
        "Data-driven content creation is the game changer we've been waiting for! "
        "#SocialMediaStrategy #DataDriven #MarketingTips",
        "twitter",
        viral_score=92,
        engagement=Engagement(likes=567, retweets=143, comments=67, shares=89),
        hashtags=["#SocialMediaStrategy", "#DataDriven", "#MarketingTips"],
        status="published",
        scheduled_for=now - timedelta(days=1),
        created_at=datetime(2024, 1, 14, tzinfo=timezone.utc),
        performance=Performance(impressions=18300, reach=14200, click_through=234),
    )
    return demo
