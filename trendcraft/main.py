import logging
import asyncio
from datetime import datetime
from typing import List, Optional, Dict, Any, Literal

from fastapi import FastAPI, HTTPException, Depends, Request, Response, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ConfigDict, Field

from trendcraft.config import load_settings
from trendcraft.store import PostRepository, PublicUser, Post, UserRepository, seed_demo_data
from trendcraft.services.analytics_service import (
    AnalyticsOverview,
    PerformancePoint,
    build_overview,
    build_performance,
)
from trendcraft.services.apify_service import ApifyService
from trendcraft.services.auth_service import AuthError, AuthService, TokenPayload, hash_password
from trendcraft.services.gemini_service import ContentGenerationRequest, GeneratedContent, GeminiService
from trendcraft.services.platforms import TREND_LOCATIONS, Platform
from trendcraft.services.trend_service import PollPolicy, TrendService
from trendcraft.services.trend_transformer import TrendRecord

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Refuses to start without JWT_SECRET
settings = load_settings()

# Define data models
class LoginRequest(BaseModel):
    email: str
    password: str

class LoginResponse(BaseModel):
    token: str
    user: PublicUser

class PostCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(min_length=1)
    platform: str = Field(default="twitter")
    viral_score: int = Field(default=0, ge=0, le=100, alias="viralScore")
    hashtags: List[str] = Field(default_factory=list)
    status: Literal["draft", "scheduled", "published"] = "draft"
    scheduled_for: Optional[datetime] = Field(default=None, alias="scheduledFor")

class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None

class ProfileResponse(BaseModel):
    id: int
    username: str
    email: str
    full_name: str
    bio: str
    avatar: Optional[str] = None

class TrendLocation(BaseModel):
    name: str
    woeid: int

# Create FastAPI app
app = FastAPI(
    title="TrendCraft API",
    description="API for social trend discovery, post drafting and post analytics",
    version="1.0.0",
)

# Configure CORS for React frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# In-memory stores, seeded with the demo account
user_repository = UserRepository()
post_repository = PostRepository()
seed_demo_data(user_repository, post_repository, hash_password("demo123"))

auth_service = AuthService(settings.jwt_secret, user_repository, expires_hours=settings.jwt_expires_hours)

# Service instances and initialization lock
trend_service: Optional[TrendService] = None
gemini_service: Optional[GeminiService] = None
init_lock = asyncio.Lock()
services_initialized = False
service_errors: Dict[str, str] = {}

# Error handling middleware
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({"detail": exc.errors(), "body": exc.body}),
    )

@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "message": str(exc)},
    )

# Health check endpoint
@app.get("/api/health")
async def health_check():
    health_status = {
        "status": "ok",
        "message": "API is running",
        "services": {
            "trends": "initialized" if trend_service else "not_initialized",
            "gemini": "initialized" if gemini_service else "not_initialized",
        }
    }

    # Add error information if any services failed to initialize
    if service_errors:
        health_status["service_errors"] = service_errors
        health_status["status"] = "degraded"

    return health_status

# Dependencies
def get_auth_service() -> AuthService:
    return auth_service

def get_user_repository() -> UserRepository:
    return user_repository

def get_post_repository() -> PostRepository:
    return post_repository

async def get_trend_service() -> TrendService:
    if not trend_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Trend service not initialized. Check server logs for details."
        )
    return trend_service

async def get_gemini_service() -> GeminiService:
    if not gemini_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Gemini service not initialized. Check server logs for details."
        )
    return gemini_service

async def get_current_user(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service)
) -> TokenPayload:
    scheme, _, token = (request.headers.get("Authorization") or "").strip().partition(" ")
    if scheme.lower() != "bearer":
        token = ""
    token = token.strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access token required")

    try:
        return auth_service.verify_token(token)
    except AuthError as e:
        logger.info(f"Rejected access token: {str(e)}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token")

# Auth endpoints
@app.post("/api/auth/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Exchange email and password for an access token
    """
    try:
        user = auth_service.authenticate(request.email, request.password)
    except AuthError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    logger.info(f"User {user.id} logged in")
    return LoginResponse(token=auth_service.create_access_token(user), user=PublicUser.from_user(user))

# Trend endpoints
@app.get("/api/trends", response_model=List[TrendRecord])
async def get_trends(
    response: Response,
    platform: str = Query(default="twitter"),
    limit: int = Query(default=20, ge=0),
    location: Optional[str] = Query(default=None),
    current_user: TokenPayload = Depends(get_current_user),
    trend_service: TrendService = Depends(get_trend_service)
):
    """
    Fetch trending keywords for a platform via its Apify actor.

    Provider failures return an empty list; X-Trends-Status tells them apart from "no trends".
    """
    logger.info(f"Fetching {platform} trends for user {current_user.id}")
    result = await trend_service.fetch_trends(platform, location=location)

    response.headers["X-Trends-Status"] = result.status.value
    if result.reason:
        # Header values must be single-line latin-1
        reason = " ".join(result.reason.split())[:200]
        response.headers["X-Trends-Reason"] = reason.encode("ascii", "replace").decode("ascii")
    return result.trends[:limit]

@app.get("/api/trends/locations", response_model=List[TrendLocation])
async def get_trend_locations(current_user: TokenPayload = Depends(get_current_user)):
    """
    List the locations trends can be narrowed to
    """
    return TREND_LOCATIONS

# Content generation endpoint
@app.post("/api/content/generate", response_model=GeneratedContent)
async def generate_content(
    request: ContentGenerationRequest,
    current_user: TokenPayload = Depends(get_current_user),
    gemini_service: GeminiService = Depends(get_gemini_service)
):
    """
    Draft a social post with Gemini
    """
    logger.info(f"Generating {request.platform} content about {request.topic!r} for user {current_user.id}")
    return await gemini_service.generate_content(request)

# Post endpoints
@app.get("/api/posts", response_model=List[Post])
async def list_posts(
    current_user: TokenPayload = Depends(get_current_user),
    posts: PostRepository = Depends(get_post_repository)
):
    return posts.list_for_user(current_user.id)

@app.post("/api/posts", response_model=Post, status_code=status.HTTP_201_CREATED)
async def create_post(
    request: PostCreate,
    current_user: TokenPayload = Depends(get_current_user),
    posts: PostRepository = Depends(get_post_repository)
):
    post = posts.add(
        current_user.id,
        request.content,
        request.platform,
        viral_score=request.viral_score,
        hashtags=request.hashtags,
        status=request.status,
        scheduled_for=request.scheduled_for,
    )
    logger.info(f"Created post {post.id} for user {current_user.id}")
    return post

@app.delete("/api/posts/{post_id}")
async def delete_post(
    post_id: int,
    current_user: TokenPayload = Depends(get_current_user),
    posts: PostRepository = Depends(get_post_repository)
):
    if not posts.delete(current_user.id, post_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Post {post_id} not found",
        )
    return {"message": "Post deleted successfully"}

# Analytics endpoints
@app.get("/api/analytics/overview", response_model=AnalyticsOverview)
async def get_analytics_overview(
    current_user: TokenPayload = Depends(get_current_user),
    posts: PostRepository = Depends(get_post_repository)
):
    return build_overview(posts.list_for_user(current_user.id))

@app.get("/api/analytics/performance", response_model=List[PerformancePoint])
async def get_analytics_performance(
    current_user: TokenPayload = Depends(get_current_user),
    posts: PostRepository = Depends(get_post_repository)
):
    return build_performance(posts.list_for_user(current_user.id))

# Profile endpoints
def _profile_response(user) -> ProfileResponse:
    return ProfileResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        full_name=user.profile.name,
        bio=user.profile.bio,
        avatar=user.profile.avatar,
    )

@app.get("/api/user/profile", response_model=ProfileResponse)
async def get_profile(
    current_user: TokenPayload = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository)
):
    user = users.get(current_user.id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return _profile_response(user)

@app.put("/api/user/profile", response_model=ProfileResponse)
async def update_profile(
    request: ProfileUpdate,
    current_user: TokenPayload = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository)
):
    user = users.update_profile(current_user.id, name=request.full_name, bio=request.bio, avatar=request.avatar)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return _profile_response(user)

# Initialize services function
async def initialize_services():
    """
    Initialize all services with proper error handling.
    This is called only once during startup.
    """
    global trend_service, gemini_service, services_initialized, service_errors

    # Use a lock to prevent concurrent initialization
    async with init_lock:
        if services_initialized:
            return

        # Initialize Apify-backed trend service; without a token it reports failed fetches
        apify_service: Optional[ApifyService] = None
        try:
            logger.info("Initializing Apify service")
            apify_service = ApifyService(
                api_token=settings.apify_api_token,
                base_url=settings.apify_base_url,
                request_timeout=settings.apify_request_timeout,
            )
        except Exception as e:
            logger.error(f"Failed to initialize Apify service: {str(e)}")
            service_errors["apify"] = str(e)

        trend_service = TrendService(
            apify_service,
            poll_policy=PollPolicy(
                max_attempts=settings.trend_poll_attempts,
                interval=settings.trend_poll_interval,
            ),
            actor_ids={Platform.TWITTER.value: settings.twitter_trends_actor_id},
        )

        # Initialize Gemini service
        try:
            logger.info("Initializing Gemini service")
            gemini_service = GeminiService(api_key=settings.gemini_api_key, model_name=settings.gemini_model)
        except Exception as e:
            logger.error(f"Failed to initialize Gemini service: {str(e)}", exc_info=True)
            service_errors["gemini"] = str(e)

        services_initialized = True

# Application startup event
@app.on_event("startup")
async def startup_event():
    logger.info("Starting services")
    try:
        await initialize_services()
        logger.info("Service initialization complete")
    except Exception as e:
        logger.error(f"Error during service initialization: {str(e)}", exc_info=True)

# Run the application
if __name__ == "__main__":
    import uvicorn

    # Run FastAPI with Uvicorn
    uvicorn.run("trendcraft.main:app", host="0.0.0.0", port=settings.port, reload=True)
