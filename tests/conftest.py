import os

# The app refuses to import without a signing secret
os.environ.setdefault("JWT_SECRET", "trendcraft-test-signing-secret-0123456789")

import pytest
from fastapi.testclient import TestClient

from trendcraft.main import (
    app,
    get_auth_service,
    get_gemini_service,
    get_post_repository,
    get_trend_service,
    get_user_repository,
)
from trendcraft.services.auth_service import AuthService, hash_password
from trendcraft.services.gemini_service import GeminiService
from trendcraft.store import PostRepository, UserRepository, seed_demo_data
from tests.fakes import TEST_SECRET, SleepRecorder

# bcrypt is deliberately slow, hash once per session
DEMO_PASSWORD_HASH = hash_password("demo123")


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def user_repository():
    return UserRepository()


@pytest.fixture
def post_repository():
    return PostRepository()


@pytest.fixture
def demo_user(user_repository, post_repository):
    return seed_demo_data(user_repository, post_repository, DEMO_PASSWORD_HASH)


@pytest.fixture
def auth_service(user_repository):
    return AuthService(TEST_SECRET, user_repository)


@pytest.fixture
def auth_headers(auth_service, demo_user):
    return {"Authorization": f"Bearer {auth_service.create_access_token(demo_user)}"}


@pytest.fixture
def client(auth_service, user_repository, post_repository, demo_user):
    """TestClient wired to fresh in-memory stores and a template-only Gemini service."""
    gemini = GeminiService(api_key=None)
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    app.dependency_overrides[get_user_repository] = lambda: user_repository
    app.dependency_overrides[get_post_repository] = lambda: post_repository
    app.dependency_overrides[get_gemini_service] = lambda: gemini
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def override_trend_service():
    """Install a trend service for the duration of a test."""
    def _override(service):
        app.dependency_overrides[get_trend_service] = lambda: service
    return _override
