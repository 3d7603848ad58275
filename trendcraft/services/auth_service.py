import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt
from pydantic import BaseModel

from trendcraft.store import User, UserRepository

# Configure logging
logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


class AuthError(Exception):
    """Raised for bad credentials and missing, invalid or expired tokens."""
    pass


class TokenPayload(BaseModel):
    """Principal carried by a verified access token."""
    id: int
    email: str


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


class AuthService:
    """Password login and HS256 access tokens."""

    def __init__(self, jwt_secret: str, users: UserRepository, expires_hours: int = 24):
        if not jwt_secret:
            raise ValueError("JWT secret must not be empty")
        self.jwt_secret = jwt_secret
        self.users = users
        self.expires_hours = expires_hours

    def authenticate(self, email: Optional[str], password: Optional[str]) -> User:
        """
        Check an email/password pair.

        Raises:
            AuthError: If the user is unknown or the password does not match.
        """
        user = self.users.get_by_email(email) if email else None
        if user is None or not password or not verify_password(password, user.password_hash):
            logger.info(f"Failed login attempt for {email}")
            raise AuthError("Invalid credentials")
        return user

    def create_access_token(self, user: User) -> str:
        expires_at = datetime.now(timezone.utc) + timedelta(hours=self.expires_hours)
        claims: Dict[str, Any] = {"id": user.id, "email": user.email, "exp": expires_at}
        return jwt.encode(claims, self.jwt_secret, algorithm=JWT_ALGORITHM)

    def verify_token(self, token: str) -> TokenPayload:
        """
        Decode and validate an access token.

        Raises:
            AuthError: If the token is malformed, badly signed or expired.
        """
        try:
            claims = jwt.decode(token, self.jwt_secret, algorithms=[JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise AuthError("Token expired")
        except jwt.InvalidTokenError as e:
            raise AuthError(f"Invalid token: {str(e)}")

        try:
            return TokenPayload(id=claims["id"], email=claims["email"])
        except (KeyError, ValueError):
            raise AuthError("Token is missing required claims")
