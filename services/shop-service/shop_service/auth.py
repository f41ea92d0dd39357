from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from .config import JWTSettings
from .entities import User
from .errors import AlreadyExists, NotFound, Unauthorized
from .repository import UserRepository

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 260_000
TOKEN_ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, PBKDF2_ITERATIONS)
    return "pbkdf2_sha256${}${}${}".format(
        PBKDF2_ITERATIONS,
        base64.b64encode(salt).decode("ascii"),
        base64.b64encode(digest).decode("ascii"),
    )


def check_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$")
        if algorithm != "pbkdf2_sha256":
            return False
        digest = hashlib.pbkdf2_hmac(
            "sha256", password.encode(), base64.b64decode(salt, validate=True), int(iterations)
        )
    except (ValueError, binascii.Error):
        # A corrupt stored hash never matches.
        return False
    return hmac.compare_digest(base64.b64encode(digest), expected.encode())


@dataclass(frozen=True)
class LoginResult:
    token: str
    user: User


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    username: str


class AuthService:
    def __init__(self, users: UserRepository, settings: JWTSettings):
        self._users = users
        self._settings = settings

    def register(self, username: str, email: str, password: str) -> User:
        for lookup, value in ((self._users.get_by_username, username), (self._users.get_by_email, email)):
            try:
                lookup(value)
            except NotFound:
                continue
            raise AlreadyExists("user already exists")

        user = self._users.create(username, email, hash_password(password))
        logger.info("User registered user_id=%s username=%s", user.id, user.username)
        return user

    def login(self, username: str, password: str) -> LoginResult:
        try:
            user = self._users.get_by_username(username)
        except NotFound:
            raise Unauthorized("invalid credentials") from None
        if not check_password(password, user.password_hash):
            raise Unauthorized("invalid credentials")
        logger.info("User logged in user_id=%s", user.id)
        return LoginResult(token=self.issue_token(user), user=user)

    def issue_token(self, user: User) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "user_id": user.id,
            "username": user.username,
            "iat": now,
            "exp": now + timedelta(seconds=self._settings.expiry_seconds),
        }
        return jwt.encode(claims, self._settings.secret_key, algorithm=TOKEN_ALGORITHM)

    def authenticate(self, token: str) -> TokenClaims:
        try:
            claims = jwt.decode(token, self._settings.secret_key, algorithms=[TOKEN_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise Unauthorized("token expired") from None
        except jwt.InvalidTokenError:
            raise Unauthorized("invalid token") from None
        user_id = claims.get("user_id")
        if not isinstance(user_id, int):
            raise Unauthorized("invalid token")
        return TokenClaims(user_id=user_id, username=str(claims.get("username", "")))


class UserService:
    def __init__(self, users: UserRepository):
        self._users = users

    def get_profile(self, user_id: int) -> User:
        return self._users.get_by_id(user_id)
