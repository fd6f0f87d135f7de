"""
Admin authentication: password check, signed tokens, logout denylist and a
per-IP failed-login counter.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from portfolio_backend import keys
from portfolio_backend.config import Settings
from portfolio_backend.errors import InvalidCredentials, InvalidToken, RateLimited, Unauthenticated
from portfolio_backend.models import utcnow
from portfolio_backend.repository import store_errors
from portfolio_backend.store import KeyValueStore

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ISSUER = "portfolio-admin"

pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognised hash format.
        return False


def extract_token(authorization: Optional[str], cookie: Optional[str]) -> str:
    """Bearer header wins over the session cookie."""
    if authorization and authorization.startswith("Bearer ") and len(authorization) > 7:
        return authorization[7:].strip()
    return cookie or ""


@dataclass
class IssuedToken:
    token: str
    expires_at: datetime

    def as_dict(self) -> dict:
        return {
            "token": self.token,
            "expires_at": int(self.expires_at.timestamp()),
            "message": "Login successful",
        }


@dataclass
class TokenClaims:
    username: str
    expires_at: datetime

    def as_dict(self) -> dict:
        return {
            "valid": True,
            "username": self.username,
            "expires": int(self.expires_at.timestamp()),
        }


class AuthService:
    def __init__(
        self,
        settings: Settings,
        store: KeyValueStore,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.settings = settings
        self.store = store
        self.clock = clock

    def _attempts(self, client_ip: str) -> int:
        with store_errors("failed to read login attempts"):
            raw = self.store.get(keys.login_attempts(client_ip))
        return int(raw) if raw else 0

    def _record_failure(self, client_ip: str) -> None:
        key = keys.login_attempts(client_ip)
        pipe = self.store.pipeline()
        pipe.incr(key)
        pipe.expire(key, self.settings.login_cooldown)
        with store_errors("failed to record login attempt"):
            pipe.execute()

    def _issue(self, username: str) -> IssuedToken:
        issued_at = self.clock()
        expires_at = issued_at + self.settings.jwt_expiration
        claims = {
            "username": username,
            "sub": username,
            "iss": ISSUER,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(claims, self.settings.jwt_secret, algorithm=ALGORITHM)
        return IssuedToken(token=token, expires_at=expires_at.replace(microsecond=0))

    def login(self, username: str, password: str, client_ip: str) -> IssuedToken:
        if self._attempts(client_ip) >= self.settings.max_login_attempts:
            logger.warning("Login rate limit hit for %s", client_ip)
            raise RateLimited()

        if username != self.settings.admin_username or not verify_password(
            password, self.settings.admin_password_hash
        ):
            self._record_failure(client_ip)
            logger.warning("Failed login for %r from %s", username, client_ip)
            raise InvalidCredentials()

        issued = self._issue(username)
        with store_errors("failed to clear login attempts"):
            self.store.delete(keys.login_attempts(client_ip))
        logger.info("Admin %s logged in from %s", username, client_ip)
        return issued

    def verify(self, token: str) -> TokenClaims:
        if not token:
            raise Unauthenticated()
        try:
            claims = jwt.decode(
                token, self.settings.jwt_secret, algorithms=[ALGORITHM], issuer=ISSUER
            )
        except JWTError as exc:
            raise InvalidToken(details=str(exc)) from exc

        username = claims.get("username")
        exp = claims.get("exp")
        if not username or exp is None:
            raise InvalidToken(details="token is missing required claims")

        with store_errors("failed to check token denylist"):
            revoked = self.store.exists(keys.denylisted_token(token))
        if revoked:
            raise InvalidToken(details="token has been revoked")
        return TokenClaims(
            username=username,
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )

    def logout(self, token: str) -> bool:
        """Deny the token for the rest of its lifetime. Invalid tokens are ignored."""
        try:
            claims = self.verify(token)
        except (Unauthenticated, InvalidToken):
            return False
        remaining: timedelta = claims.expires_at - self.clock()
        seconds = math.ceil(remaining.total_seconds())
        if seconds <= 0:
            return False
        with store_errors("failed to revoke token"):
            self.store.set(keys.denylisted_token(token), "revoked", ttl=seconds)
        logger.info("Revoked token for %s", claims.username)
        return True
