"""Credentials — JWT access tokens (PyJWT) and Argon2 password hashing (passlib).

Invariants:
    - Tokens carry sub (user id), role, iat and exp; verify() checks signature and expiry
    - Any decoding failure surfaces as InvalidCredentialsError, never a PyJWT exception
    - Plain passwords never leave this module except as input to hash()/verify()
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from gigboard.core.errors import InvalidCredentialsError


class JwtTokenIssuer:
    """TokenIssuer implementation (HS256 by default)."""

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int = 60):
        self.secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def sign(self, payload: dict) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            **payload,
            "iat": now,
            "exp": now + timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> dict:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise InvalidCredentialsError("Token has expired")
        except jwt.InvalidTokenError:
            raise InvalidCredentialsError()

    def issue_access_token(self, user_id: uuid.UUID, role: str) -> str:
        return self.sign({"sub": str(user_id), "role": role})


class ArgonPasswordHasher:
    """PasswordHasher implementation using passlib's Argon2 scheme."""

    def __init__(self):
        self._context = CryptContext(schemes=["argon2"], deprecated="auto")

    def hash(self, plain: str) -> str:
        return self._context.hash(plain)

    def verify(self, plain: str, hashed: str) -> bool:
        return self._context.verify(plain, hashed)
