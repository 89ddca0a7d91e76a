"""Boundary Protocols — contracts between the core and its external collaborators.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by infrastructure/ via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, fakes in tests need no inheritance
"""

from dataclasses import dataclass
from typing import Any, Protocol


class CacheStore(Protocol):
    """Key/value store with per-key TTL. No pattern or tag deletion exists.

    Implementations treat backend failures as misses: get() returns None,
    set()/delete() log and return, delete_many() returns the keys it could not
    delete, incr() returns None.
    """
    async def get(self, key: str) -> Any | None: ...
    async def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...
    async def delete(self, key: str) -> None: ...
    async def delete_many(self, keys: list[str]) -> list[str]: ...
    async def incr(self, key: str, ttl_seconds: int) -> int | None: ...
    async def ttl(self, key: str) -> int | None: ...


@dataclass(frozen=True)
class MailMessage:
    to: str
    subject: str
    text: str
    html: str | None = None


class Mailer(Protocol):
    """Outbound mail. Returns provider delivery info."""
    async def send(self, message: MailMessage) -> dict: ...


class TokenIssuer(Protocol):
    def sign(self, payload: dict) -> str: ...
    def verify(self, token: str) -> dict: ...


class PasswordHasher(Protocol):
    def hash(self, plain: str) -> str: ...
    def verify(self, plain: str, hashed: str) -> bool: ...
