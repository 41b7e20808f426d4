"""
Session identity resolution.

Every visitor that can like a post has an identity: the signed-in user's id,
or an anonymous token kept in a client-side store (the anonymous session
cookie). The token only has to be unique enough to dedupe likes; it is not a
credential.
"""
import logging
import random
import re
import string
import time
from typing import Optional, Union

from fastapi import Request, Response

from community.core.config import settings

logger = logging.getLogger("app")

_BASE36 = string.digits + string.ascii_lowercase
_TOKEN_PATTERN = re.compile(r"^anon_\d{1,16}_[0-9a-z]{1,16}$")


class UserIdentity:
    kind = "user"

    def __init__(self, id: str):
        self.id = id

    def to_dict(self) -> dict:
        return {"kind": self.kind, "id": self.id}

    def __eq__(self, other):
        return isinstance(other, UserIdentity) and other.id == self.id

    def __repr__(self):
        return f"UserIdentity({self.id!r})"


class AnonymousIdentity:
    kind = "anonymous"

    def __init__(self, token: str):
        self.token = token

    def to_dict(self) -> dict:
        return {"kind": self.kind, "token": self.token}

    def __eq__(self, other):
        return isinstance(other, AnonymousIdentity) and other.token == self.token

    def __repr__(self):
        return f"AnonymousIdentity({self.token!r})"


Identity = Union[UserIdentity, AnonymousIdentity]


class TokenStoreError(Exception):
    """The client-side token store could not be read or written."""


class CookieTokenStore:
    """Anonymous token store backed by the request/response cookie pair."""

    def __init__(self, request: Request, response: Optional[Response]):
        self.request = request
        self.response = response
        self.key = settings.ANONYMOUS_SESSION_COOKIE

    def get(self) -> Optional[str]:
        return self.request.cookies.get(self.key)

    def set(self, token: str) -> None:
        if self.response is None:
            raise TokenStoreError("No response to carry the anonymous session cookie")
        self.response.set_cookie(
            key=self.key,
            value=token,
            max_age=settings.ANONYMOUS_SESSION_MAX_AGE,
            httponly=True,
            samesite="lax",
            secure=settings.ENVIRONMENT == "production",
        )


class MemoryTokenStore:
    """Dict-backed store, used for non-HTTP callers such as scripts."""

    def __init__(self, initial: Optional[str] = None):
        self.value = initial

    def get(self) -> Optional[str]:
        return self.value

    def set(self, token: str) -> None:
        self.value = token


def generate_anonymous_token() -> str:
    """``anon_<epoch millis>_<9 base-36 chars>``; not cryptographically strong"""
    suffix = "".join(random.choice(_BASE36) for _ in range(9))
    return f"anon_{int(time.time() * 1000)}_{suffix}"


def resolve_identity(user, store) -> Identity:
    """
    Return the identity that scopes this visitor's likes.

    A signed-in user always wins. Otherwise the anonymous token is read from
    ``store`` and, on first use, generated and written back. When the store
    is unusable a fresh token is returned on every call instead of failing.
    """
    if user is not None:
        return UserIdentity(user.id)

    try:
        token = store.get()
        if token and _TOKEN_PATTERN.match(token):
            return AnonymousIdentity(token)

        token = generate_anonymous_token()
        store.set(token)
        return AnonymousIdentity(token)
    except TokenStoreError as e:
        logger.warning(f"Anonymous token store unavailable, using a one-off token: {e}")
        return AnonymousIdentity(generate_anonymous_token())
