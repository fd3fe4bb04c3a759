# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Store-backed sessions.

The cookie carries a signed opaque token; the session record itself
(a snapshot of the user's name, email and type) lives in the ``sessions``
collection and expires one hour after it was issued.
"""

from __future__ import annotations

import os
import secrets
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer

COOKIE_NAME = os.getenv("MEMBERGATE_COOKIE_NAME", "membergate_session")
SESSION_TTL_SECONDS = 3600


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _serializer() -> URLSafeTimedSerializer:
    secret = os.getenv("MONGODB_SESSION_SECRET")
    if not secret:
        raise RuntimeError("MONGODB_SESSION_SECRET is not set")
    return URLSafeTimedSerializer(secret_key=secret, salt="membergate.session.v1")


@dataclass(frozen=True)
class SessionUser:
    name: str
    email: str
    user_type: str

    @property
    def is_admin(self) -> bool:
        return self.user_type == "admin"


def sign_token(token: str) -> str:
    return _serializer().dumps(token)


def unsign_token(cookie_value: str) -> Optional[str]:
    if not cookie_value:
        return None
    try:
        token = _serializer().loads(cookie_value, max_age=SESSION_TTL_SECONDS)
    except BadSignature:
        return None
    return token if isinstance(token, str) and token else None


class SessionManager:
    """Create, load and destroy session records in the store."""

    def __init__(self, collection: Any, *, ttl_seconds: int = SESSION_TTL_SECONDS):
        self.collection = collection
        self.ttl = timedelta(seconds=ttl_seconds)

    async def create(self, user: SessionUser) -> str:
        token = secrets.token_urlsafe(32)
        await self.collection.insert_one(
            {
                "_id": token,
                "user": asdict(user),
                "expires": _now() + self.ttl,
            }
        )
        return token

    async def load(self, token: Optional[str]) -> Optional[SessionUser]:
        if not token:
            return None
        doc = await self.collection.find_one({"_id": token})
        if not doc:
            return None
        # The TTL monitor purges lazily; expiry is checked here as well.
        if doc.get("expires") is None or doc["expires"] <= _now():
            return None
        u = doc.get("user") or {}
        return SessionUser(
            name=str(u.get("name") or ""),
            email=str(u.get("email") or ""),
            user_type=str(u.get("user_type") or "user"),
        )

    async def destroy(self, token: Optional[str]) -> None:
        if not token:
            return
        await self.collection.delete_one({"_id": token})
