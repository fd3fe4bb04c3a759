# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pymongo.errors import DuplicateKeyError
from starlette.concurrency import run_in_threadpool

from membergate.auth.passwords import hash_password, verify_password
from membergate.auth.session import SessionUser

logger = logging.getLogger(__name__)

USER_TYPES = ("user", "admin")


class EmailAlreadyRegistered(Exception):
    pass


@dataclass(frozen=True)
class UserRecord:
    name: str
    email: str
    user_type: str
    password_hash: str

    def snapshot(self) -> SessionUser:
        return SessionUser(name=self.name, email=self.email, user_type=self.user_type)


def _from_doc(doc: Dict[str, Any]) -> UserRecord:
    return UserRecord(
        name=str(doc.get("name") or ""),
        email=str(doc.get("email") or ""),
        user_type=str(doc.get("user_type") or "user"),
        password_hash=str(doc.get("password") or ""),
    )


async def get_user(users: Any, email: str) -> Optional[UserRecord]:
    if not email:
        return None
    doc = await users.find_one({"email": email})
    return _from_doc(doc) if doc else None


async def create_user(users: Any, *, name: str, email: str, password: str, user_type: str = "user") -> UserRecord:
    """Insert a new user with a hashed password.

    Raises EmailAlreadyRegistered when the email exists, whether caught by
    the lookup or by the store's unique index on a concurrent insert.
    """
    if user_type not in USER_TYPES:
        raise ValueError(f"Unknown user type '{user_type}'")
    if await users.find_one({"email": email}):
        raise EmailAlreadyRegistered(email)

    pw_hash = await run_in_threadpool(hash_password, password)
    doc = {"name": name, "email": email, "password": pw_hash, "user_type": user_type}
    try:
        await users.insert_one(doc)
    except DuplicateKeyError as exc:
        raise EmailAlreadyRegistered(email) from exc
    return _from_doc(doc)


async def authenticate(users: Any, email: str, password: str) -> Optional[UserRecord]:
    u = await get_user(users, email)
    if not u:
        return None
    if not await run_in_threadpool(verify_password, u.password_hash, password):
        return None
    return u


async def list_users(users: Any) -> List[UserRecord]:
    docs = await users.find({}).to_list(length=None)
    return [_from_doc(d) for d in docs]


async def set_user_type(users: Any, email: str, user_type: str) -> None:
    # No guard against demoting yourself or the last admin.
    if user_type not in USER_TYPES:
        raise ValueError(f"Unknown user type '{user_type}'")
    await users.update_one({"email": email}, {"$set": {"user_type": user_type}})
    logger.info("Set user_type=%s for %s", user_type, email)
