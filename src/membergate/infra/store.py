# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""MongoDB access: the ``users`` and ``sessions`` collections.

Handlers never talk to the client directly; they receive a :class:`Store`
attached to ``app.state`` at startup.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

from pymongo import ASCENDING, AsyncMongoClient

logger = logging.getLogger(__name__)

MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017/membergate")
DEFAULT_DB_NAME = "membergate"

USERS_COLLECTION = "users"
SESSIONS_COLLECTION = "sessions"


@dataclass
class Store:
    users: Any
    sessions: Any
    client: Optional[AsyncMongoClient] = None

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()


def connect(uri: str = MONGODB_URI) -> Store:
    client: AsyncMongoClient = AsyncMongoClient(uri, tz_aware=True)
    db = client.get_default_database(default=DEFAULT_DB_NAME)
    return Store(
        users=db[USERS_COLLECTION],
        sessions=db[SESSIONS_COLLECTION],
        client=client,
    )


async def ensure_indexes(store: Store) -> None:
    """Create the unique email index and the session TTL index.

    The unique index is what keeps two concurrent signups for the same
    email from both succeeding.
    """
    await store.users.create_index([("email", ASCENDING)], unique=True)
    # expireAfterSeconds=0: each document expires at its own `expires` value
    await store.sessions.create_index([("expires", ASCENDING)], expireAfterSeconds=0)
    logger.info("Store indexes ensured")
