import asyncio

import pytest

from membergate.auth.passwords import hash_password, verify_password
from membergate.auth.users import (
    EmailAlreadyRegistered,
    authenticate,
    create_user,
    get_user,
    list_users,
    set_user_type,
)
from membergate.infra.store import ensure_indexes


def test_hash_and_verify():
    h = hash_password("hunter22")
    assert h != "hunter22"
    assert verify_password(h, "hunter22")
    assert not verify_password(h, "hunter23")
    assert not verify_password("not-a-hash", "hunter22")
    assert not verify_password("", "hunter22")


def test_hash_rejects_empty():
    with pytest.raises(ValueError):
        hash_password("")


def test_create_and_authenticate(store):
    u = asyncio.run(create_user(store.users, name="Bob", email="bob@example.com", password="hunter22"))
    assert u.user_type == "user"
    assert asyncio.run(authenticate(store.users, "bob@example.com", "hunter22")) == u
    assert asyncio.run(authenticate(store.users, "bob@example.com", "nope")) is None
    assert asyncio.run(authenticate(store.users, "ghost@example.com", "hunter22")) is None


def test_create_duplicate_email(store):
    asyncio.run(create_user(store.users, name="Bob", email="bob@example.com", password="hunter22"))
    with pytest.raises(EmailAlreadyRegistered):
        asyncio.run(create_user(store.users, name="Bob2", email="bob@example.com", password="hunter22"))
    assert len(store.users.docs) == 1


def test_unique_index_closes_check_then_insert_race(store, monkeypatch):
    asyncio.run(create_user(store.users, name="Bob", email="bob@example.com", password="hunter22"))

    # simulate a concurrent signup that passed the lookup before the first insert landed
    async def miss(query):
        return None

    monkeypatch.setattr(store.users, "find_one", miss)
    with pytest.raises(EmailAlreadyRegistered):
        asyncio.run(create_user(store.users, name="Bob2", email="bob@example.com", password="hunter22"))
    assert len(store.users.docs) == 1


def test_set_user_type_and_list(store):
    asyncio.run(create_user(store.users, name="Bob", email="bob@example.com", password="hunter22"))
    asyncio.run(set_user_type(store.users, "bob@example.com", "admin"))
    assert asyncio.run(get_user(store.users, "bob@example.com")).user_type == "admin"
    asyncio.run(set_user_type(store.users, "bob@example.com", "admin"))
    assert [u.user_type for u in asyncio.run(list_users(store.users))] == ["admin"]

    with pytest.raises(ValueError):
        asyncio.run(set_user_type(store.users, "bob@example.com", "root"))


def test_ensure_indexes(store):
    asyncio.run(ensure_indexes(store))
    assert store.users.indexes == [([("email", 1)], {"unique": True})]
    assert store.sessions.indexes == [([("expires", 1)], {"expireAfterSeconds": 0})]
