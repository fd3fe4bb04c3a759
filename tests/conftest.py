import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

import copy
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from membergate.auth.passwords import hash_password
from membergate.infra.store import Store


class FakeCursor:
    def __init__(self, docs):
        self._docs = docs

    async def to_list(self, length=None):
        return list(self._docs) if length is None else list(self._docs[:length])


class FakeCollection:
    """In-memory stand-in for the few collection methods the app awaits."""

    def __init__(self, unique=()):
        self.docs = []
        self.unique = tuple(unique)
        self.indexes = []

    @staticmethod
    def _match(doc, query):
        return all(doc.get(k) == v for k, v in (query or {}).items())

    async def find_one(self, query):
        for d in self.docs:
            if self._match(d, query):
                return copy.deepcopy(d)
        return None

    def find(self, query=None):
        return FakeCursor([copy.deepcopy(d) for d in self.docs if self._match(d, query)])

    async def insert_one(self, doc):
        for key in self.unique:
            if any(d.get(key) == doc.get(key) for d in self.docs):
                raise DuplicateKeyError(f"E11000 duplicate key error dup key: {{ {key}: {doc.get(key)!r} }}")
        self.docs.append(copy.deepcopy(doc))

    async def update_one(self, query, update):
        for d in self.docs:
            if self._match(d, query):
                d.update(update.get("$set", {}))
                return

    async def delete_one(self, query):
        for i, d in enumerate(self.docs):
            if self._match(d, query):
                del self.docs[i]
                return

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))


@pytest.fixture()
def store() -> Store:
    return Store(users=FakeCollection(unique=("email",)), sessions=FakeCollection(unique=("_id",)))


@pytest.fixture()
def images_dir(tmp_path: Path) -> Path:
    d = tmp_path / "images"
    d.mkdir()
    for name in ("photo.png", "cat.JPG", "dog.jpeg", "anim.gif", "notes.txt", "shell.sh"):
        (d / name).write_bytes(b"x")
    return d


@pytest.fixture()
def app_module(store, images_dir, monkeypatch):
    monkeypatch.setenv("MONGODB_SESSION_SECRET", "test-secret")
    import membergate.app as app_module

    monkeypatch.setattr(app_module, "IMAGES_DIR", images_dir)
    app_module.app.state.store = store
    yield app_module
    app_module.app.state.store = None


@pytest.fixture()
def client(app_module):
    with TestClient(app_module.app) as c:
        yield c


@pytest.fixture()
def seed_user(store):
    def _seed(name="Alice", email="alice@example.com", password="secret123", user_type="user"):
        store.users.docs.append(
            {"name": name, "email": email, "password": hash_password(password), "user_type": user_type}
        )
        return email

    return _seed


@pytest.fixture()
def login(client):
    def _login(email="alice@example.com", password="secret123"):
        return client.post("/login", data={"email": email, "password": password}, follow_redirects=False)

    return _login
