#!/usr/bin/env python3
"""Create a user directly in the store (the only way to get a first admin)."""
from __future__ import annotations

import asyncio
from getpass import getpass

from dotenv import load_dotenv

from membergate.auth.users import EmailAlreadyRegistered, create_user
from membergate.core.validation import SignupForm, validate
from membergate.infra.store import connect, ensure_indexes


async def _create(name: str, email: str, password: str, user_type: str) -> None:
    store = connect()
    try:
        await ensure_indexes(store)
        await create_user(store.users, name=name, email=email, password=password, user_type=user_type)
    finally:
        await store.close()


def main() -> None:
    load_dotenv()
    name = input("Name: ").strip()
    email = input("Email: ").strip()
    user_type = (input("Type [user/admin]: ").strip().lower() or "user")
    if user_type not in ("user", "admin"):
        raise SystemExit(f"Unknown type: {user_type}")

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    _, error = validate(SignupForm, {"name": name, "email": email, "password": pw1})
    if error:
        raise SystemExit(error)

    try:
        asyncio.run(_create(name, email, pw1, user_type))
    except EmailAlreadyRegistered:
        raise SystemExit("Email already registered")
    print(f"OK -> {email} ({user_type})")


if __name__ == "__main__":
    main()
