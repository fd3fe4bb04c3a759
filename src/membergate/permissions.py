# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request

from membergate.auth.session import COOKIE_NAME, SESSION_TTL_SECONDS, SessionManager, SessionUser, unsign_token


class AuthState(enum.Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    ADMIN = "admin"


@dataclass(frozen=True)
class SessionContext:
    state: AuthState
    user: Optional[SessionUser] = None
    token: Optional[str] = None

    @classmethod
    def anonymous(cls) -> "SessionContext":
        return cls(state=AuthState.ANONYMOUS)

    @classmethod
    def for_user(cls, user: SessionUser, token: str) -> "SessionContext":
        state = AuthState.ADMIN if user.is_admin else AuthState.AUTHENTICATED
        return cls(state=state, user=user, token=token)

    @property
    def logged_in(self) -> bool:
        return self.state is not AuthState.ANONYMOUS


def session_manager(request: Request) -> SessionManager:
    return SessionManager(request.app.state.store.sessions)


async def load_context_from_request(request: Request) -> SessionContext:
    token = unsign_token(request.cookies.get(COOKIE_NAME, ""))
    if not token:
        return SessionContext.anonymous()
    user = await session_manager(request).load(token)
    if not user:
        return SessionContext.anonymous()
    return SessionContext.for_user(user, token)


def current_session(request: Request) -> SessionContext:
    ctx = getattr(request.state, "session", None)
    return ctx if ctx is not None else SessionContext.anonymous()


def require_user(ctx: SessionContext = Depends(current_session)) -> SessionContext:
    if ctx.logged_in:
        return ctx
    raise HTTPException(status_code=303, headers={"Location": "/login"})


def require_admin(ctx: SessionContext = Depends(require_user)) -> SessionContext:
    if ctx.state is AuthState.ADMIN:
        return ctx
    raise HTTPException(status_code=403, detail="Forbidden")


def cookie_settings() -> dict:
    secure = os.getenv("MEMBERGATE_COOKIE_SECURE", "false").lower() in {"1", "true", "yes", "y"}
    return {"httponly": True, "samesite": "lax", "secure": secure, "max_age": SESSION_TTL_SECONDS}
