# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from membergate.auth.session import COOKIE_NAME, SessionUser, sign_token
from membergate.auth.users import (
    EmailAlreadyRegistered,
    authenticate,
    create_user,
    list_users,
    set_user_type,
)
from membergate.core.validation import LoginForm, SignupForm, validate
from membergate.infra.store import connect, ensure_indexes
from membergate.permissions import (
    SessionContext,
    cookie_settings,
    current_session,
    load_context_from_request,
    require_admin,
    require_user,
    session_manager,
)
from membergate.services.gallery_service import UnsupportedImageType, delete_image, list_images

load_dotenv()

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent

IMAGES_DIR = Path(os.getenv("MEMBERGATE_IMAGES_DIR", str(BASE_DIR / "static" / "images"))).resolve()
IMAGES_DIR.mkdir(parents=True, exist_ok=True)

INVALID_LOGIN = "Invalid email or password"
EMAIL_TAKEN = "Email already registered"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # A store attached beforehand (tests, scripts) is left alone.
    owned = None
    if getattr(app.state, "store", None) is None:
        owned = connect()
        await ensure_indexes(owned)
        app.state.store = owned
    try:
        yield
    finally:
        if owned is not None:
            await owned.close()
            app.state.store = None


app = FastAPI(lifespan=lifespan)


@app.middleware("http")
async def _session_middleware(request: Request, call_next):
    request.state.session = await load_context_from_request(request)
    return await call_next(request)


app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")
app.mount("/images", StaticFiles(directory=str(IMAGES_DIR), check_dir=False), name="images")
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


def _render(request: Request, template_name: str, ctx: SessionContext, extra: Optional[dict] = None, *, status_code: int = 200):
    """TemplateResponse wrapper injecting the session user."""
    base_ctx = {"user": ctx.user, "auth_state": ctx.state.value}
    merged = {**base_ctx, **(extra or {})}
    return templates.TemplateResponse(request, template_name, merged, status_code=status_code)


async def _start_session(request: Request, ctx: SessionContext, user: SessionUser) -> RedirectResponse:
    sessions = session_manager(request)
    await sessions.destroy(ctx.token)
    token = await sessions.create(user)
    resp = RedirectResponse(url="/members", status_code=303)
    resp.set_cookie(COOKIE_NAME, sign_token(token), **cookie_settings())
    return resp


@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException):
    ctx = current_session(request)
    if exc.status_code == 403:
        return _render(request, "403.html", ctx, {"title": "403 Forbidden"}, status_code=403)
    if exc.status_code in (404, 405):
        return _render(request, "404.html", ctx, {"title": "Page Not Found"}, status_code=404)
    return await http_exception_handler(request, exc)


# ------------------ Routes ------------------


@app.get("/", response_class=HTMLResponse)
async def home(request: Request, ctx: SessionContext = Depends(current_session)):
    return _render(request, "home.html", ctx, {"title": "Home"})


@app.get("/signup", response_class=HTMLResponse)
async def signup_get(request: Request, ctx: SessionContext = Depends(current_session)):
    return _render(request, "signup.html", ctx, {"title": "Sign Up", "error": None, "form": {}})


@app.post("/signup")
async def signup_post(request: Request, ctx: SessionContext = Depends(current_session)):
    form = await request.form()
    echo = {"name": form.get("name", ""), "email": form.get("email", "")}
    value, error = validate(SignupForm, form)
    if error:
        return _render(request, "signup.html", ctx, {"title": "Sign Up", "error": error, "form": echo})

    try:
        user = await create_user(
            request.app.state.store.users,
            name=value.name,
            email=value.email,
            password=value.password,
        )
    except EmailAlreadyRegistered:
        return _render(request, "signup.html", ctx, {"title": "Sign Up", "error": EMAIL_TAKEN, "form": echo})

    logger.info("New user signed up: %s", user.email)
    return await _start_session(request, ctx, user.snapshot())


@app.get("/login", response_class=HTMLResponse)
async def login_get(request: Request, ctx: SessionContext = Depends(current_session)):
    return _render(request, "login.html", ctx, {"title": "Log In", "error": None, "form": {}})


@app.post("/login")
async def login_post(request: Request, ctx: SessionContext = Depends(current_session)):
    form = await request.form()
    echo = {"email": form.get("email", "")}
    value, error = validate(LoginForm, form)
    if error:
        return _render(request, "login.html", ctx, {"title": "Log In", "error": error, "form": echo})

    user = await authenticate(request.app.state.store.users, value.email, value.password)
    if not user:
        logger.warning("Failed login for %s", value.email)
        return _render(request, "login.html", ctx, {"title": "Log In", "error": INVALID_LOGIN, "form": echo})

    logger.info("User logged in: %s", user.email)
    return await _start_session(request, ctx, user.snapshot())


@app.get("/members", response_class=HTMLResponse)
async def members(request: Request, ctx: SessionContext = Depends(require_user)):
    images = list_images(IMAGES_DIR)
    return _render(request, "members.html", ctx, {"title": "Members", "images": images})


@app.get("/admin", response_class=HTMLResponse)
async def admin_dashboard(request: Request, ctx: SessionContext = Depends(require_admin)):
    users = await list_users(request.app.state.store.users)
    return _render(request, "admin.html", ctx, {"title": "Admin", "users": users})


@app.get("/admin/promote/{email}")
async def admin_promote(request: Request, email: str, ctx: SessionContext = Depends(require_admin)):
    await set_user_type(request.app.state.store.users, email, "admin")
    return RedirectResponse(url="/admin", status_code=303)


@app.get("/admin/demote/{email}")
async def admin_demote(request: Request, email: str, ctx: SessionContext = Depends(require_admin)):
    await set_user_type(request.app.state.store.users, email, "user")
    return RedirectResponse(url="/admin", status_code=303)


@app.get("/admin/delete-image/{filename}")
async def admin_delete_image(filename: str, ctx: SessionContext = Depends(require_admin)):
    try:
        # A failed unlink is logged inside delete_image; the admin is redirected either way.
        await run_in_threadpool(delete_image, IMAGES_DIR, filename)
    except UnsupportedImageType:
        return PlainTextResponse("Not a supported image type.", status_code=400)
    return RedirectResponse(url="/members", status_code=303)


@app.get("/logout")
async def logout(request: Request, ctx: SessionContext = Depends(require_user)):
    await session_manager(request).destroy(ctx.token)
    resp = RedirectResponse(url="/", status_code=303)
    resp.delete_cookie(COOKIE_NAME)
    return resp
