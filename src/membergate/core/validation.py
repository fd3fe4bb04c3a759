# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Form schemas for signup/login.

Validation is fail-fast from the caller's point of view: only the first
failing field (in declaration order) is reported back to the form.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Tuple, Type, TypeVar

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

M = TypeVar("M", bound=BaseModel)


def _check_email(value: str) -> str:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValueError("must be a valid email") from exc
    # Keep exactly what was typed; lookups are exact-match.
    return value


class SignupForm(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=50)
    email: str = Field(min_length=1)
    password: str = Field(min_length=6)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _check_email(v)


class LoginForm(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str = Field(min_length=1)
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _check_email(v)


def _first_error_message(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = err.get("loc") or ("value",)
    field = str(loc[0])
    msg = str(err.get("msg") or "is invalid")
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return f'"{field}" {msg[:1].lower()}{msg[1:]}'


def validate(model: Type[M], raw: Mapping[str, Any]) -> Tuple[Optional[M], Optional[str]]:
    """Return ``(value, None)`` on success or ``(None, message)`` on the first failure."""
    try:
        return model.model_validate(dict(raw)), None
    except ValidationError as exc:
        return None, _first_error_message(exc)
