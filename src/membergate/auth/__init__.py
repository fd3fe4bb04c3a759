# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication helpers.

This package provides:
- Password hashing/verification (argon2)
- User records in the ``users`` collection
- Store-backed sessions behind a signed cookie (itsdangerous)
"""
