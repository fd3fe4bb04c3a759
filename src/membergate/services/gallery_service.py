# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import mimetypes
import os
import re
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

IMAGE_NAME_RE = re.compile(r"\.(jpe?g|png|gif)$", re.IGNORECASE)
ALLOWED_TYPES = ("image/jpeg", "image/png", "image/gif")


class UnsupportedImageType(ValueError):
    pass


def list_images(images_dir: Path) -> List[str]:
    """Scan the directory; the listing itself is the catalog."""
    if not images_dir.is_dir():
        return []
    return sorted(
        p.name for p in images_dir.iterdir() if p.is_file() and IMAGE_NAME_RE.search(p.name)
    )


def resolve_image(images_dir: Path, filename: str) -> Path:
    """Resolve ``filename`` inside ``images_dir`` or raise UnsupportedImageType.

    The type check is by extension only; the resolved path must also stay
    inside the directory.
    """
    mime, _ = mimetypes.guess_type(filename or "")
    if mime not in ALLOWED_TYPES:
        raise UnsupportedImageType(filename)

    base = images_dir.resolve()
    target = (base / filename).resolve()
    if target.parent != base:
        raise UnsupportedImageType(filename)
    return target


def delete_image(images_dir: Path, filename: str) -> bool:
    """Delete an allow-listed image. Returns False if the delete itself failed."""
    target = resolve_image(images_dir, filename)
    try:
        os.remove(target)
    except OSError:
        logger.exception("Delete failed: %s", target)
        return False
    logger.info("Deleted image %s", target.name)
    return True
