"""
Cache file persistence — atomic JSON read/write with mtime staleness.

Every nixup cache (index, installed list, update report, status) is a
JSON file in the cache directory. Independent invocations read and
write them concurrently, so writes are atomic (write to temp file,
then rename) and reads treat malformed content as a cache miss.
"""

from __future__ import annotations

import json
import logging
import tempfile
import time
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def write_json(path: Path, data: Any) -> None:
    """Write JSON to ``path`` atomically.

    Uses write-to-temp-then-rename so readers never observe a
    partially written file.

    Args:
        data: Any JSON-serializable value.
        path: Target path for the cache file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    try:
        fd, tmp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.stem}_",
            suffix=".tmp",
        )
        tmp = Path(tmp_path)
        try:
            with open(fd, "w", encoding="utf-8") as f:
                f.write(content)
            tmp.replace(path)
            logger.debug("Wrote %s", path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
    except Exception as e:
        logger.error("Failed to write %s: %s", path, e)
        raise


def read_json(path: Path) -> Any | None:
    """Read a JSON cache file.

    Returns:
        The decoded value, or None if the file is missing, unreadable
        or not valid JSON.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning("Cannot read %s: %s — treating as cache miss", path, e)
        return None

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Corrupt cache file %s: %s — treating as cache miss", path, e)
        return None


def cache_age(path: Path, now: float | None = None) -> float | None:
    """Seconds since ``path`` was last modified, or None if it doesn't exist."""
    try:
        mtime = path.stat().st_mtime
    except FileNotFoundError:
        return None
    return (time.time() if now is None else now) - mtime


def is_fresh(path: Path, max_age: int, now: float | None = None) -> bool:
    """Whether ``path`` exists and is younger than ``max_age`` seconds."""
    age = cache_age(path, now=now)
    return age is not None and age < max_age


def remove(path: Path) -> None:
    """Delete a cache file if present."""
    path.unlink(missing_ok=True)
