"""JSON state files that survive restarts (run times, chaos fires, milestones)."""

from __future__ import annotations

import copy
import errno
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_READ_ONLY_ERRNOS = {errno.EROFS, errno.EACCES, errno.EPERM}


def load_json(path: str | Path, default: Any) -> Any:
    """Load JSON state from ``path``.

    Returns a copy of ``default`` when the file is missing, unreadable,
    malformed, or holds a different top-level type than ``default``.
    Never raises.
    """
    state_file = Path(path)
    try:
        raw = state_file.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.info("No previous state at %s, starting fresh", state_file)
        return copy.deepcopy(default)
    except OSError as exc:
        logger.warning("Failed to read state file %s: %s", state_file, exc)
        return copy.deepcopy(default)

    try:
        data = json.loads(raw)
    except ValueError as exc:
        logger.warning("Malformed state file %s: %s", state_file, exc)
        return copy.deepcopy(default)

    if default is not None and not isinstance(data, type(default)):
        logger.warning(
            "Unexpected state in %s (got %s, expected %s); ignoring it",
            state_file,
            type(data).__name__,
            type(default).__name__,
        )
        return copy.deepcopy(default)

    logger.debug("Loaded state from %s", state_file)
    return data


def save_json(path: str | Path, value: Any) -> bool:
    """Atomically replace ``path`` with ``value`` serialized as JSON.

    Returns False (after logging) when the write fails; callers carry on
    as if it succeeded.
    """
    state_file = Path(path)
    tmp_name: str | None = None
    try:
        payload = json.dumps(value, indent=2, sort_keys=True)
        state_file.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{state_file.name}.", suffix=".tmp", dir=state_file.parent
        )
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
        os.replace(tmp_name, state_file)
        tmp_name = None
    except (OSError, TypeError, ValueError) as exc:
        logger.error("Failed to save state to %s: %s", state_file, exc)
        if isinstance(exc, OSError) and exc.errno in _READ_ONLY_ERRNOS:
            logger.error(
                "File system is read-only or permission denied for %s; "
                "alerts may repeat after a restart",
                state_file.parent,
            )
        return False
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
    logger.debug("Saved state to %s", state_file)
    return True


def is_writable_dir(path: str | Path) -> bool:
    directory = Path(path)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False
    return os.access(directory, os.W_OK)
