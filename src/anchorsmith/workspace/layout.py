"""Workspace naming and on-disk layout.

Pure helpers for turning a free-text program name into filesystem-safe
names, plus the handful of paths an Anchor workspace is known to use.
"""

from __future__ import annotations

import logging
import re
import threading
import time
import uuid
from pathlib import Path

from anchorsmith.core.errors import FilesystemError

logger = logging.getLogger(__name__)

DEFAULT_SLUG = "anchor_program"

_UNSAFE_RUN = re.compile(r"[^a-z0-9_]+")
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

_last_stamp = 0
_stamp_lock = threading.Lock()


def program_slug(name: str) -> str:
    """Normalise *name* into a crate-style slug.

    >>> program_slug("My Program!!")
    'my_program'
    """
    cleaned = _UNSAFE_RUN.sub("_", name.strip().lower()).strip("_")
    return cleaned or DEFAULT_SLUG


def program_dir_name(name: str) -> str:
    """Kebab-case form of :func:`program_slug`, used for directory names."""
    return program_slug(name).replace("_", "-")


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def _monotonic_millis() -> int:
    """Wall-clock milliseconds, never lower than any value returned before."""
    global _last_stamp  # noqa: PLW0603
    with _stamp_lock:
        _last_stamp = max(_last_stamp, int(time.time() * 1000))
        return _last_stamp


def unique_workspace_name(name: str) -> str:
    """Return ``<dir-name>-<base36 ms>-<8 hex>``.

    The time part never goes backwards within a process, even if the wall
    clock does.  The random part keeps two builds of the same name apart when
    they start within the same millisecond.
    """
    stamp = _base36(_monotonic_millis())
    return f"{program_dir_name(name)}-{stamp}-{uuid.uuid4().hex[:8]}"


def ensure_output_root(path: str | Path) -> Path:
    """Create the output root if needed and return it resolved."""
    root = Path(path).expanduser().resolve()
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(f"Cannot create output root {root}: {exc}", str(root)) from exc
    return root


def crate_name(workspace_name: str) -> str:
    """Cargo turns ``-`` into ``_`` when naming the compiled library."""
    return workspace_name.replace("-", "_")


def program_dir(workspace_dir: Path, workspace_name: str) -> Path:
    return workspace_dir / "programs" / workspace_name


def deploy_dir(workspace_dir: Path) -> Path:
    return workspace_dir / "target" / "deploy"


def artifact_candidates(workspace_dir: Path, workspace_name: str) -> tuple[list[Path], list[Path]]:
    """Possible ``(binary, keypair)`` locations, most likely first."""
    deploy = deploy_dir(workspace_dir)
    stems = [workspace_name]
    if crate_name(workspace_name) != workspace_name:
        stems.append(crate_name(workspace_name))
    return (
        [deploy / f"{stem}.so" for stem in stems],
        [deploy / f"{stem}-keypair.json" for stem in stems],
    )
