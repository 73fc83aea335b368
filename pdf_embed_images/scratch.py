"""Per-run scratch directories for rendered page images.

Each export run gets its own directory under a shared root in the system
temp folder, so concurrent runs never see each other's files.  Removal is
best-effort: failures are logged and reported, never raised (only
interrupts and cancellation propagate).
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from collections.abc import Iterable
from pathlib import Path

_log = logging.getLogger("scratch")

SCRATCH_ROOT_NAME = "pdf-embed-images"
"""Name of the shared directory under the system temp folder."""

_RUN_PREFIX = "export-"


def scratch_base() -> Path:
    """Shared parent of all run directories."""
    return Path(tempfile.gettempdir()) / SCRATCH_ROOT_NAME


def _create_scratch_root() -> Path:
    base = scratch_base()
    base.mkdir(parents=True, exist_ok=True)
    return Path(tempfile.mkdtemp(prefix=_RUN_PREFIX, dir=base))


async def create_scratch_root() -> Path:
    """Create and return a fresh, uniquely named run directory."""
    path = await asyncio.to_thread(_create_scratch_root)
    _log.debug("Scratch directory: %s", path)
    return path


def _remove_path(path: Path) -> None:
    """Remove *path* recursively; a missing path is not an error."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)


async def remove_all(paths: Iterable[Path | str]) -> list[tuple[Path, Exception]]:
    """Remove every path independently, collecting failures.

    Returns:
        ``(path, error)`` for each path that could not be removed.  Empty
        when everything was removed (or was already gone).
    """
    targets = [Path(p) for p in paths]
    outcomes = await asyncio.gather(
        *(asyncio.to_thread(_remove_path, p) for p in targets),
        return_exceptions=True,
    )

    failures: list[tuple[Path, Exception]] = []
    for path, outcome in zip(targets, outcomes):
        if outcome is None or isinstance(outcome, FileNotFoundError):
            continue
        if isinstance(outcome, Exception):
            _log.warning("Could not remove %s: %s", path, outcome)
            failures.append((path, outcome))
        else:
            raise outcome
    return failures
