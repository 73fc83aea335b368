"""Resolution of embed link text to PDF documents in a vault.

The :class:`Vault` protocol is the host-side capability the renderer and
scheduler depend on.  :class:`FileVault` implements it over a plain
directory tree using note-app link semantics (relative links, vault-
absolute links, and bare file-name shorthand).
"""

from __future__ import annotations

import asyncio
import logging
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from pdf_embed_images.errors import ReadError
from pdf_embed_images.reference import PDF_EXT_RE

_log = logging.getLogger("resolver")


@dataclass(frozen=True)
class DocumentHandle:
    """A resolved document inside the vault."""

    path: str
    """Vault-relative POSIX path; the stable identifier used in render keys."""
    file: Path
    """Concrete location the vault reads bytes from."""


@runtime_checkable
class Vault(Protocol):
    """Host capabilities needed to find and read embedded documents."""

    def resolve_link(self, link_text: str, context_path: str) -> DocumentHandle | None:
        """Best file for *link_text* as written inside note *context_path*."""
        ...

    def lookup_path(self, path: str) -> DocumentHandle | None:
        """File at exactly *path* (vault-relative), if any."""
        ...

    async def read_bytes(self, handle: DocumentHandle) -> bytes:
        """Full content of *handle*; raises :class:`ReadError`."""
        ...


def _is_pdf(handle: DocumentHandle | None) -> bool:
    return handle is not None and PDF_EXT_RE.search(handle.path) is not None


def resolve_pdf_document(
    vault: Vault,
    context_path: str,
    link_text: str,
) -> DocumentHandle | None:
    """Map *link_text* to a PDF handle, or ``None`` on a miss.

    Link resolution relative to *context_path* is tried first; a direct
    vault-path lookup is the fallback.  Results that are not PDFs are
    rejected in both cases.
    """
    linked = vault.resolve_link(link_text, context_path)
    if _is_pdf(linked):
        return linked
    direct = vault.lookup_path(link_text)
    if _is_pdf(direct):
        return direct
    _log.debug("No PDF found for link %r (from %s)", link_text, context_path or "/")
    return None


# ---------------------------------------------------------------------------
# Directory-backed vault
# ---------------------------------------------------------------------------


class FileVault:
    """A vault rooted at a directory on the local filesystem.

    Usage::

        vault = FileVault(Path("~/notes").expanduser())
        handle = vault.resolve_link("paper.pdf", "Projects/summary.md")
    """

    def __init__(self, root: Path) -> None:
        self._root = root.resolve()
        self._index: list[str] | None = None

    @property
    def root(self) -> Path:
        return self._root

    # -- Vault protocol -------------------------------------------------------

    def resolve_link(self, link_text: str, context_path: str) -> DocumentHandle | None:
        link = link_text.strip().replace("\\", "/")
        if not link:
            return None

        if link.startswith("/"):
            return self.lookup_path(link.lstrip("/"))

        context_dir = posixpath.dirname(context_path.replace("\\", "/"))

        # Relative to the linking note, then relative to the vault root.
        for candidate in (posixpath.join(context_dir, link), link):
            handle = self.lookup_path(candidate)
            if handle is not None:
                return handle

        return self._find_by_suffix(link, context_dir)

    def lookup_path(self, path: str) -> DocumentHandle | None:
        rel = self._normalize(path)
        if rel is None:
            return None
        file = self._root / rel
        try:
            found = file.is_file()
        except OSError as exc:
            # e.g. ENAMETOOLONG for an over-long link name
            _log.debug("Cannot stat %s: %s", rel, exc)
            return None
        if not found:
            return None
        return DocumentHandle(path=rel, file=file)

    async def read_bytes(self, handle: DocumentHandle) -> bytes:
        try:
            return await asyncio.to_thread(handle.file.read_bytes)
        except OSError as exc:
            raise ReadError(handle.path, f"cannot read file: {exc}") from exc

    # -- Helpers --------------------------------------------------------------

    def _normalize(self, path: str) -> str | None:
        """Return *path* as a clean vault-relative POSIX path.

        ``None`` when the path is empty or escapes the vault root.
        """
        rel = posixpath.normpath(path.replace("\\", "/").lstrip("/"))
        if rel in ("", ".") or rel == ".." or rel.startswith("../"):
            return None
        return rel

    def _files(self) -> list[str]:
        """Vault-relative paths of every file, computed once per vault."""
        if self._index is None:
            self._index = sorted(
                p.relative_to(self._root).as_posix()
                for p in self._root.rglob("*")
                if p.is_file()
            )
        return self._index

    def _find_by_suffix(self, link: str, context_dir: str) -> DocumentHandle | None:
        """Shorthand lookup: best file whose trailing components equal *link*.

        A match inside the linking note's folder wins; otherwise the
        shortest path (then alphabetical order) is chosen.
        """
        parts = [p for p in link.split("/") if p and p != "."]
        if not parts or ".." in parts:
            return None
        n = len(parts)
        matches = [
            rel for rel in self._files()
            if rel.split("/")[-n:] == parts
        ]
        if not matches:
            return None
        local = [rel for rel in matches if posixpath.dirname(rel) == context_dir]
        best = (local or sorted(matches, key=lambda r: (r.count("/"), len(r), r)))[0]
        return DocumentHandle(path=best, file=self._root / best)
