"""Shared test fixtures and helpers for pdf-embed-images tests."""

from __future__ import annotations

from pathlib import Path

import pymupdf
import pytest


def pdf_bytes(pages: int = 1, width: float = 200, height: float = 100) -> bytes:
    """Build an in-memory PDF with *pages* pages labelled "Page N".

    Args:
        pages: Number of pages to create.
        width: Page width in points.
        height: Page height in points.
    """
    doc = pymupdf.open()
    try:
        for num in range(1, pages + 1):
            page = doc.new_page(width=width, height=height)
            page.insert_text((20, 50), f"Page {num}")
        return doc.tobytes()
    finally:
        doc.close()


@pytest.fixture
def vault_dir(tmp_path: Path) -> Path:
    """Empty vault root directory."""
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def scratch_dir(tmp_path: Path) -> Path:
    """Empty scratch directory for rendered images."""
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def make_pdf():
    """Factory writing a generated PDF to a path (parents created)."""

    def _make(path: Path, pages: int = 1, width: float = 200, height: float = 100) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(pdf_bytes(pages, width, height))
        return path

    return _make
