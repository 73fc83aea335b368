"""Single-file export pipeline.

Brackets one run for an HTML file: create a scratch directory, parse the
HTML, replace embedded PDF pages with images, write the flattened HTML,
and remove the scratch directory again, whatever happened in between.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path

from bs4 import BeautifulSoup

from pdf_embed_images.embeds import replace_pdf_embeds_with_images
from pdf_embed_images.models import EmbedReport, RenderOptions
from pdf_embed_images.resolver import Vault
from pdf_embed_images.scratch import create_scratch_root, remove_all

_log = logging.getLogger("pipeline")

OUTPUT_SUFFIX = ".flat.html"
"""Suffix replacing the input's extension in the default output name."""

_HTML_PARSER = "html.parser"


def resolve_output(input_path: Path, output_dir: Path | None) -> Path:
    """Resolve the output file path for a given HTML input.

    Default: ``<stem>.flat.html`` next to the input.
    With *output_dir*: the same name inside that directory.
    """
    base = output_dir if output_dir else input_path.parent
    return base / f"{input_path.stem}{OUTPUT_SUFFIX}"


def default_context_path(input_path: Path, vault_root: Path) -> str:
    """Vault path used to resolve relative links found in *input_path*.

    The input's vault-relative path when it lives inside the vault,
    otherwise just its file name (links then resolve from the vault root).
    """
    resolved = input_path.resolve()
    try:
        return resolved.relative_to(vault_root.resolve()).as_posix()
    except ValueError:
        return input_path.name


@dataclass
class ExportResult:
    """Result of exporting one HTML file."""

    input_path: Path
    output_path: Path
    report: EmbedReport
    elapsed_seconds: float


async def export_html(
    input_path: Path,
    output_path: Path,
    *,
    vault: Vault,
    context_path: str,
    options: RenderOptions | None = None,
) -> ExportResult:
    """Flatten the PDF embeds of *input_path* into *output_path*."""
    start = time.monotonic()
    html = input_path.read_text(encoding="utf-8")
    soup = BeautifulSoup(html, _HTML_PARSER)

    scratch_dir = await create_scratch_root()
    try:
        report = await replace_pdf_embeds_with_images(
            soup, context_path,
            vault=vault,
            scratch_dir=scratch_dir,
            options=options,
        )
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(str(soup), encoding="utf-8")
    finally:
        await remove_all([scratch_dir])

    elapsed = time.monotonic() - start
    _log.info("  Wrote %s (%.1fs)", output_path, elapsed)
    return ExportResult(
        input_path=input_path,
        output_path=output_path,
        report=report,
        elapsed_seconds=elapsed,
    )


def run_export(
    input_path: Path,
    output_path: Path,
    *,
    vault: Vault,
    context_path: str,
    options: RenderOptions | None = None,
) -> ExportResult:
    """Synchronous wrapper around :func:`export_html`."""
    return asyncio.run(export_html(
        input_path, output_path,
        vault=vault, context_path=context_path, options=options,
    ))
