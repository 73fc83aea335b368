"""Rasterization of a single PDF page to an embeddable image.

Pipeline per call of :meth:`PageRenderer.render`:

1. **Read** the document bytes through the vault.
2. **Decode, rasterize and encode** with pymupdf on the renderer's worker
   thread: clamp the page into range, render it at ``scale`` and encode the
   pixmap as PNG (pymupdf) or WebP/JPEG (Pillow via ``pil_tobytes``).
3. **Persist** the bytes to the run's scratch directory under a stable,
   sanitized name and return them as a ``data:`` URL.

pymupdf objects are confined to one worker thread: the library is not
thread-safe, and every call of one renderer therefore runs serially on the
same thread while the event loop keeps scheduling other work.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from urllib.parse import quote

import pymupdf

from pdf_embed_images.errors import DecodeError, EncodeError, RasterError, WriteError
from pdf_embed_images.models import ImageType, RenderResult, format_scale
from pdf_embed_images.resolver import DocumentHandle, Vault

_log = logging.getLogger("renderer")

_FILENAME_SAFE = "!~*'()"
"""Characters kept verbatim in scratch file names, on top of
``quote``'s always-safe set (letters, digits, ``_.-~``)."""

_RGB_CHANNELS = 3
"""Number of colour channels in an sRGB pixmap (excluding alpha)."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def sanitize_for_filename(text: str) -> str:
    """Percent-encode *text* like ``encodeURIComponent``, then ``%`` -> ``_``.

    Deterministic, so the same document/page/scale always yields the same
    name across runs.
    """
    return quote(text, safe=_FILENAME_SAFE).replace("%", "_")


def scratch_file_name(doc_path: str, page: int, scale: float, image_type: ImageType) -> str:
    """File name of the scratch copy for a rendered page."""
    base = sanitize_for_filename(f"{doc_path}|page:{page}|scale:{format_scale(scale)}")
    return f"{base}.{image_type.extension}"


def clamp_page(page: int, page_count: int) -> int:
    """Clamp a 1-indexed *page* into ``[1, page_count]``."""
    return max(1, min(page, page_count))


def to_data_url(image_bytes: bytes, image_type: ImageType) -> str:
    """Wrap encoded image bytes in a self-contained ``data:`` URL."""
    payload = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{image_type.mime};base64,{payload}"


def _pixmap_to_png(pix: pymupdf.Pixmap) -> bytes:
    """Convert a pymupdf Pixmap to PNG bytes, handling CMYK->RGB."""
    if pix.n - pix.alpha > _RGB_CHANNELS:
        pix = pymupdf.Pixmap(pymupdf.csRGB, pix)
    return pix.tobytes("png")


def _encode_pixmap(doc_path: str, pix: pymupdf.Pixmap, image_type: ImageType) -> bytes:
    """Serialize *pix* as *image_type*; lossy formats go through Pillow."""
    try:
        if image_type is ImageType.PNG:
            data = _pixmap_to_png(pix)
        else:
            data = pix.pil_tobytes(
                format=image_type.value.upper(),
                quality=image_type.quality,
            )
    except Exception as exc:
        raise EncodeError(doc_path, f"cannot encode {image_type.value}: {exc}") from exc
    if not data:
        raise EncodeError(doc_path, f"encoder produced no {image_type.value} bytes")
    return data


def _render_page_bytes(
    doc_path: str,
    data: bytes,
    page: int,
    scale: float,
    image_type: ImageType,
) -> tuple[bytes, int]:
    """Decode *data*, render the clamped page and encode it.

    Runs on the renderer's worker thread.  The pixmap, page and document
    are released before returning, on success and on every error.

    Returns:
        ``(image_bytes, clamped_page)``.
    """
    try:
        doc = pymupdf.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise DecodeError(doc_path, f"not a readable PDF: {exc}") from exc

    pdf_page = None
    pix = None
    try:
        if doc.page_count < 1:
            raise DecodeError(doc_path, "document has no pages")
        safe_page = clamp_page(page, doc.page_count)
        if safe_page != page:
            _log.debug(
                "%s: page %d out of range (1-%d), using page %d",
                doc_path, page, doc.page_count, safe_page,
            )

        try:
            pdf_page = doc.load_page(safe_page - 1)
            # The pixmap covers the viewport rounded outward to whole pixels.
            pix = pdf_page.get_pixmap(matrix=pymupdf.Matrix(scale, scale), alpha=False)
        except Exception as exc:
            raise RasterError(doc_path, f"cannot render page {safe_page}: {exc}") from exc

        image_bytes = _encode_pixmap(doc_path, pix, image_type)
        _log.debug(
            "%s: page %d @ %sx -> %dx%d %s (%d bytes)",
            doc_path, safe_page, format_scale(scale),
            pix.width, pix.height, image_type.value, len(image_bytes),
        )
        return image_bytes, safe_page
    finally:
        pix = None
        pdf_page = None
        doc.close()


# ---------------------------------------------------------------------------
# PageRenderer
# ---------------------------------------------------------------------------


class PageRenderer:
    """Render PDF pages from a vault into a scratch directory.

    Usage::

        with PageRenderer(vault) as renderer:
            result = await renderer.render(handle, 2, scratch_dir, 1.5, ImageType.WEBP)
    """

    def __init__(self, vault: Vault) -> None:
        self._vault = vault
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pymupdf")

    def __enter__(self) -> PageRenderer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Stop the pymupdf worker thread (waits for a running render)."""
        self._executor.shutdown(wait=True)

    async def render(
        self,
        handle: DocumentHandle,
        page: int,
        scratch_dir: Path,
        scale: float,
        image_type: ImageType,
    ) -> RenderResult:
        """Render *page* of *handle* and save a copy under *scratch_dir*.

        Out-of-range pages are clamped to the nearest valid page.

        Raises:
            ReadError, DecodeError, RasterError, EncodeError, WriteError:
                Subclasses of :class:`~pdf_embed_images.errors.RenderError`
                naming the step that failed.
        """
        data = await self._vault.read_bytes(handle)

        loop = asyncio.get_running_loop()
        image_bytes, safe_page = await loop.run_in_executor(
            self._executor,
            _render_page_bytes,
            handle.path, data, page, scale, image_type,
        )

        image_path = Path(scratch_dir) / scratch_file_name(
            handle.path, safe_page, scale, image_type,
        )
        try:
            await asyncio.to_thread(image_path.write_bytes, image_bytes)
        except OSError as exc:
            raise WriteError(handle.path, f"cannot write {image_path}: {exc}") from exc

        return RenderResult(
            image_src=to_data_url(image_bytes, image_type),
            file_path=str(image_path),
        )
