"""Error taxonomy for embedded-PDF rendering.

Every rendering failure derives from :class:`RenderError` and names the
vault path of the document that failed.  The underlying library error is
chained (``raise ... from exc``) so the original traceback survives.

A reference that cannot be resolved to a PDF is *not* an error: the
resolver returns ``None`` and the node is skipped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pdf_embed_images.models import EmbedFailure


class RenderError(Exception):
    """Base class for failures while turning a PDF page into an image."""

    stage = "render"
    """Short label of the failing step, used in log lines."""

    def __init__(self, doc_path: str, message: str) -> None:
        super().__init__(f"{doc_path}: {message}")
        self.doc_path = doc_path


class ReadError(RenderError):
    """The vault could not supply the document bytes."""

    stage = "read"


class DecodeError(RenderError):
    """The bytes are not a readable PDF (or the PDF has no pages)."""

    stage = "decode"


class RasterError(RenderError):
    """PyMuPDF failed to draw the page."""

    stage = "raster"


class EncodeError(RenderError):
    """The rendered pixmap could not be serialized to the target format."""

    stage = "encode"


class WriteError(RenderError):
    """The encoded image could not be written to the scratch directory."""

    stage = "write"


class EmbedRenderError(Exception):
    """Raised in strict mode when one or more embeds failed to render.

    Raised only after every node has settled, so the tree already holds
    the images of all embeds that did succeed.
    """

    def __init__(self, failures: list[EmbedFailure]) -> None:
        noun = "embed" if len(failures) == 1 else "embeds"
        super().__init__(f"{len(failures)} PDF {noun} failed to render")
        self.failures = failures
