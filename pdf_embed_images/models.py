"""Data types shared by the embed parser, renderer and scheduler."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum

DEFAULT_SCALE = 1.5
"""Linear multiplier applied to the page's native size (72 DPI points)."""

DEFAULT_CONCURRENCY = 3
"""Maximum number of pages rendered at the same time."""

_LOSSY_QUALITY = 90
"""Encoder quality (0-100) for lossy formats."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ImageType(Enum):
    """Output encoding for rendered pages."""

    WEBP = "webp"
    PNG = "png"
    JPEG = "jpeg"

    @property
    def mime(self) -> str:
        """MIME type used in the data URL (e.g. ``image/webp``)."""
        return f"image/{self.value}"

    @property
    def extension(self) -> str:
        """File extension for the scratch copy (``jpg`` for JPEG)."""
        return "jpg" if self is ImageType.JPEG else self.value

    @property
    def quality(self) -> int | None:
        """Encoder quality, or ``None`` for lossless PNG."""
        return None if self is ImageType.PNG else _LOSSY_QUALITY


DEFAULT_IMAGE_TYPE = ImageType.WEBP


@dataclass(frozen=True)
class RenderOptions:
    """Per-run rendering configuration.

    ``concurrency`` values below 1 are accepted and treated as 1; use
    :attr:`effective_concurrency` when sizing the limiter.
    """

    scale: float = DEFAULT_SCALE
    image_type: ImageType = DEFAULT_IMAGE_TYPE
    concurrency: int = DEFAULT_CONCURRENCY
    strict: bool = False
    """Raise :class:`~pdf_embed_images.errors.EmbedRenderError` after the
    run when any embed failed, instead of only logging it."""

    def __post_init__(self) -> None:
        if not math.isfinite(self.scale) or self.scale <= 0:
            raise ValueError(f"scale must be a positive number, got {self.scale!r}")
        if not isinstance(self.image_type, ImageType):
            raise ValueError(f"unknown image type: {self.image_type!r}")

    @property
    def effective_concurrency(self) -> int:
        return max(1, self.concurrency)


# ---------------------------------------------------------------------------
# Parsed references and results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParsedEmbed:
    """Normalized form of an embed reference such as ``doc.pdf#page=3``."""

    link_text: str
    """Percent-decoded, trimmed link text (fragment removed)."""
    page: int = 1
    """1-indexed page number requested by the fragment."""


@dataclass(frozen=True)
class RenderResult:
    """A rendered page: embeddable data URL plus its scratch copy."""

    image_src: str
    """``data:<mime>;base64,...`` URL usable directly as ``<img src>``."""
    file_path: str
    """Location of the encoded image inside the run's scratch directory."""


@dataclass(frozen=True)
class EmbedFailure:
    """One embed node whose render failed (the node was left untouched)."""

    source: str
    """Raw reference string read from the node."""
    key: str | None
    """Render key of the failed computation (``None`` when the node failed
    while its reference was being resolved)."""
    error: BaseException


@dataclass
class EmbedReport:
    """Outcome tally for one :func:`replace_pdf_embeds_with_images` call."""

    found: int = 0
    """Embed-like nodes matched by the selectors."""
    replaced: int = 0
    """Nodes swapped for an ``<img>``."""
    skipped: int = 0
    """Nodes that are not PDF embeds or whose link did not resolve."""
    renders: int = 0
    """Distinct render keys (renderer invocations started)."""
    failures: list[EmbedFailure] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


def format_scale(scale: float) -> str:
    """Return the shortest text form of *scale* (``2.0`` -> ``"2"``).

    Keeps keys and file names identical for numerically equal scales.
    """
    text = repr(float(scale))
    if text.endswith(".0"):
        text = text[:-2]
    return text


def render_key(doc_path: str, page: int, scale: float, image_type: ImageType) -> str:
    """Build the dedup key for one ``(document, page, scale, type)`` render."""
    return f"{doc_path}|{page}|{format_scale(scale)}|{image_type.value}"
