"""Replace embedded-PDF nodes in an HTML tree with rendered page images.

Entry point: :func:`replace_pdf_embeds_with_images`.

Every embed-like node is handled by its own coroutine.  Nodes that refer
to the same page (same document, page, scale and image type) share one
render through :class:`RenderCache`, and the cache's limiter bounds how
many distinct renders run at once.  A node whose reference is not a PDF,
does not resolve, or fails to render is left exactly as it was.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Protocol

from bs4 import BeautifulSoup
from bs4.element import Tag

from pdf_embed_images.dom import build_image_node, swap_node
from pdf_embed_images.errors import EmbedRenderError, RenderError
from pdf_embed_images.models import (
    EmbedFailure,
    EmbedReport,
    ImageType,
    RenderOptions,
    RenderResult,
    render_key,
)
from pdf_embed_images.reference import get_embed_source, looks_like_pdf_source, parse_pdf_embed
from pdf_embed_images.renderer import PageRenderer
from pdf_embed_images.resolver import DocumentHandle, Vault, resolve_pdf_document

_log = logging.getLogger("embeds")

EMBED_SELECTORS = (
    ".internal-embed[src], iframe[src], embed[src], object[data], span.markdown-embed"
)
"""CSS selectors for nodes that may embed another document."""


class Renderer(Protocol):
    """Anything that can render one page (see :class:`PageRenderer`)."""

    async def render(
        self,
        handle: DocumentHandle,
        page: int,
        scratch_dir: Path,
        scale: float,
        image_type: ImageType,
    ) -> RenderResult:
        ...


# ---------------------------------------------------------------------------
# RenderCache
# ---------------------------------------------------------------------------


class RenderCache:
    """Single-flight cache of render tasks with bounded concurrency.

    :meth:`get` inserts the task for a new key before returning, without
    awaiting in between, so every later request for the key (even one made
    while the first render is still running) joins the same task.  Only
    the task body acquires the limiter: callers waiting on an existing
    task do not take a slot.
    """

    def __init__(self, concurrency: int) -> None:
        self._limiter = asyncio.Semaphore(max(1, concurrency))
        self._tasks: dict[str, asyncio.Task[RenderResult]] = {}

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, key: str) -> bool:
        return key in self._tasks

    def get(
        self,
        key: str,
        factory: Callable[[], Awaitable[RenderResult]],
    ) -> asyncio.Task[RenderResult]:
        """Return the task for *key*, starting ``factory()`` on first use."""
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(self._limited(factory))
            self._tasks[key] = task
        return task

    async def _limited(self, factory: Callable[[], Awaitable[RenderResult]]) -> RenderResult:
        async with self._limiter:
            return await factory()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def replace_pdf_embeds_with_images(
    soup: BeautifulSoup,
    context_path: str,
    *,
    vault: Vault,
    scratch_dir: Path,
    options: RenderOptions | None = None,
    renderer: Renderer | None = None,
) -> EmbedReport:
    """Swap every embedded PDF page in *soup* for a rendered ``<img>``.

    Args:
        soup: Parsed HTML tree, modified in place.
        context_path: Vault path of the note the HTML was rendered from;
            relative links are resolved against its folder.
        vault: Host vault used to resolve links and read PDF bytes.
        scratch_dir: Run directory receiving a copy of each rendered image.
        options: Scale, image type, concurrency and strict mode.
        renderer: Page renderer; a :class:`PageRenderer` over *vault* is
            created (and closed) for this call when omitted.

    Returns:
        Tally of found, replaced, skipped and failed nodes.

    Raises:
        EmbedRenderError: Only in strict mode, after every node has
            settled, when at least one render failed.
    """
    options = options or RenderOptions()
    report = EmbedReport()

    nodes = soup.select(EMBED_SELECTORS)
    report.found = len(nodes)
    if not nodes:
        return report

    owned = PageRenderer(vault) if renderer is None else None
    active: Renderer = renderer if renderer is not None else owned
    cache = RenderCache(options.effective_concurrency)

    async def handle_node(node: Tag) -> None:
        source = ""
        key: str | None = None
        try:
            source = get_embed_source(node) or ""
            if not source or not looks_like_pdf_source(source):
                report.skipped += 1
                return

            embed = parse_pdf_embed(source)
            handle = resolve_pdf_document(vault, context_path, embed.link_text)
            if handle is None:
                report.skipped += 1
                return

            key = render_key(handle.path, embed.page, options.scale, options.image_type)
            task = cache.get(
                key,
                lambda: active.render(
                    handle, embed.page, scratch_dir, options.scale, options.image_type,
                ),
            )
            # Shielded: a cancelled consumer must not cancel the shared render.
            result = await asyncio.shield(task)
            swap_node(node, build_image_node(soup, node, result.image_src))
            report.replaced += 1
        except RenderError as exc:
            _log.warning("  ✗ %s: %s failed: %s", source, exc.stage, exc)
            report.failures.append(EmbedFailure(source=source, key=key, error=exc))
        except Exception as exc:
            stage = "resolve" if key is None else "render"
            _log.error("  ✗ %s: %s %s: %s", source, stage, type(exc).__name__, exc)
            report.failures.append(EmbedFailure(source=source, key=key, error=exc))

    try:
        # Every node settles on its own; failures are recorded, not raised.
        await asyncio.gather(*(handle_node(node) for node in nodes))
    finally:
        if owned is not None:
            owned.close()

    report.renders = len(cache)
    _log.info(
        "PDF embeds: %d found, %d replaced, %d skipped, %d failed (%d render(s))",
        report.found, report.replaced, report.skipped, report.failed, report.renders,
    )

    if options.strict and report.failures:
        raise EmbedRenderError(report.failures)
    return report
