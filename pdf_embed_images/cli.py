"""CLI entry point for pdf-embed-images.

Replace embedded PDF pages in exported HTML notes with rendered images.

Usage::

    pdf-embed-images render note.html --vault ~/notes
    pdf-embed-images render *.html --vault ~/notes -o out/ --image-type png
    pdf-embed-images inspect note.html --vault ~/notes
"""

import argparse
import logging
import sys
import time
from pathlib import Path

import colorlog
from bs4 import BeautifulSoup

from pdf_embed_images import __version__
from pdf_embed_images.embeds import EMBED_SELECTORS
from pdf_embed_images.errors import EmbedRenderError
from pdf_embed_images.models import (
    DEFAULT_CONCURRENCY,
    DEFAULT_IMAGE_TYPE,
    DEFAULT_SCALE,
    ImageType,
    RenderOptions,
)
from pdf_embed_images.pipeline import default_context_path, resolve_output, run_export
from pdf_embed_images.reference import get_embed_source, looks_like_pdf_source, parse_pdf_embed
from pdf_embed_images.resolver import FileVault, resolve_pdf_document

_log = logging.getLogger("pdf-embed")

_SUMMARY_SEP = "=" * 78
"""Separator line for the run summary block."""


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def setup_colorized_logging():
    """Configure colorized logging output."""
    handler = colorlog.StreamHandler()
    handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s%(levelname)-8s%(reset)s %(blue)s%(name)-9s%(reset)s: "
            "%(message)s",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.INFO)

    # Suppress noisy libraries
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def _setup_logging(verbose: bool) -> None:
    """Initialize colorized logging and optionally enable debug level."""
    setup_colorized_logging()
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _positive_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}") from None
    if not value > 0 or value == float("inf"):
        raise argparse.ArgumentTypeError(f"must be a positive number: {text!r}")
    return value


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser with subcommands."""
    # -- Parent parsers for shared argument groups -----------------------------
    verbose_parent = argparse.ArgumentParser(add_help=False)
    verbose_parent.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    vault_parent = argparse.ArgumentParser(add_help=False)
    vault_parent.add_argument(
        "html",
        nargs="+",
        type=Path,
        help="Exported HTML file(s) containing PDF embeds",
    )
    vault_parent.add_argument(
        "--vault",
        type=Path,
        required=True,
        metavar="DIR",
        help="Root directory that embed links are resolved against",
    )
    vault_parent.add_argument(
        "--context",
        default=None,
        metavar="PATH",
        help="Vault path of the source note, used to resolve relative "
             "links (default: the HTML file's own path inside the vault, "
             "or the vault root if it lives elsewhere)",
    )

    # -- Main parser -----------------------------------------------------------
    parser = argparse.ArgumentParser(
        prog="pdf-embed-images",
        description="Replace embedded PDF pages in exported HTML with "
                    "rendered images",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  render        Render embedded PDF pages and write flattened HTML
  inspect       List the PDF embeds found and how they resolve

Examples:
  %(prog)s render note.html --vault ~/notes            Flatten one note
  %(prog)s render *.html --vault ~/notes -o out/       Flatten into out/
  %(prog)s inspect note.html --vault ~/notes           Show PDF embeds

Run '%(prog)s COMMAND --help' for command-specific options.
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")

    # -- render ----------------------------------------------------------------
    p_render = subparsers.add_parser(
        "render",
        parents=[verbose_parent, vault_parent],
        formatter_class=argparse.RawDescriptionHelpFormatter,
        help="Render embedded PDF pages and write flattened HTML",
        description="Replace every embedded PDF page with an inline image "
                    "and write the result next to each input "
                    "(<name>.flat.html) or into --output-dir.",
        epilog="""
Examples:
  %(prog)s note.html --vault ~/notes                      Default settings
  %(prog)s note.html --vault ~/notes --scale 2            Sharper images
  %(prog)s note.html --vault ~/notes --image-type png     Lossless output
  %(prog)s note.html --vault ~/notes --strict             Fail on bad PDFs
        """,
    )
    p_render.add_argument(
        "-o", "--output-dir",
        type=Path,
        default=None,
        help="Output directory for flattened HTML files "
             "(default: same directory as each input)",
    )
    p_render.add_argument(
        "--scale",
        type=_positive_float,
        default=DEFAULT_SCALE,
        metavar="F",
        help="Render scale relative to the page's native size "
             "(default: %(default)s)",
    )
    p_render.add_argument(
        "--image-type",
        choices=[t.value for t in ImageType],
        default=DEFAULT_IMAGE_TYPE.value,
        help="Encoding of the rendered pages (default: %(default)s)",
    )
    p_render.add_argument(
        "--concurrency",
        type=int,
        default=DEFAULT_CONCURRENCY,
        metavar="N",
        help="Maximum number of pages rendered at once; values below 1 "
             "are treated as 1 (default: %(default)s)",
    )
    p_render.add_argument(
        "--strict",
        action="store_true",
        help="Treat a PDF embed that fails to render as an error for its "
             "file (no output is written for that file)",
    )

    # -- inspect ---------------------------------------------------------------
    subparsers.add_parser(
        "inspect",
        parents=[verbose_parent, vault_parent],
        formatter_class=argparse.RawDescriptionHelpFormatter,
        help="List the PDF embeds found and how they resolve",
        description="List every embedded PDF reference with its requested "
                    "page and the vault file it resolves to. Nothing is "
                    "rendered or written.",
    )

    return parser


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _resolve_file_paths(raw_paths: list[Path], kind: str) -> list[Path] | None:
    """Resolve and validate a list of input file paths.

    Returns resolved paths on success, or ``None`` on first error
    (after logging the error).
    """
    resolved: list[Path] = []
    for p in raw_paths:
        rp = p.resolve()
        if not rp.exists():
            _log.error("%s not found: %s", kind, p)
            return None
        if not rp.is_file():
            _log.error("Not a file: %s", p)
            return None
        resolved.append(rp)
    resolved.sort(key=lambda p: p.name)
    return resolved


def _open_vault(path: Path) -> FileVault | None:
    if not path.is_dir():
        _log.error("Vault directory not found: %s", path)
        return None
    return FileVault(path)


def _context_for(html_path: Path, vault: FileVault, explicit: str | None) -> str:
    if explicit is not None:
        return explicit
    return default_context_path(html_path, vault.root)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_inspect(args: argparse.Namespace) -> int:
    """Handle the ``inspect`` command."""
    _setup_logging(args.verbose)

    html_paths = _resolve_file_paths(args.html, "HTML file")
    if html_paths is None:
        return 1
    vault = _open_vault(args.vault)
    if vault is None:
        return 1

    for html_path in html_paths:
        context = _context_for(html_path, vault, args.context)
        soup = BeautifulSoup(html_path.read_text(encoding="utf-8"), "html.parser")
        _log.info("%s (context: %s):", html_path.name, context)

        count = 0
        for node in soup.select(EMBED_SELECTORS):
            source = get_embed_source(node)
            if not source or not looks_like_pdf_source(source):
                continue
            count += 1
            embed = parse_pdf_embed(source)
            handle = resolve_pdf_document(vault, context, embed.link_text)
            target = handle.path if handle is not None else "unresolved"
            _log.info("  %-40s page %-4d -> %s", embed.link_text, embed.page, target)

        if not count:
            _log.info("  (no PDF embeds)")
    return 0


def _cmd_render(args: argparse.Namespace) -> int:
    """Handle the ``render`` command."""
    _setup_logging(args.verbose)

    html_paths = _resolve_file_paths(args.html, "HTML file")
    if html_paths is None:
        return 1
    vault = _open_vault(args.vault)
    if vault is None:
        return 1

    options = RenderOptions(
        scale=args.scale,
        image_type=ImageType(args.image_type),
        concurrency=args.concurrency,
        strict=args.strict,
    )
    output_dir = args.output_dir.resolve() if args.output_dir else None

    _log.info("pdf-embed-images %s", __version__)
    _log.info("Vault: %s", vault.root)
    _log.info(
        "Rendering: scale %s, %s, %d at a time",
        options.scale, options.image_type.value, options.effective_concurrency,
    )

    total_start = time.time()
    success = 0
    failure = 0
    replaced = 0
    failed_embeds = 0

    for html_path in html_paths:
        output_file = resolve_output(html_path, output_dir)
        _log.info("Processing %s...", html_path.name)
        try:
            result = run_export(
                html_path, output_file,
                vault=vault,
                context_path=_context_for(html_path, vault, args.context),
                options=options,
            )
        except EmbedRenderError as e:
            _log.error("  ✗ %s: %s", html_path.name, e)
            failed_embeds += len(e.failures)
            failure += 1
            continue
        except Exception as e:
            _log.error("  ✗ %s: %s: %s", html_path.name, type(e).__name__, e)
            failure += 1
            continue

        replaced += result.report.replaced
        failed_embeds += result.report.failed
        success += 1

    total_elapsed = time.time() - total_start
    _log.info("")
    _log.info(_SUMMARY_SEP)
    _log.info("Total time: %.1fs", total_elapsed)
    _log.info(
        "Results: %d file(s) written, %d failed; %d embed(s) replaced, "
        "%d embed(s) failed",
        success, failure, replaced, failed_embeds,
    )
    _log.info(_SUMMARY_SEP)
    return 1 if failure > 0 else 0


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = _build_parser()

    argv = sys.argv[1:] if argv is None else argv

    # Show help if no arguments provided.
    if not argv:
        parser.print_help()
        return 0

    args = parser.parse_args(argv)

    # No subcommand given.
    if args.command is None:
        parser.print_help()
        return 0

    handlers = {
        "render": _cmd_render,
        "inspect": _cmd_inspect,
    }
    return handlers[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
