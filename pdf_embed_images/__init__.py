"""Replace embedded PDF pages in rendered HTML with images.

Finds embed nodes that point at PDF documents (``doc.pdf#page=3``),
renders each referenced page once with pymupdf, and swaps the embed for
an ``<img>`` carrying the page as a ``data:`` URL, so that downstream
HTML-to-PDF exporters never have to deal with nested documents.

Key features:
- Reference parsing with forgiving page-number handling
- Link resolution against a vault (relative, absolute, file-name shorthand)
- One render per (document, page, scale, image type), however many embeds
- Bounded number of concurrent renders
- Best-effort semantics: a bad PDF leaves its embed untouched

Note: Imports are deferred so that importing the package does not load
``pymupdf`` or ``bs4``.  Use explicit imports from submodules (e.g.
``from pdf_embed_images.embeds import ...``) or access via this package.
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("pdf-embed-images")
except PackageNotFoundError:
    __version__ = "0.0.0"  # fallback for uninstalled dev usage


def __getattr__(name: str):
    """Lazy imports to avoid loading pymupdf at package import time."""
    # Map attribute names to their source modules.
    _lazy_imports = {
        # pdf_embed_images.embeds
        "EMBED_SELECTORS": "pdf_embed_images.embeds",
        "RenderCache": "pdf_embed_images.embeds",
        "replace_pdf_embeds_with_images": "pdf_embed_images.embeds",
        # pdf_embed_images.errors
        "DecodeError": "pdf_embed_images.errors",
        "EmbedRenderError": "pdf_embed_images.errors",
        "EncodeError": "pdf_embed_images.errors",
        "RasterError": "pdf_embed_images.errors",
        "ReadError": "pdf_embed_images.errors",
        "RenderError": "pdf_embed_images.errors",
        "WriteError": "pdf_embed_images.errors",
        # pdf_embed_images.models
        "EmbedReport": "pdf_embed_images.models",
        "ImageType": "pdf_embed_images.models",
        "ParsedEmbed": "pdf_embed_images.models",
        "RenderOptions": "pdf_embed_images.models",
        "RenderResult": "pdf_embed_images.models",
        # pdf_embed_images.pipeline
        "export_html": "pdf_embed_images.pipeline",
        "run_export": "pdf_embed_images.pipeline",
        # pdf_embed_images.reference
        "parse_pdf_embed": "pdf_embed_images.reference",
        # pdf_embed_images.renderer
        "PageRenderer": "pdf_embed_images.renderer",
        # pdf_embed_images.resolver
        "DocumentHandle": "pdf_embed_images.resolver",
        "FileVault": "pdf_embed_images.resolver",
        "Vault": "pdf_embed_images.resolver",
        # pdf_embed_images.scratch
        "create_scratch_root": "pdf_embed_images.scratch",
        "remove_all": "pdf_embed_images.scratch",
    }

    if name in _lazy_imports:
        import importlib
        module = importlib.import_module(_lazy_imports[name])
        return getattr(module, name)

    raise AttributeError(f"module 'pdf_embed_images' has no attribute {name!r}")


__all__ = [
    "create_scratch_root",
    "DecodeError",
    "DocumentHandle",
    "EMBED_SELECTORS",
    "EmbedRenderError",
    "EmbedReport",
    "EncodeError",
    "export_html",
    "FileVault",
    "ImageType",
    "PageRenderer",
    "ParsedEmbed",
    "parse_pdf_embed",
    "RasterError",
    "ReadError",
    "remove_all",
    "RenderCache",
    "RenderError",
    "RenderOptions",
    "RenderResult",
    "replace_pdf_embeds_with_images",
    "run_export",
    "Vault",
    "WriteError",
]
