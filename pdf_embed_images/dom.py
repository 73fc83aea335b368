"""Replacement of embed nodes with ``<img>`` tags."""

from __future__ import annotations

from bs4 import BeautifulSoup
from bs4.element import Tag

IMAGE_STYLE = "max-width: 100%; height: auto;"
"""Inline style making the image fit its container width."""


def build_image_node(soup: BeautifulSoup, source_node: Tag, image_src: str) -> Tag:
    """Create the ``<img>`` that stands in for *source_node*.

    The source's ``class`` is carried over so that styling hooks written
    against the embed keep applying to the image.
    """
    img = soup.new_tag("img")
    img["src"] = image_src
    class_names = source_node.get("class")
    if class_names:
        img["class"] = list(class_names) if isinstance(class_names, list) else class_names
    img["style"] = IMAGE_STYLE
    return img


def swap_node(source_node: Tag, image_node: Tag) -> None:
    """Put *image_node* where *source_node* is, in a single tree operation."""
    source_node.replace_with(image_node)
