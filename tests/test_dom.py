"""Unit tests for image node construction and substitution."""

from bs4 import BeautifulSoup

from pdf_embed_images.dom import IMAGE_STYLE, build_image_node, swap_node


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


class TestBuildImageNode:
    """Attributes of the generated ``<img>``."""

    def test_src_and_style(self):
        soup = _soup('<span class="internal-embed" src="doc.pdf"></span>')
        img = build_image_node(soup, soup.span, "data:image/png;base64,AAAA")
        assert img.name == "img"
        assert img["src"] == "data:image/png;base64,AAAA"
        assert img["style"] == IMAGE_STYLE

    def test_class_copied(self):
        soup = _soup('<span class="internal-embed pdf-embed" src="doc.pdf"></span>')
        img = build_image_node(soup, soup.span, "data:x")
        assert img["class"] == ["internal-embed", "pdf-embed"]

    def test_no_class_attribute_when_source_has_none(self):
        soup = _soup('<iframe src="doc.pdf"></iframe>')
        img = build_image_node(soup, soup.iframe, "data:x")
        assert not img.has_attr("class")

    def test_other_attributes_not_copied(self):
        soup = _soup('<span class="e" src="doc.pdf" width="400" alt="doc"></span>')
        img = build_image_node(soup, soup.span, "data:x")
        assert set(img.attrs) == {"src", "class", "style"}

    def test_source_untouched(self):
        soup = _soup('<span class="e" src="doc.pdf"></span>')
        before = str(soup)
        build_image_node(soup, soup.span, "data:x")
        assert str(soup) == before


class TestSwapNode:
    """In-place replacement."""

    def test_position_preserved(self):
        soup = _soup('<div><p>a</p><span class="e" src="doc.pdf"><b>x</b></span><p>b</p></div>')
        span = soup.span
        swap_node(span, build_image_node(soup, span, "data:x"))
        assert [c.name for c in soup.div.contents] == ["p", "img", "p"]
        assert soup.find("span") is None
        assert soup.find("b") is None

    def test_serialized(self):
        soup = _soup('<div><span src="doc.pdf"></span></div>')
        swap_node(soup.span, build_image_node(soup, soup.span, "data:x"))
        assert str(soup) == f'<div><img src="data:x" style="{IMAGE_STYLE}"/></div>'
