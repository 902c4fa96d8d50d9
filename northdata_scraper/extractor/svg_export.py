"""
Self-contained SVG export for the company network graphic.

The in-page capture (crawler/scripts.py) returns a serialized clone of the
graphic together with the computed presentation properties of every live
element, inlined image data and the page's @font-face rules. This module
merges those into one SVG document that renders without the page's
stylesheets.
"""

from dataclasses import dataclass, field
from typing import Any

from bs4 import BeautifulSoup, CData, Tag

from northdata_scraper.errors import ExtractionEmpty
from northdata_scraper.utils.logging import get_logger

logger = get_logger(__name__)

SVG_NAMESPACE = "http://www.w3.org/2000/svg"
XLINK_NAMESPACE = "http://www.w3.org/1999/xlink"
STYLE_INDEX_ATTRIBUTE = "data-style-index"

# Computed properties copied onto every exported element
PRESENTATION_PROPERTIES: tuple[str, ...] = (
    "fill",
    "fill-opacity",
    "fill-rule",
    "stroke",
    "stroke-width",
    "stroke-opacity",
    "stroke-dasharray",
    "stroke-dashoffset",
    "stroke-linecap",
    "stroke-linejoin",
    "stroke-miterlimit",
    "opacity",
    "font-family",
    "font-size",
    "font-weight",
    "font-style",
    "text-anchor",
    "dominant-baseline",
    "letter-spacing",
    "text-decoration",
    "clip-path",
    "clip-rule",
    "mask",
    "marker-start",
    "marker-mid",
    "marker-end",
    "cursor",
    "visibility",
    "display",
    "color",
)


@dataclass
class GraphicCapture:
    """Raw graphic data captured from the live page."""

    markup: str
    styles: list[dict[str, str] | None] = field(default_factory=list)
    images: dict[str, str] = field(default_factory=dict)
    font_css: str = ""
    width: float = 0.0
    height: float = 0.0

    @classmethod
    def from_page_result(cls, data: dict[str, Any] | None) -> "GraphicCapture":
        """Build a capture from the in-page evaluation result.

        Raises:
            ExtractionEmpty: If the graphic was not present on the page.
        """
        if not data or not data.get("markup"):
            raise ExtractionEmpty("Network graphic not found on the page")
        return cls(
            markup=data["markup"],
            styles=list(data.get("styles") or []),
            images=dict(data.get("images") or {}),
            font_css=data.get("fontCss") or "",
            width=float(data.get("width") or 0),
            height=float(data.get("height") or 0),
        )


def _format_length(value: float) -> str:
    return f"{value:g}"


def _ensure_namespaces(root: Tag) -> None:
    if not root.get("xmlns"):
        root["xmlns"] = SVG_NAMESPACE
    if not root.get("xmlns:xlink"):
        root["xmlns:xlink"] = XLINK_NAMESPACE


def _ensure_sizing(root: Tag, width: float, height: float) -> None:
    """Give the graphic an explicit size unless it already declares one."""
    if root.get("viewBox") or (root.get("width") and root.get("height")):
        return
    if width <= 0 or height <= 0:
        return
    root["width"] = _format_length(width)
    root["height"] = _format_length(height)
    root["viewBox"] = f"0 0 {_format_length(width)} {_format_length(height)}"


def _inline_styles(root: Tag, styles: list[dict[str, str] | None]) -> int:
    """Write computed properties as inline styles and drop index markers.

    Returns:
        Number of elements that received an inline style.
    """
    styled = 0
    for tag in [root, *root.find_all(True)]:
        raw_index = tag.attrs.pop(STYLE_INDEX_ATTRIBUTE, None)
        if raw_index is None:
            continue
        try:
            index = int(raw_index)
        except ValueError:
            continue
        if index >= len(styles):
            continue

        declarations = styles[index]
        # None marks elements inside <defs>
        if not declarations:
            continue

        tag["style"] = "; ".join(f"{name}: {value}" for name, value in declarations.items())
        styled += 1
    return styled


def _inline_images(root: Tag, images: dict[str, str]) -> None:
    if not images:
        return
    for image in root.find_all("image"):
        for attribute in ("href", "xlink:href"):
            href = image.get(attribute)
            if href in images:
                image[attribute] = images[href]


def _embed_fonts(soup: BeautifulSoup, root: Tag, font_css: str) -> None:
    if not font_css.strip():
        return
    defs = soup.new_tag("defs")
    style = soup.new_tag("style", attrs={"type": "text/css"})
    style.append(CData(font_css))
    defs.append(style)
    root.insert(0, defs)


def build_self_contained_svg(capture: GraphicCapture) -> str:
    """Merge a graphic capture into a standalone SVG document.

    Args:
        capture: Captured graphic data.

    Returns:
        SVG markup renderable without the source page's stylesheets.

    Raises:
        ExtractionEmpty: If the captured markup contains no svg element.
    """
    soup = BeautifulSoup(capture.markup, "xml")
    root = soup.find("svg")
    if root is None:
        raise ExtractionEmpty("Captured graphic markup has no svg root")

    _ensure_namespaces(root)
    _ensure_sizing(root, capture.width, capture.height)
    styled = _inline_styles(root, capture.styles)
    _inline_images(root, capture.images)
    _embed_fonts(soup, root, capture.font_css)

    logger.debug(
        "Graphic exported",
        styled_elements=styled,
        images=len(capture.images),
        has_fonts=bool(capture.font_css.strip()),
    )
    return str(root)
