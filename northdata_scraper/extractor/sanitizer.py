"""
Content sanitization for extracted page sections.

Turns the markup of a company page section into compact, style-free HTML:
scripts, styles, links, media and interactive elements are removed and
whitespace is collapsed. Vector graphics embedded in the section keep their
presentation attributes, since geometry and markers depend on them.

The transform is pure and idempotent: sanitizing sanitized output returns it
unchanged.
"""

import re

from bs4 import BeautifulSoup, NavigableString, Tag

from northdata_scraper.utils.logging import get_logger

logger = get_logger(__name__)

GRAPHIC_TAG = "svg"

REMOVED_ELEMENTS = ["img", "button", "form", "input", "iframe", "frame"]
STRIPPED_ATTRIBUTES = frozenset({"href", "src", "id", "target", "rel"})
PRESENTATION_ATTRIBUTES = ("style", "class")

_BLOCK_TAG_PATTERN = re.compile(
    r"\s*(</?(?:div|p|section|table|tr|td|th|ul|ol|li|h[1-6])[^>]*>)\s*"
)

# html.parser lowercases names; SVG is case-sensitive
_SVG_TAG_NAMES = {
    name.lower(): name
    for name in (
        "altGlyph",
        "animateMotion",
        "animateTransform",
        "clipPath",
        "feBlend",
        "feColorMatrix",
        "feComponentTransfer",
        "feComposite",
        "feDropShadow",
        "feFlood",
        "feGaussianBlur",
        "feMerge",
        "feMergeNode",
        "feMorphology",
        "feOffset",
        "foreignObject",
        "glyphRef",
        "linearGradient",
        "radialGradient",
        "textPath",
    )
}

_SVG_ATTRIBUTE_NAMES = {
    name.lower(): name
    for name in (
        "baseProfile",
        "clipPathUnits",
        "filterUnits",
        "gradientTransform",
        "gradientUnits",
        "lengthAdjust",
        "markerHeight",
        "markerUnits",
        "markerWidth",
        "maskContentUnits",
        "maskUnits",
        "pathLength",
        "patternContentUnits",
        "patternTransform",
        "patternUnits",
        "preserveAspectRatio",
        "primitiveUnits",
        "refX",
        "refY",
        "spreadMethod",
        "startOffset",
        "stdDeviation",
        "textLength",
        "viewBox",
    )
}


def _in_graphic(tag: Tag) -> bool:
    """Check whether a tag is a vector graphic or nested inside one."""
    return tag.name == GRAPHIC_TAG or tag.find_parent(GRAPHIC_TAG) is not None


def _remove(tags: list[Tag]) -> None:
    for tag in tags:
        # Nested matches go away with their ancestor
        if not tag.decomposed:
            tag.decompose()


def _replace_links(soup: BeautifulSoup) -> None:
    for link in soup.find_all("a"):
        if link.decomposed or link.parent is None:
            continue
        if _in_graphic(link):
            # Graph nodes are anchors; keep their shapes
            link.unwrap()
            continue
        text = link.get_text()
        if text:
            link.replace_with(NavigableString(text))
        else:
            link.decompose()


def _strip_attributes(tag: Tag) -> None:
    for name in list(tag.attrs):
        if name.startswith("on") or name in STRIPPED_ATTRIBUTES:
            del tag[name]


def _restore_svg_case(soup: BeautifulSoup) -> None:
    for graphic in soup.find_all(GRAPHIC_TAG):
        for tag in [graphic, *graphic.find_all(True)]:
            tag.name = _SVG_TAG_NAMES.get(tag.name, tag.name)
            tag.attrs = {
                _SVG_ATTRIBUTE_NAMES.get(name, name): value for name, value in tag.attrs.items()
            }


def collapse_whitespace(html: str) -> str:
    """Collapse whitespace in serialized markup.

    Runs of whitespace become a single space, inter-tag whitespace is
    removed, lines are trimmed and whitespace around block-level tags is
    dropped.

    Args:
        html: Serialized markup.

    Returns:
        Compacted markup.
    """
    html = re.sub(r"\s+", " ", html)
    html = re.sub(r">\s+<", "><", html)
    html = re.sub(r"^\s+", "", html, flags=re.MULTILINE)
    html = re.sub(r"\s+$", "", html, flags=re.MULTILINE)
    return _BLOCK_TAG_PATTERN.sub(r"\1", html)


def sanitize_html(markup: str) -> str:
    """Sanitize the markup of an extracted page section.

    Rules are applied in order:
    1. Remove script elements
    2. Remove style elements outside vector graphics
    3. Strip style and class attributes outside vector graphics
    4. Replace links with their text (empty links are dropped); anchors
       inside vector graphics are unwrapped so graph node shapes survive
    5. Remove img, button, form, input, iframe and frame elements
    6. Strip on* handlers, href, src, id, target and rel outside vector graphics
    7. Serialize and collapse whitespace

    Args:
        markup: Section outerHTML.

    Returns:
        Sanitized HTML string. Empty input yields an empty string.
    """
    if not markup or not markup.strip():
        return ""

    soup = BeautifulSoup(markup, "html.parser")

    _remove(soup.find_all("script"))
    _remove([style for style in soup.find_all("style") if not _in_graphic(style)])

    for tag in soup.find_all(True):
        if not _in_graphic(tag):
            for name in PRESENTATION_ATTRIBUTES:
                if name in tag.attrs:
                    del tag[name]

    _replace_links(soup)
    _remove(soup.find_all(REMOVED_ELEMENTS))

    for tag in soup.find_all(True):
        if not _in_graphic(tag):
            _strip_attributes(tag)

    _restore_svg_case(soup)

    html = collapse_whitespace(str(soup))
    logger.debug("Sanitized section", input_length=len(markup), output_length=len(html))
    return html
