"""
Structural Extractor v1.0.0
===========================
Flattens an HTML document into an ordered sequence of content units.

Each unit carries its normalized visible text, its original sub-markup,
and a style snapshot captured once here and never recomputed.

Author: MutualCompare
"""

import html
from dataclasses import dataclass, field
from typing import List, Any, Iterator, Tuple, Optional

from lxml import etree
from lxml import html as lxml_html

from config_logging import (
    EngineConfig, get_logger, ExtractionError, MalformedMarkupError
)
from .models import ContentUnit, StyleSnapshot, UnitKind
from .styles import StyleResolver

logger = get_logger('mutual_compare.extractor')

# Captured whole; nothing below them becomes a unit except inline units
BLOCK_TAGS = frozenset({
    'p', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'li', 'dt', 'dd', 'pre',
    'figcaption', 'table', 'tr', 'td', 'th',
})

# Walked through when they only hold blocks; captured when they hold text
CONTAINER_TAGS = frozenset({
    'div', 'section', 'article', 'blockquote', 'figure', 'ul', 'ol', 'dl',
    'header', 'footer', 'main', 'aside', 'nav', 'form', 'body', 'center',
    'html', 'tbody', 'thead', 'tfoot',
})

IGNORED_TAGS = frozenset({
    'script', 'style', 'head', 'template', 'noscript', 'title', 'meta', 'link',
})

EMPHASIS_TAGS = frozenset({'b', 'strong', 'i', 'em', 'u', 'mark'})

HEADING_TAGS = {f'h{level}': level for level in range(1, 7)}

_KIND_BY_TAG = {
    'p': UnitKind.PARAGRAPH,
    'li': UnitKind.LIST_ITEM,
    'dt': UnitKind.LIST_ITEM,
    'dd': UnitKind.LIST_ITEM,
    'table': UnitKind.TABLE,
    'tr': UnitKind.TABLE_ROW,
    'td': UnitKind.TABLE_CELL,
    'th': UnitKind.TABLE_CELL,
    'img': UnitKind.IMAGE,
}

# All engine classes share this prefix; injected spans use the inline one
_ANNOTATION_PREFIX = 'mutual-'
_INJECTED_PREFIX = 'mutual-inline-'


# =============================================================================
# TREE HELPERS
# =============================================================================

def normalize_text(text: Optional[str]) -> str:
    """Collapse whitespace runs and trim."""
    if not text:
        return ""
    return ' '.join(text.split())


def tag_of(element) -> str:
    """Lower-case tag name, or '' for comments and processing instructions."""
    tag = element.tag
    return tag.lower() if isinstance(tag, str) else ''


def is_annotation(element) -> bool:
    """True for spans and placeholders injected by the engine."""
    classes = (element.get('class') or '').split() if tag_of(element) else []
    return any(name.startswith(_INJECTED_PREFIX) or name == 'mutual-placeholder' for name in classes)


def parse_fragment(markup: str, side: Optional[str] = None):
    """
    Parse markup (fragment or full document) under a synthetic ``div`` root.

    Raises:
        MalformedMarkupError: If the input is not text or cannot be parsed
    """
    if not isinstance(markup, str):
        raise MalformedMarkupError(
            f"Expected markup string, got {type(markup).__name__}", side=side
        )
    if not markup.strip():
        return lxml_html.Element('div')
    try:
        return lxml_html.fragment_fromstring(markup, create_parent='div')
    except (etree.ParserError, etree.XMLSyntaxError, ValueError, AssertionError) as e:
        raise MalformedMarkupError(f"Could not parse markup: {e}", side=side) from e


def serialize(element) -> str:
    """Outer HTML of an element without its tail."""
    return lxml_html.tostring(element, encoding='unicode', with_tail=False)


def inner_html(root) -> str:
    """Serialized children (and leading text) of a container."""
    parts = [html.escape(root.text, quote=False) if root.text else '']
    for child in root:
        parts.append(lxml_html.tostring(child, encoding='unicode', with_tail=True))
    return ''.join(parts)


def iter_text_slots(root) -> Iterator[Tuple[Any, str]]:
    """
    Yield (element, 'text' | 'tail') for every visible text slot under root.

    Slots come in document order. Comment text and ignored subtrees are
    skipped; their tails are still visible. The root's own tail is excluded.
    """
    yield from _slots(root, is_root=True)


def _slots(element, is_root: bool) -> Iterator[Tuple[Any, str]]:
    tag = tag_of(element)
    if tag and tag not in IGNORED_TAGS:
        yield element, 'text'
        for child in element:
            yield from _slots(child, False)
    if not is_root:
        yield element, 'tail'


def visible_text(root) -> str:
    """Whitespace-normalized visible text under root."""
    return normalize_text(''.join(getattr(el, slot) or '' for el, slot in iter_text_slots(root)))


def iter_inline_candidates(root) -> Iterator[Any]:
    """
    Images and emphasis runs under root, in document order.

    Engine-injected spans are skipped along with everything inside them,
    so ordinals stay stable across highlighting.
    """
    for child in root:
        tag = tag_of(child)
        if not tag or tag in IGNORED_TAGS or is_annotation(child):
            continue
        if tag == 'img' or tag in EMPHASIS_TAGS:
            yield child
        yield from iter_inline_candidates(child)


def image_signature(element) -> Tuple[str, str]:
    return ((element.get('src') or '').strip(), (element.get('alt') or '').strip())


def media_of(element) -> Tuple[Tuple[str, str], ...]:
    """(src, alt) of the element itself if an image, else of its images."""
    if tag_of(element) == 'img':
        return (image_signature(element),)
    return tuple(image_signature(img) for img in element.iter('img'))


def plain_text(markup: str) -> str:
    """Whitespace-normalized visible text of a document."""
    return visible_text(parse_fragment(markup))


def content_fingerprint(markup: str) -> Tuple[str, Tuple[Tuple[str, str], ...]]:
    """Normalized visible text plus image references, in document order."""
    root = parse_fragment(markup)
    return visible_text(root), media_of(root)


def strip_annotations(markup: str) -> str:
    """
    Remove everything the engine injected into rendered markup.

    Placeholders (block and inline) are dropped, highlight spans unwrapped,
    and highlight classes removed, leaving the document's own content.
    """
    root = parse_fragment(markup)
    placeholders = []
    wrappers = []
    for element in root.iter():
        if not tag_of(element):
            continue
        classes = (element.get('class') or '').split()
        if any(c.startswith(_ANNOTATION_PREFIX) and "placeholder" in c for c in classes):
            placeholders.append(element)
        elif 'mutual-inline-added' in classes or 'mutual-inline-removed' in classes:
            wrappers.append(element)
    for element in placeholders:
        if element.getparent() is not None:
            element.drop_tree()
    for element in wrappers:
        if element.getparent() is not None:
            element.drop_tag()
    for element in root.iter():
        if not tag_of(element) or not element.get('class'):
            continue
        kept = [c for c in element.get('class').split() if not c.startswith(_ANNOTATION_PREFIX)]
        if kept:
            element.set('class', ' '.join(kept))
        else:
            del element.attrib['class']
    return inner_html(root)


# =============================================================================
# EXTRACTOR
# =============================================================================

@dataclass
class ExtractedDocument:
    """
    Units of one document plus the private tree they were read from.

    ``elements[i]`` is the element of ``units[i]`` inside ``root``. The tree
    belongs to one comparison call and is what the assembler writes into.
    """
    root: Any
    units: List[ContentUnit] = field(default_factory=list)
    elements: List[Any] = field(default_factory=list)


class StructuralExtractor:
    """
    Walks a markup tree and captures structural content units.

    Granularity ``structural`` also keeps images and short emphasis runs
    nested inside blocks as inline units; ``line`` keeps block units only.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.resolver = StyleResolver()

    def extract(self, markup: str, side: Optional[str] = None) -> List[ContentUnit]:
        """Extract the ordered content units of one document."""
        return self.extract_document(markup, side).units

    def extract_document(self, markup: str, side: Optional[str] = None) -> ExtractedDocument:
        """
        Parse markup and extract units along with their elements.

        Args:
            markup: HTML fragment or document
            side: 'left' or 'right', for diagnostics

        Returns:
            ExtractedDocument with units in document order

        Raises:
            MalformedMarkupError: If the markup cannot be parsed
        """
        root = parse_fragment(markup, side)
        document = ExtractedDocument(root=root)

        if self._is_transparent(root):
            self._walk(root, document)
        elif visible_text(root) or media_of(root):
            self._capture_block(root, document, UnitKind.GENERIC_BLOCK)

        logger.debug(f"Extracted {len(document.units)} units",
                     side=side, inline=sum(1 for u in document.units if u.is_inline))
        return document

    # -------------------------------------------------------------------------
    # Tree walk
    # -------------------------------------------------------------------------

    def _walk(self, container, document: ExtractedDocument):
        for child in container:
            tag = tag_of(child)
            if not tag or tag in IGNORED_TAGS:
                continue

            if tag in BLOCK_TAGS:
                kind = UnitKind.HEADING if tag in HEADING_TAGS else _KIND_BY_TAG.get(tag, UnitKind.GENERIC_BLOCK)
                self._capture_block(child, document, kind)
            elif tag == 'img':
                self._add_unit(child, document, UnitKind.IMAGE)
            elif tag in CONTAINER_TAGS:
                if self._is_transparent(child):
                    self._walk(child, document)
                elif visible_text(child) or media_of(child):
                    self._capture_block(child, document, UnitKind.GENERIC_BLOCK)
            else:
                # Inline wrapper without text of its own (e.g. a linked image)
                self._walk(child, document)

    def _is_transparent(self, container) -> bool:
        """A container is walked through when it holds structure and no loose text."""
        if normalize_text(container.text):
            return False
        has_structure = False
        for child in container:
            tag = tag_of(child)
            if normalize_text(child.tail):
                return False
            if not tag or tag in IGNORED_TAGS:
                continue
            if tag in BLOCK_TAGS or tag in HEADING_TAGS or tag in CONTAINER_TAGS or tag == 'img':
                has_structure = True
            elif visible_text(child):
                # Inline element with text sitting directly in the container
                return False
            elif child.find('.//img') is not None:
                has_structure = True
        return has_structure

    # -------------------------------------------------------------------------
    # Capture
    # -------------------------------------------------------------------------

    def _capture_block(self, element, document: ExtractedDocument, kind: UnitKind):
        parent_index = self._add_unit(element, document, kind)
        if self.config.granularity == 'structural':
            self._capture_inline(element, parent_index, document)

    def _capture_inline(self, block, parent_index: int, document: ExtractedDocument):
        max_length = self.config.inline_emphasis_max_length
        for ordinal, element in enumerate(iter_inline_candidates(block)):
            tag = tag_of(element)
            if tag == 'img':
                self._add_unit(element, document, UnitKind.IMAGE,
                               parent=parent_index, ordinal=ordinal)
                continue
            if self._inside_emphasis(element, block):
                continue
            text = visible_text(element)
            if text and len(text) <= max_length:
                self._add_unit(element, document, UnitKind.EMPHASIS,
                               parent=parent_index, ordinal=ordinal)

    @staticmethod
    def _inside_emphasis(element, block) -> bool:
        for ancestor in element.iterancestors():
            if ancestor is block:
                return False
            if tag_of(ancestor) in EMPHASIS_TAGS:
                return True
        return False

    def _add_unit(
        self,
        element,
        document: ExtractedDocument,
        kind: UnitKind,
        parent: Optional[int] = None,
        ordinal: int = -1
    ) -> int:
        index = len(document.units)
        tag = tag_of(element)

        try:
            style = self.resolver.capture(element, unit_index=index)
        except ExtractionError as e:
            logger.warning(f"Style capture failed for unit {index}; using empty snapshot",
                           unit_index=index, tag=tag, error=e.message)
            style = StyleSnapshot()

        unit = ContentUnit(
            index=index,
            kind=kind,
            tag=tag,
            text=visible_text(element),
            markup=serialize(element),
            style=style,
            level=HEADING_TAGS.get(tag, 0),
            media=media_of(element),
            parent=parent,
            ordinal=ordinal,
        )
        document.units.append(unit)
        document.elements.append(element)
        return index
