"""
Character-Diff Renderer v1.0.0
==============================
Maps character diff operations back onto a unit's original markup.

Each side's text nodes are walked in document order while the diff
operations are consumed:
- equal text is left untouched
- this side's own changes (deletions on the left, insertions on the right)
  are wrapped in a highlight span, one span per text node so element
  nesting is never broken
- the opposite side's changes become a bracketed placeholder span with a
  truncated preview

Injected spans re-assert the unit's captured typography inline so that
highlighting cannot change font, size, color, or spacing.
"""

from dataclasses import dataclass, field
from typing import List, Tuple, Optional, Dict

from lxml import html as lxml_html
from lxml import etree

from config_logging import EngineConfig, get_logger
from .extractor import iter_text_slots, iter_inline_candidates, serialize
from .models import (
    ContentUnit, DiffOp, DiffOperation, StyleSnapshot, TYPOGRAPHY_PROPERTIES,
    CLASS_MODIFIED, CLASS_INLINE_ADDED, CLASS_INLINE_REMOVED,
    CLASS_INLINE_PLACEHOLDER_ADDED, CLASS_INLINE_PLACEHOLDER_REMOVED,
)
from .styles import StyleResolver

logger = get_logger('mutual_compare.renderer')

PLACEHOLDER_PREVIEW_STYLE = 'opacity: 0.7; font-size: 0.9em;'
ELLIPSIS = '...'

# Fragment types inside one text slot
_PLAIN = 'plain'
_OWN = 'own'
_OTHER = 'other'


def preview_text(text: str, length: int) -> str:
    """Truncate a preview to ``length`` characters plus an ellipsis."""
    text = text or ''
    if len(text) > length:
        return text[:length] + ELLIPSIS
    return text


def add_class(element, css_class: str):
    """Append a class to an element's class attribute."""
    classes = (element.get('class') or '').split()
    if css_class not in classes:
        classes.append(css_class)
    element.set('class', ' '.join(classes))


def parse_unit(markup: str):
    """Parse a single unit's markup back into one element."""
    return lxml_html.fragment_fromstring(markup)


@dataclass
class _Slot:
    """One visible text position: an element's text or its tail."""
    element: object
    kind: str  # 'text' or 'tail'
    piece: str = ""
    fragments: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def has_spans(self) -> bool:
        return any(kind != _PLAIN for kind, _ in self.fragments)


@dataclass
class InlineMarks:
    """
    Annotations for inline units living inside one rendered block.

    Attributes:
        classes: Inline candidate ordinal -> highlight class
        placeholders: Placeholder markup for counterpart inline units that
                      have no match on this side
    """
    classes: Dict[int, str] = field(default_factory=dict)
    placeholders: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.classes and not self.placeholders


class CharacterDiffRenderer:
    """Injects highlight and placeholder spans into unit markup."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.resolver = StyleResolver()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def render_pair(
        self,
        left: ContentUnit,
        right: ContentUnit,
        operations: List[DiffOperation]
    ) -> Tuple[str, str]:
        """
        Render both sides of a modified pair.

        Args:
            left: Unit from the original document
            right: Unit from the modified document
            operations: Character diff of left.text against right.text

        Returns:
            (left markup, right markup) with spans injected
        """
        return (
            self._render_side(left, operations, 'left'),
            self._render_side(right, operations, 'right'),
        )

    def mark_root(self, markup: str, css_class: str) -> str:
        """Add a highlight class to a unit's root element."""
        root = parse_unit(markup)
        add_class(root, css_class)
        return serialize(root)

    def mark_inline(self, markup: str, unit: ContentUnit, marks: InlineMarks) -> str:
        """
        Apply inline unit annotations to a block's rendered markup.

        Candidates are located by ordinal, so this must run after the
        character diff (injected spans are skipped when counting).
        Failures leave the markup as it was.
        """
        if marks.is_empty:
            return markup
        try:
            root = parse_unit(markup)
            candidates = list(iter_inline_candidates(root))
            for ordinal, css_class in marks.classes.items():
                if 0 <= ordinal < len(candidates):
                    add_class(candidates[ordinal], css_class)
            for placeholder in marks.placeholders:
                root.append(parse_unit(placeholder))
            return serialize(root)
        except (etree.LxmlError, ValueError) as e:
            logger.warning(f"Inline marking failed for unit {unit.index}: {e}",
                           unit_index=unit.index)
            return markup

    # -------------------------------------------------------------------------
    # Per-side rendering
    # -------------------------------------------------------------------------

    def _render_side(self, unit: ContentUnit, operations: List[DiffOperation], side: str) -> str:
        try:
            return self._highlight(unit, operations, side)
        except Exception as e:
            logger.warning(f"Character highlighting failed for {side} unit {unit.index}; "
                           f"falling back to whole-unit highlight: {e}",
                           unit_index=unit.index, side=side)
        try:
            return self.mark_root(unit.markup, CLASS_MODIFIED)
        except (etree.LxmlError, ValueError) as e:
            logger.warning(f"Could not mark {side} unit {unit.index}: {e}",
                           unit_index=unit.index, side=side)
            return unit.markup

    def _highlight(self, unit: ContentUnit, operations: List[DiffOperation], side: str) -> str:
        own_op = DiffOp.DELETE if side == 'left' else DiffOp.INSERT
        own_class = CLASS_INLINE_REMOVED if side == 'left' else CLASS_INLINE_ADDED
        other_class = CLASS_INLINE_PLACEHOLDER_ADDED if side == 'left' else CLASS_INLINE_PLACEHOLDER_REMOVED

        root = parse_unit(unit.markup)
        slots = self._collect_slots(root)

        expected = ''.join(op.text for op in operations if op.op in (DiffOp.EQUAL, own_op))
        actual = ''.join(slot.piece for slot in slots)
        if expected != actual:
            raise ValueError(f"diff text does not match {side} markup text")

        cursor = _Cursor(slots)
        for operation in operations:
            if operation.op is DiffOp.EQUAL:
                cursor.consume(len(operation.text), _PLAIN)
            elif operation.op is own_op:
                cursor.consume(len(operation.text), _OWN)
            else:
                cursor.current.fragments.append((_OTHER, operation.text))

        for slot in slots:
            if slot.has_spans:
                self._rewrite_slot(slot, root, unit.style, own_class, other_class)

        add_class(root, CLASS_MODIFIED)
        return serialize(root)

    # -------------------------------------------------------------------------
    # Slots
    # -------------------------------------------------------------------------

    @staticmethod
    def _collect_slots(root) -> List[_Slot]:
        """
        Collect text slots with whitespace normalized across slot boundaries.

        The concatenated pieces equal the unit's normalized text: runs of
        whitespace collapse to one space, leading and trailing space drop.
        """
        slots = [_Slot(element, kind) for element, kind in iter_text_slots(root)]
        last_space: Optional[Tuple[int, int]] = None  # (slot, position) of a trailing space
        emitted = False
        in_space = False
        for position, slot in enumerate(slots):
            raw = getattr(slot.element, slot.kind) or ''
            chars = []
            for ch in raw:
                if ch.isspace():
                    if emitted and not in_space:
                        chars.append(' ')
                        last_space = (position, len(chars) - 1)
                    in_space = True
                else:
                    chars.append(ch)
                    emitted = True
                    in_space = False
                    last_space = None
            slot.piece = ''.join(chars)

        if last_space is not None:
            position, index = last_space
            piece = slots[position].piece
            slots[position].piece = piece[:index] + piece[index + 1:]
        return slots

    def _rewrite_slot(self, slot: _Slot, root, base: StyleSnapshot, own_class: str, other_class: str):
        if slot.kind == 'text':
            context = slot.element
            container = slot.element
            insert_at = 0
        else:
            context = slot.element.getparent()
            container = context
            insert_at = container.index(slot.element) + 1

        style = self.resolver.resolve_within(context, root, base)
        leading: List[str] = []
        spans = []
        for kind, text in slot.fragments:
            if kind == _PLAIN:
                if spans:
                    spans[-1].tail = (spans[-1].tail or '') + text
                else:
                    leading.append(text)
            elif kind == _OWN:
                spans.append(self._highlight_span(own_class, text, style))
            else:
                spans.append(self._placeholder_span(other_class, preview_text(text, self.config.preview_length),
                                                    style))

        setattr(slot.element, slot.kind, ''.join(leading) or None)
        for offset, span in enumerate(spans):
            container.insert(insert_at + offset, span)

    # -------------------------------------------------------------------------
    # Span builders
    # -------------------------------------------------------------------------

    @staticmethod
    def _typography(style: StyleSnapshot) -> str:
        return style.css_declarations(properties=TYPOGRAPHY_PROPERTIES)

    def _highlight_span(self, css_class: str, text: str, style: StyleSnapshot):
        span = lxml_html.Element('span')
        span.set('class', css_class)
        declarations = self._typography(style)
        if declarations:
            span.set('style', declarations)
        span.text = text
        return span

    def _placeholder_span(self, css_class: str, label: str, style: StyleSnapshot):
        span = lxml_html.Element('span')
        span.set('class', css_class)
        declarations = self._typography(style)
        if declarations:
            span.set('style', declarations)
        marker = etree.SubElement(span, 'em')
        marker.set('style', PLACEHOLDER_PREVIEW_STYLE)
        marker.text = f'[{label}]'
        return span


class _Cursor:
    """Walks slot pieces while diff operations consume characters."""

    def __init__(self, slots: List[_Slot]):
        self.slots = slots
        self.index = 0
        self.offset = 0

    @property
    def current(self) -> _Slot:
        return self.slots[self.index]

    def consume(self, length: int, kind: str):
        remaining = length
        while remaining > 0:
            slot = self.slots[self.index]
            available = len(slot.piece) - self.offset
            if available <= 0:
                self.index += 1
                self.offset = 0
                continue
            take = min(remaining, available)
            slot.fragments.append((kind, slot.piece[self.offset:self.offset + take]))
            self.offset += take
            remaining -= take
