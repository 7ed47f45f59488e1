"""
Style Resolution v1.0.0
=======================
Computes the resolved visual style of an element from markup alone.

There is no rendering engine here, so "resolved" means a small cascade:
tag defaults, then presentational attributes, then inline ``style``
declarations, with inherited properties flowing down from ancestors.
The result is frozen into a StyleSnapshot once per unit.
"""

import re
from typing import Dict, Optional

from config_logging import ExtractionError
from .models import StyleSnapshot, STYLE_PROPERTIES

# Properties that flow from parent to child
INHERITED_PROPERTIES = (
    'font_family', 'font_size', 'font_weight', 'font_style',
    'color', 'text_align', 'line_height',
)

_BOLD = {'font_weight': 'bold'}
_ITALIC = {'font_style': 'italic'}
_MONO = {'font_family': 'monospace'}

TAG_DEFAULTS: Dict[str, Dict[str, str]] = {
    'h1': {'font_size': '2em', 'font_weight': 'bold'},
    'h2': {'font_size': '1.5em', 'font_weight': 'bold'},
    'h3': {'font_size': '1.17em', 'font_weight': 'bold'},
    'h4': {'font_size': '1em', 'font_weight': 'bold'},
    'h5': {'font_size': '0.83em', 'font_weight': 'bold'},
    'h6': {'font_size': '0.67em', 'font_weight': 'bold'},
    'b': _BOLD,
    'strong': _BOLD,
    'th': {'font_weight': 'bold', 'text_align': 'center'},
    'i': _ITALIC,
    'em': _ITALIC,
    'cite': _ITALIC,
    'var': _ITALIC,
    'dfn': _ITALIC,
    'pre': _MONO,
    'code': _MONO,
    'kbd': _MONO,
    'samp': _MONO,
    'tt': _MONO,
    'small': {'font_size': 'smaller'},
    'big': {'font_size': 'larger'},
    'mark': {'background_color': 'yellow'},
    'center': {'text_align': 'center'},
}

# <font size="1..7"> keywords
FONT_SIZE_KEYWORDS = {
    '1': 'x-small', '2': 'small', '3': 'medium', '4': 'large',
    '5': 'x-large', '6': 'xx-large', '7': 'xxx-large',
}

# Tags where align="..." means floating, not text alignment
_FLOAT_ALIGN_TAGS = {'img', 'table'}

# CSS property name -> snapshot attribute
_CSS_TO_ATTR = {css: attr for attr, css in STYLE_PROPERTIES.items()}
_CSS_TO_ATTR['background'] = 'background_color'

# Split on semicolons that are not inside parentheses
_DECLARATION_SPLIT = re.compile(r';(?![^(]*\))')
_IMPORTANT = re.compile(r'\s*!\s*important\s*$', re.IGNORECASE)


def parse_inline_style(style: Optional[str]) -> Dict[str, str]:
    """
    Parse a ``style`` attribute into snapshot attribute values.

    Unknown properties are ignored.

    Args:
        style: Raw style attribute text

    Returns:
        Dict of snapshot attribute name -> CSS value
    """
    values: Dict[str, str] = {}
    if not style:
        return values
    for declaration in _DECLARATION_SPLIT.split(style):
        if ':' not in declaration:
            continue
        name, _, value = declaration.partition(':')
        attr = _CSS_TO_ATTR.get(name.strip().lower())
        value = _IMPORTANT.sub('', value).strip()
        if attr and value:
            values[attr] = value
    return values


def _length(value: str) -> str:
    value = value.strip()
    return f"{value}px" if value.isdigit() else value


def _tag(element) -> str:
    tag = element.tag
    return tag.lower() if isinstance(tag, str) else ''


def declared_style(element) -> Dict[str, str]:
    """Style values an element sets itself (defaults, attributes, inline)."""
    tag = _tag(element)
    values: Dict[str, str] = dict(TAG_DEFAULTS.get(tag, {}))

    align = element.get('align')
    if align and tag not in _FLOAT_ALIGN_TAGS:
        values['text_align'] = align.strip().lower()
    for attr in ('width', 'height'):
        raw = element.get(attr)
        if raw:
            values[attr] = _length(raw)
    bgcolor = element.get('bgcolor')
    if bgcolor:
        values['background_color'] = bgcolor.strip()
    border = element.get('border')
    if border and border.strip().isdigit():
        values['border'] = f"{border.strip()}px solid" if border.strip() != '0' else 'none'

    if tag == 'font':
        if element.get('color'):
            values['color'] = element.get('color').strip()
        if element.get('face'):
            values['font_family'] = element.get('face').strip()
        size = (element.get('size') or '').strip()
        if size in FONT_SIZE_KEYWORDS:
            values['font_size'] = FONT_SIZE_KEYWORDS[size]

    values.update(parse_inline_style(element.get('style')))
    return values


class StyleResolver:
    """Resolves element styles into StyleSnapshot values."""

    def capture(self, element, unit_index: Optional[int] = None) -> StyleSnapshot:
        """
        Capture the resolved style of an element inside its full document.

        Raises:
            ExtractionError: If the element's style cannot be resolved
        """
        try:
            values: Dict[str, str] = {}
            for ancestor in reversed(list(element.iterancestors())):
                declared = declared_style(ancestor)
                for name in INHERITED_PROPERTIES:
                    if name in declared:
                        values[name] = declared[name]
            values.update(declared_style(element))
            return StyleSnapshot(**values)
        except Exception as e:
            raise ExtractionError(f"Style capture failed: {e}", unit_index=unit_index,
                                  tag=_tag(element)) from e

    def resolve_within(self, element, root, base: StyleSnapshot) -> StyleSnapshot:
        """
        Resolve the style of ``element`` nested under a unit's ``root``.

        The unit's captured snapshot stands in for everything above and
        including the root, so nothing outside the unit is consulted.
        """
        values = {name: getattr(base, name) for name in INHERITED_PROPERTIES
                  if getattr(base, name) is not None}
        if element is root:
            return StyleSnapshot(**values)

        chain = []
        current = element
        while current is not None and current is not root:
            chain.append(current)
            current = current.getparent()
        for node in reversed(chain):
            declared = declared_style(node)
            for name in INHERITED_PROPERTIES:
                if name in declared:
                    values[name] = declared[name]
        return StyleSnapshot(**values)
