"""
Placeholder Synthesizer v1.0.0
==============================
Same-footprint stand-ins for units that exist on one side only.

A placeholder replays the source unit's captured style snapshot, so it
occupies roughly the space the unit occupies in its own document, and
carries a short label instead of content. It never looks at the opposite
document.
"""

from typing import Optional

from lxml import html as lxml_html

from config_logging import EngineConfig, get_logger
from .extractor import serialize
from .models import (
    ContentUnit, Highlight, ProcessedUnit, UnitKind,
    CLASS_PLACEHOLDER, CLASS_PLACEHOLDER_ADDED, CLASS_PLACEHOLDER_REMOVED,
)
from .renderer import preview_text

logger = get_logger('mutual_compare.placeholder')

# Tags that cannot hold a label are rendered as a div
_REPLACED_TAGS = frozenset({'img', 'table', 'tr', 'td', 'th'})

_TABLE_KINDS = frozenset({UnitKind.TABLE, UnitKind.TABLE_ROW, UnitKind.TABLE_CELL})

# Placeholder palette: (background, border, label color)
_PALETTE = {
    Highlight.PLACEHOLDER_ADDED: ('#f0fdf4', '#22c55e', '#166534'),
    Highlight.PLACEHOLDER_REMOVED: ('#fef2f2', '#ef4444', '#991b1b'),
}

_BOX_STYLE = {
    'image': ('min-height: 100px; border: 2px dashed {border}; border-radius: 8px; '
              'display: flex; align-items: center; justify-content: center; '
              'background-color: {background}'),
    'table': ('min-height: 60px; border: 2px dashed {border}; border-radius: 8px; '
              'display: flex; align-items: center; justify-content: center; '
              'background-color: {background}'),
    'text': ('min-height: 1.5em; padding: 8px 12px; border: 2px dashed {border}; '
             'border-radius: 6px; background-color: {background}'),
}

_LABEL_STYLE = {
    'image': 'color: {color}; font-style: italic; font-size: 14px',
    'table': 'color: {color}; font-style: italic; font-size: 14px',
    'text': 'color: {color}; font-style: italic; opacity: 0.8',
}


class PlaceholderSynthesizer:
    """Builds placeholder markup for unmatched units."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def synthesize(self, unit: ContentUnit, highlight: Highlight, inline: bool = False) -> ProcessedUnit:
        """
        Build the placeholder shown opposite an unmatched unit.

        Args:
            unit: The unmatched source unit
            highlight: PLACEHOLDER_ADDED (unit is right-only, shown on the left)
                       or PLACEHOLDER_REMOVED (unit is left-only, shown on the right)
            inline: Build a span for use inside the counterpart block

        Returns:
            ProcessedUnit flagged as a placeholder for the source unit
        """
        if highlight not in _PALETTE:
            raise ValueError(f"Not a placeholder highlight: {highlight}")
        return ProcessedUnit(
            unit=unit,
            highlight=highlight,
            rendered_markup=self.build_markup(unit, highlight, inline),
            is_placeholder=True,
        )

    def build_markup(self, unit: ContentUnit, highlight: Highlight, inline: bool = False) -> str:
        shape = self.shape_of(unit)
        background, border, color = _PALETTE[highlight]
        added = highlight is Highlight.PLACEHOLDER_ADDED

        if inline:
            tag = 'span'
        elif unit.tag in _REPLACED_TAGS or not unit.tag:
            tag = 'div'
        else:
            tag = unit.tag
        element = lxml_html.Element(tag)
        element.set('class', ' '.join((
            CLASS_PLACEHOLDER,
            CLASS_PLACEHOLDER_ADDED if added else CLASS_PLACEHOLDER_REMOVED,
        )))

        include_dimensions = self.config.placeholder_fidelity == 'dimensions'
        declarations = [d for d in (
            unit.style.css_declarations(include_dimensions=include_dimensions),
            _BOX_STYLE[shape].format(border=border, background=background),
        ) if d]
        if inline:
            declarations.append('display: inline-flex; vertical-align: middle')
        element.set('style', '; '.join(declarations))

        label = lxml_html.Element('span')
        label.set('style', _LABEL_STYLE[shape].format(color=color))
        label.text = self.label_for(unit, shape, added)
        element.append(label)

        logger.debug(f"Placeholder for unit {unit.index}", unit_index=unit.index,
                     shape=shape, highlight=highlight.value)
        return serialize(element)

    @staticmethod
    def shape_of(unit: ContentUnit) -> str:
        """'image', 'table' or 'text'."""
        if unit.kind is UnitKind.IMAGE or (not unit.text and unit.media):
            return 'image'
        if unit.kind in _TABLE_KINDS:
            return 'table'
        return 'text'

    def label_for(self, unit: ContentUnit, shape: str, added: bool) -> str:
        action = 'Added' if added else 'Removed'
        if shape == 'image':
            return f'[Image {action}]'
        if shape == 'table':
            return f'[Table {action}]'
        if not unit.text:
            return f'[Content {action}]'
        return f'[Content {action}: "{preview_text(unit.text, self.config.preview_length)}"]'
