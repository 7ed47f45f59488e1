"""
Tests for Placeholder Synthesizer
=================================
Tests for placeholder shape, labels, style replay and fidelity.
"""

import pytest
from lxml import html as lxml_html

from config_logging import EngineConfig
from mutual_compare.models import ContentUnit, Highlight, StyleSnapshot, UnitKind
from mutual_compare.placeholder import PlaceholderSynthesizer


def make_unit(text, kind=UnitKind.PARAGRAPH, tag='p', media=(), **style):
    return ContentUnit(index=3, kind=kind, tag=tag, text=text, markup=f'<{tag}>{text}</{tag}>',
                       style=StyleSnapshot(**style), media=media)


def parse(markup):
    return lxml_html.fragment_fromstring(markup)


@pytest.fixture
def synthesizer() -> PlaceholderSynthesizer:
    return PlaceholderSynthesizer(EngineConfig())


class TestSynthesize:
    """Tests for PlaceholderSynthesizer.synthesize."""

    def test_removed_paragraph(self, synthesizer):
        """Test a left-only paragraph placeholder."""
        unit = make_unit('Old paragraph')
        processed = synthesizer.synthesize(unit, Highlight.PLACEHOLDER_REMOVED)
        assert processed.is_placeholder is True
        assert processed.unit is unit
        assert processed.highlight is Highlight.PLACEHOLDER_REMOVED

        element = parse(processed.output_markup)
        assert element.tag == 'p'
        assert element.get('class') == 'mutual-placeholder placeholder-removed'
        assert element.text_content() == '[Content Removed: "Old paragraph"]'
        assert 'min-height: 1.5em' in element.get('style')
        assert '#ef4444' in element.get('style')

    def test_added_heading_keeps_tag(self, synthesizer):
        """Test the placeholder reuses the source unit's tag."""
        unit = make_unit('New title', kind=UnitKind.HEADING, tag='h2', font_size='1.5em')
        element = parse(synthesizer.synthesize(unit, Highlight.PLACEHOLDER_ADDED).output_markup)
        assert element.tag == 'h2'
        assert 'placeholder-added' in element.get('class')
        assert element.get('style').startswith('font-size: 1.5em')
        assert '#22c55e' in element.get('style')

    def test_image(self, synthesizer):
        """Test an image becomes an image-shaped box."""
        unit = make_unit('', kind=UnitKind.IMAGE, tag='img', media=(('a.png', ''),), width='320px')
        element = parse(synthesizer.synthesize(unit, Highlight.PLACEHOLDER_ADDED).output_markup)
        assert element.tag == 'div'
        assert element.text_content() == '[Image Added]'
        assert 'min-height: 100px' in element.get('style')
        assert 'width: 320px' in element.get('style')

    def test_block_holding_only_an_image(self, synthesizer):
        """Test a text-less block with media is image-shaped."""
        unit = make_unit('', kind=UnitKind.GENERIC_BLOCK, tag='div', media=(('a.png', ''),))
        assert synthesizer.shape_of(unit) == 'image'

    def test_table(self, synthesizer):
        """Test tables get the table shape and a div wrapper."""
        unit = make_unit('a b', kind=UnitKind.TABLE, tag='table')
        element = parse(synthesizer.synthesize(unit, Highlight.PLACEHOLDER_REMOVED).output_markup)
        assert element.tag == 'div'
        assert element.text_content() == '[Table Removed]'
        assert 'min-height: 60px' in element.get('style')

    def test_empty_content(self, synthesizer):
        """Test empty units get a label without preview."""
        unit = make_unit('')
        element = parse(synthesizer.synthesize(unit, Highlight.PLACEHOLDER_ADDED).output_markup)
        assert element.text_content() == '[Content Added]'

    def test_preview_truncated(self):
        """Test long text is previewed to the configured length."""
        synthesizer = PlaceholderSynthesizer(EngineConfig(preview_length=10))
        unit = make_unit('A fairly long sentence about nothing')
        element = parse(synthesizer.synthesize(unit, Highlight.PLACEHOLDER_REMOVED).output_markup)
        assert element.text_content() == '[Content Removed: "A fairly l..."]'

    def test_invalid_highlight(self, synthesizer):
        """Test only placeholder highlights are accepted."""
        with pytest.raises(ValueError):
            synthesizer.synthesize(make_unit('x'), Highlight.MODIFIED)


class TestFidelity:
    """Tests for style replay and fidelity levels."""

    def test_style_replayed(self, synthesizer):
        """Test the source unit's typography and box model are replayed."""
        unit = make_unit('x', font_family='Georgia', line_height='1.8', margin='12px 0')
        style = parse(synthesizer.build_markup(unit, Highlight.PLACEHOLDER_ADDED)).get('style')
        assert 'font-family: Georgia' in style
        assert 'line-height: 1.8' in style
        assert 'margin: 12px 0' in style

    def test_style_fidelity_drops_dimensions(self):
        """Test the style fidelity level leaves out width and height."""
        synthesizer = PlaceholderSynthesizer(EngineConfig(placeholder_fidelity='style'))
        unit = make_unit('x', width='200px', height='40px', color='red')
        style = parse(synthesizer.build_markup(unit, Highlight.PLACEHOLDER_ADDED)).get('style')
        assert 'width' not in style
        assert 'height: 40px' not in style
        assert 'color: red' in style

    def test_inline_span(self, synthesizer):
        """Test inline placeholders are spans flowing with the text."""
        unit = make_unit('', kind=UnitKind.IMAGE, tag='img', media=(('a.png', ''),))
        element = parse(synthesizer.build_markup(unit, Highlight.PLACEHOLDER_REMOVED, inline=True))
        assert element.tag == 'span'
        assert 'display: inline-flex' in element.get('style')
        assert element.text_content() == '[Image Removed]'
