"""
Tests for Character-Diff Renderer
=================================
Tests for span injection on both sides of a modified pair, nested
markup, preview truncation and the whole-unit fallback.
"""

import pytest

from config_logging import EngineConfig
from mutual_compare.extractor import plain_text, strip_annotations
from mutual_compare.models import (
    ContentUnit, DiffOp, DiffOperation, StyleSnapshot, UnitKind,
    CLASS_ADDED, CLASS_REMOVED,
)
from mutual_compare.renderer import CharacterDiffRenderer, InlineMarks, preview_text
from mutual_compare.similarity import SimilarityOracle


def paragraph(markup, text, style=None, index=0):
    return ContentUnit(index=index, kind=UnitKind.PARAGRAPH, tag='p', text=text,
                       markup=markup, style=style or StyleSnapshot())


@pytest.fixture
def renderer() -> CharacterDiffRenderer:
    return CharacterDiffRenderer(EngineConfig())


@pytest.fixture
def oracle() -> SimilarityOracle:
    return SimilarityOracle(EngineConfig())


def render(renderer, oracle, left, right):
    return renderer.render_pair(left, right, oracle.diff(left.text, right.text))


class TestRenderPair:
    """Tests for CharacterDiffRenderer.render_pair."""

    def test_insertion(self, renderer, oracle):
        """Test added text is highlighted right and previewed left."""
        left_out, right_out = render(renderer, oracle,
                                     paragraph('<p>Hello</p>', 'Hello'),
                                     paragraph('<p>Hello there</p>', 'Hello there'))
        assert 'class="mutual-inline-added"> there</span>' in right_out
        assert 'mutual-inline-placeholder-added' in left_out
        assert '[ there]</em>' in left_out
        assert left_out.startswith('<p class="mutual-modified">Hello<span')
        assert right_out.startswith('<p class="mutual-modified">Hello<span')

    def test_deletion(self, renderer, oracle):
        """Test removed text is highlighted left and previewed right."""
        left_out, right_out = render(renderer, oracle,
                                     paragraph('<p>Hello there</p>', 'Hello there'),
                                     paragraph('<p>Hello</p>', 'Hello'))
        assert 'class="mutual-inline-removed"> there</span>' in left_out
        assert 'mutual-inline-placeholder-removed' in right_out
        assert '[ there]</em>' in right_out

    def test_nested_markup(self, renderer, oracle):
        """Test spans land inside the element holding the changed text."""
        left_out, right_out = render(renderer, oracle,
                                     paragraph('<p>A <b>big</b> deal</p>', 'A big deal'),
                                     paragraph('<p>A <b>bigger</b> deal</p>', 'A bigger deal'))
        assert ('<b>big<span class="mutual-inline-added" style="font-weight: bold">ger</span></b> deal'
                in right_out)
        assert '<b>big<span class="mutual-inline-placeholder-added" style="font-weight: bold">' in left_out
        assert '[ger]</em></span></b> deal' in left_out

    def test_typography_replayed(self, renderer, oracle):
        """Test spans carry the unit's captured typography."""
        style = StyleSnapshot(font_family='Georgia', font_size='18px', margin='4px')
        _, right_out = render(renderer, oracle,
                              paragraph('<p>Total: 10</p>', 'Total: 10', style),
                              paragraph('<p>Total: 12</p>', 'Total: 12', style))
        assert 'style="font-family: Georgia; font-size: 18px"' in right_out
        assert 'margin' not in right_out

    def test_placeholder_preview_style(self, renderer, oracle):
        """Test placeholder previews are dimmed and slightly smaller."""
        left_out, _ = render(renderer, oracle,
                             paragraph('<p>Hi</p>', 'Hi'),
                             paragraph('<p>Hi all</p>', 'Hi all'))
        assert '<em style="opacity: 0.7; font-size: 0.9em;">[ all]</em>' in left_out

    def test_preview_truncated(self, oracle):
        """Test long opposite-side text is cut to the preview length."""
        renderer = CharacterDiffRenderer(EngineConfig(preview_length=5))
        left_out, _ = render(renderer, oracle,
                             paragraph('<p>a</p>', 'a'),
                             paragraph('<p>a bcdefgh</p>', 'a bcdefgh'))
        assert '[ bcde...]' in left_out

    def test_whitespace_across_elements(self, renderer, oracle):
        """Test collapsed whitespace spanning elements maps back correctly."""
        left = paragraph('<p>Hello   <b> big</b></p>', 'Hello big')
        right = paragraph('<p>Hello   <b> bigger</b></p>', 'Hello bigger')
        left_out, right_out = render(renderer, oracle, left, right)
        assert 'ger</span></b>' in right_out
        assert plain_text(strip_annotations(right_out)) == 'Hello bigger'
        assert plain_text(strip_annotations(left_out)) == 'Hello big'

    def test_visible_text_preserved(self, renderer, oracle):
        """Test removing injected spans gives back each side's own text."""
        left = paragraph('<p>The <i>committee</i> approved the budget.</p>',
                         'The committee approved the budget.')
        right = paragraph('<p>The <i>board</i> approved the final budget.</p>',
                          'The board approved the final budget.')
        left_out, right_out = render(renderer, oracle, left, right)
        assert plain_text(strip_annotations(left_out)) == left.text
        assert plain_text(strip_annotations(right_out)) == right.text

    def test_mismatched_operations_fall_back(self, renderer):
        """Test operations not matching the markup mark the whole unit."""
        unit = paragraph('<p>Hello</p>', 'Hello')
        operations = [DiffOperation(DiffOp.EQUAL, 'Nope')]
        left_out, right_out = renderer.render_pair(unit, unit, operations)
        assert left_out == '<p class="mutual-modified">Hello</p>'
        assert right_out == '<p class="mutual-modified">Hello</p>'


class TestMarking:
    """Tests for mark_root and mark_inline."""

    def test_mark_root_keeps_classes(self, renderer):
        """Test existing classes are preserved."""
        assert renderer.mark_root('<p class="x">a</p>', CLASS_ADDED) == '<p class="x mutual-added">a</p>'

    def test_mark_root_once(self, renderer):
        """Test a class is not added twice."""
        marked = renderer.mark_root('<p class="mutual-added">a</p>', CLASS_ADDED)
        assert marked == '<p class="mutual-added">a</p>'

    def test_mark_inline_classes(self, renderer):
        """Test inline candidates are marked by ordinal."""
        markup = '<p>Hello <b>bold</b> and <img src="a.png"></p>'
        unit = paragraph(markup, 'Hello bold and')
        marked = renderer.mark_inline(markup, unit, InlineMarks(classes={1: CLASS_REMOVED}))
        assert '<img src="a.png" class="mutual-removed">' in marked
        assert '<b>bold</b>' in marked

    def test_mark_inline_skips_injected_spans(self, renderer):
        """Test ordinals ignore spans injected by the character diff."""
        markup = ('<p>Hi<span class="mutual-inline-placeholder-added"><em>[!]</em></span> '
                  '<b>x</b></p>')
        unit = paragraph(markup, 'Hi x')
        marked = renderer.mark_inline(markup, unit, InlineMarks(classes={0: CLASS_ADDED}))
        assert '<b class="mutual-added">x</b>' in marked
        assert '<em>[!]</em>' in marked

    def test_mark_inline_placeholders(self, renderer):
        """Test counterpart placeholders are appended to the block."""
        markup = '<p>Caption</p>'
        marks = InlineMarks(placeholders=['<span class="mutual-placeholder">[Image Added]</span>'])
        marked = renderer.mark_inline(markup, paragraph(markup, 'Caption'), marks)
        assert marked == '<p>Caption<span class="mutual-placeholder">[Image Added]</span></p>'

    def test_mark_inline_nothing_to_do(self, renderer):
        """Test empty marks return the markup untouched."""
        markup = '<p>  spaced   out </p>'
        assert renderer.mark_inline(markup, paragraph(markup, 'spaced out'), InlineMarks()) == markup


class TestPreviewText:
    """Tests for preview_text."""

    def test_short_text_untouched(self):
        assert preview_text('short', 10) == 'short'

    def test_exact_length_untouched(self):
        assert preview_text('12345', 5) == '12345'

    def test_long_text_truncated(self):
        assert preview_text('123456', 5) == '12345...'

    def test_none(self):
        assert preview_text(None, 5) == ''
