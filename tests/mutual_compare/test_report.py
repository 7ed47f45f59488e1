"""
Tests for Report Builder
========================
Tests for per-line status, labels, messages and the table/image lists.
"""

import pytest

from config_logging import EngineConfig
from mutual_compare.aligner import AlignmentEngine
from mutual_compare.extractor import StructuralExtractor
from mutual_compare.models import ReportStatus
from mutual_compare.report import MSG_ADDED, MSG_MODIFIED, MSG_REMOVED, ReportBuilder


@pytest.fixture
def build():
    """Extract, align and report two documents."""
    extractor = StructuralExtractor(EngineConfig())
    aligner = AlignmentEngine()
    builder = ReportBuilder()

    def _build(left_markup, right_markup):
        left = extractor.extract(left_markup)
        right = extractor.extract(right_markup)
        return builder.build(left, right, aligner.align(left, right))

    return _build


class TestReportLines:
    """Tests for report lines."""

    def test_modified_unchanged_added(self, build):
        """Test a mix of statuses with 1-based labels."""
        report = build('<p>Intro</p><p>Hello</p><p>Outro</p>',
                       '<p>Intro</p><p>Hello there</p><p>Outro</p><p>Brand new</p>')
        assert [(l.left_label, l.right_label, l.status) for l in report.lines] == [
            ('1', '1', ReportStatus.UNCHANGED),
            ('2', '2', ReportStatus.MODIFIED),
            ('3', '3', ReportStatus.UNCHANGED),
            ('', '4', ReportStatus.ADDED),
        ]
        modified = report.lines[1]
        assert modified.diff_markup == 'Hello<span class="mutual-inline-added"> there</span>'
        assert modified.format_changes == [MSG_MODIFIED]

        added = report.lines[3]
        assert added.diff_markup == '<span class="mutual-inline-added">Brand new</span>'
        assert added.format_changes == [MSG_ADDED]

    def test_removed(self, build):
        """Test a removed unit has only a left label."""
        report = build('<p>A</p><p>Gone</p>', '<p>A</p>')
        removed = report.lines[1]
        assert (removed.left_label, removed.right_label) == ('2', '')
        assert removed.status is ReportStatus.REMOVED
        assert removed.diff_markup == '<span class="mutual-inline-removed">Gone</span>'
        assert removed.format_changes == [MSG_REMOVED]

    def test_labels_count_blocks_only(self, build):
        """Test inline units do not shift the block labels."""
        report = build('<p>A <b>x</b></p><p>B</p>', '<p>A <b>x</b></p><p>B</p><p>C</p>')
        assert [(l.left_label, l.right_label) for l in report.lines] == [
            ('1', '1'), ('2', '2'), ('', '3')
        ]

    def test_labels_with_inline_on_one_side(self, build):
        """Test labels line up when only one side has inline units."""
        report = build('<p>Intro <b>bold</b></p><p>Next</p>', '<p>Intro bold</p><p>Next</p>')
        assert len(report.lines) == 2
        assert (report.lines[1].left_label, report.lines[1].right_label) == ('2', '2')

    def test_formatting_only(self, build):
        """Test a style-only change lists the changed properties."""
        report = build('<p style="color: red">X</p>', '<p style="color: blue">X</p>')
        line = report.lines[0]
        assert line.status is ReportStatus.FORMATTING_ONLY
        assert line.diff_markup == 'X'
        assert line.format_changes == ['color: red -> blue']

    def test_text_escaped(self, build):
        """Test report text is escaped."""
        report = build('<p>a &lt; b</p>', '<p>a &lt; b</p><p>x &amp; y</p>')
        assert report.lines[0].diff_markup == 'a &lt; b'
        assert report.lines[1].diff_markup == '<span class="mutual-inline-added">x &amp; y</span>'

    def test_serialized_shape(self, build):
        """Test the report dictionary keys."""
        data = build('<p>A</p>', '<p>B</p>').to_dict()
        assert set(data) == {'lines', 'tables', 'images'}
        assert set(data['lines'][0]) == {'v1', 'v2', 'status', 'diffHtml', 'formatChanges'}


class TestTablesAndImages:
    """Tests for the table and image status lists."""

    def test_table_and_inline_image(self, build):
        """Test a changed table and a removed inline image."""
        report = build(
            '<p>A</p><table><tr><td>1</td></tr></table><p>Pic <img src="a.png"></p>',
            '<p>A</p><table><tr><td>2</td></tr></table><p>Pic</p>',
        )
        assert len(report.lines) == 3
        assert report.lines[2].status is ReportStatus.MODIFIED
        assert report.tables == [{'status': 'MODIFIED', 'table': 2}]
        assert report.images == [{'status': 'REMOVED', 'index': 3}]

    def test_added_image(self, build):
        """Test a standalone added image."""
        report = build('<p>A</p>', '<p>A</p><div><img src="new.png"></div>')
        assert report.images == [{'status': 'ADDED', 'index': 2}]
        assert report.lines[1].status is ReportStatus.ADDED
