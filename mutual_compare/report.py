"""
Report Builder v1.0.0
=====================
Tabular change log built from the alignment, independent of the
annotated markup.
"""

import html
from typing import Dict, List, Optional, Sequence

from config_logging import DiffError, get_logger
from .assembler import is_inline_record
from .comparator import PairwiseComparator
from .models import (
    AlignmentRecord, ContentUnit, DetailedReport, Highlight, MatchType,
    ReportLine, ReportStatus, UnitKind,
    CLASS_INLINE_ADDED, CLASS_INLINE_REMOVED,
)
from .similarity import SimilarityOracle

logger = get_logger('mutual_compare.report')

MSG_MODIFIED = "Content modified with mutual highlighting"
MSG_REMOVED = "Element removed - placeholder shown in modified document"
MSG_ADDED = "Element added - placeholder shown in original document"


class ReportBuilder:
    """Builds the detailed report for one comparison."""

    def __init__(
        self,
        oracle: Optional[SimilarityOracle] = None,
        comparator: Optional[PairwiseComparator] = None
    ):
        self.oracle = oracle or SimilarityOracle()
        self.comparator = comparator or PairwiseComparator()

    def build(
        self,
        left: Sequence[ContentUnit],
        right: Sequence[ContentUnit],
        records: List[AlignmentRecord]
    ) -> DetailedReport:
        """
        Build the detailed report.

        Args:
            left: Units of the original document
            right: Units of the modified document
            records: Ordered alignment records

        Returns:
            DetailedReport with one line per top-level record and the
            table/image status lists (inline images included)
        """
        report = DetailedReport()
        left_labels = self._block_labels(left)
        right_labels = self._block_labels(right)
        line_number = 0
        for record in records:
            left_unit = left[record.left_index] if record.left_index is not None else None
            right_unit = right[record.right_index] if record.right_index is not None else None
            status = self._status(left_unit, right_unit)

            if not is_inline_record(record, left, right):
                line_number += 1
                left_label = left_labels[left_unit.index] if left_unit is not None else ""
                right_label = right_labels[right_unit.index] if right_unit is not None else ""
                report.lines.append(self._line(left_unit, right_unit, status, left_label, right_label))

            # Inline units report the line of their enclosing block
            position = max(line_number, 1)
            kinds = {u.kind for u in (left_unit, right_unit) if u is not None}
            if UnitKind.TABLE in kinds:
                report.tables.append({'status': status.value, 'table': position})
            if UnitKind.IMAGE in kinds:
                report.images.append({'status': status.value, 'index': position})

        logger.debug(f"Report: {len(report.lines)} lines, {len(report.tables)} tables, "
                     f"{len(report.images)} images")
        return report

    def _status(self, left: Optional[ContentUnit], right: Optional[ContentUnit]) -> ReportStatus:
        if left is None:
            return ReportStatus.ADDED
        if right is None:
            return ReportStatus.REMOVED
        highlight = self.comparator.classify(left, right)
        if highlight is Highlight.NONE:
            return ReportStatus.UNCHANGED
        if highlight is Highlight.FORMAT_CHANGED:
            return ReportStatus.FORMATTING_ONLY
        return ReportStatus.MODIFIED

    @staticmethod
    def _block_labels(units: Sequence[ContentUnit]) -> Dict[int, str]:
        """1-based position of each top-level unit among the top-level units."""
        blocks = (unit for unit in units if not unit.is_inline)
        return {unit.index: str(position) for position, unit in enumerate(blocks, start=1)}

    def _line(
        self,
        left: Optional[ContentUnit],
        right: Optional[ContentUnit],
        status: ReportStatus,
        left_label: str,
        right_label: str
    ) -> ReportLine:
        if status is ReportStatus.ADDED:
            markup = f'<span class="{CLASS_INLINE_ADDED}">{html.escape(right.text)}</span>'
            return ReportLine(left_label, right_label, status, markup, [MSG_ADDED])
        if status is ReportStatus.REMOVED:
            markup = f'<span class="{CLASS_INLINE_REMOVED}">{html.escape(left.text)}</span>'
            return ReportLine(left_label, right_label, status, markup, [MSG_REMOVED])
        if status is ReportStatus.UNCHANGED:
            return ReportLine(left_label, right_label, status, html.escape(left.text), [])
        if status is ReportStatus.FORMATTING_ONLY:
            return ReportLine(left_label, right_label, status, html.escape(left.text),
                              self.comparator.format_changes(left, right))

        try:
            markup = self.oracle.inline_diff_markup(left.text, right.text)
        except DiffError as e:
            logger.warning(f"Report diff failed for line {left_label}/{right_label}: {e.message}")
            markup = html.escape(right.text)
        return ReportLine(left_label, right_label, status, markup,
                          [MSG_MODIFIED] + self.comparator.format_changes(left, right))
