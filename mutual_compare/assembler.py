"""
Assembler v1.0.0
================
Turns alignment records into processed units for both sides and writes
them back into each document's tree.

Every top-level record yields exactly one processed unit per side, so the
two outputs always hold the same number of top-level units. Inline records
(images and emphasis runs nested in blocks) never add output units; they
annotate their parent's rendered markup instead.
"""

from collections import defaultdict
from dataclasses import dataclass, field, replace
from typing import List, Dict, Tuple, Optional, Sequence

from lxml import etree
from lxml import html as lxml_html

from config_logging import EngineConfig, DiffError, get_logger
from .comparator import PairwiseComparator
from .extractor import ExtractedDocument, inner_html
from .models import (
    AlignmentRecord, ComparisonSummary, ContentUnit, Highlight, MatchType,
    ProcessedUnit, UnitKind,
    CLASS_ADDED, CLASS_REMOVED, CLASS_MODIFIED, CLASS_FORMAT_CHANGED,
)
from .placeholder import PlaceholderSynthesizer
from .renderer import CharacterDiffRenderer, InlineMarks, parse_unit
from .similarity import SimilarityOracle

logger = get_logger('mutual_compare.assembler')

_BLOCK_CLASS = {
    Highlight.ADDED: CLASS_ADDED,
    Highlight.REMOVED: CLASS_REMOVED,
    Highlight.MODIFIED: CLASS_MODIFIED,
    Highlight.FORMAT_CHANGED: CLASS_FORMAT_CHANGED,
}


def is_inline_record(record: AlignmentRecord, left: Sequence[ContentUnit],
                     right: Sequence[ContentUnit]) -> bool:
    """True when the record pairs inline units (never mixed with blocks)."""
    if record.left_index is not None:
        return left[record.left_index].is_inline
    return right[record.right_index].is_inline


@dataclass
class Assembly:
    """Processed units for both sides plus the rebuilt documents."""
    left_processed: List[ProcessedUnit] = field(default_factory=list)
    right_processed: List[ProcessedUnit] = field(default_factory=list)
    summary: ComparisonSummary = field(default_factory=ComparisonSummary)
    left_output: str = ""
    right_output: str = ""


class Assembler:
    """Builds both annotated outputs from an alignment."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        oracle: Optional[SimilarityOracle] = None,
        comparator: Optional[PairwiseComparator] = None,
        renderer: Optional[CharacterDiffRenderer] = None,
        synthesizer: Optional[PlaceholderSynthesizer] = None
    ):
        self.config = config or EngineConfig()
        self.oracle = oracle or SimilarityOracle(self.config)
        self.comparator = comparator or PairwiseComparator()
        self.renderer = renderer or CharacterDiffRenderer(self.config)
        self.synthesizer = synthesizer or PlaceholderSynthesizer(self.config)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def assemble(
        self,
        left_doc: ExtractedDocument,
        right_doc: ExtractedDocument,
        records: List[AlignmentRecord]
    ) -> Assembly:
        """
        Process every record and write the results into both documents.

        The trees inside ``left_doc`` and ``right_doc`` are modified in place;
        they belong to this comparison only.
        """
        left_processed, right_processed, summary = self.process(
            left_doc.units, right_doc.units, records
        )
        return Assembly(
            left_processed=left_processed,
            right_processed=right_processed,
            summary=summary,
            left_output=self.render_document(left_doc, left_processed),
            right_output=self.render_document(right_doc, right_processed),
        )

    def process(
        self,
        left: Sequence[ContentUnit],
        right: Sequence[ContentUnit],
        records: List[AlignmentRecord]
    ) -> Tuple[List[ProcessedUnit], List[ProcessedUnit], ComparisonSummary]:
        """
        Build one processed unit per side for each top-level record.

        Args:
            left: Units of the original document
            right: Units of the modified document
            records: Ordered alignment records

        Returns:
            (left processed units, right processed units, summary)
        """
        summary = ComparisonSummary()
        top_records = [r for r in records if not is_inline_record(r, left, right)]
        inline_records = [r for r in records if is_inline_record(r, left, right)]

        parent_pairs: Dict[int, int] = {
            r.left_index: r.right_index for r in top_records if r.match_type is MatchType.MATCH
        }
        left_marks, right_marks = self._inline_marks(left, right, inline_records, parent_pairs)

        left_processed: List[ProcessedUnit] = []
        right_processed: List[ProcessedUnit] = []
        for record in top_records:
            if record.match_type is MatchType.MATCH:
                left_item, right_item = self._process_match(left[record.left_index], right[record.right_index])
                if left_item.highlight is not Highlight.NONE:
                    summary.modifications += 1
            elif record.match_type is MatchType.LEFT_ONLY:
                unit = left[record.left_index]
                left_item = self._marked(unit, Highlight.REMOVED)
                right_item = self.synthesizer.synthesize(unit, Highlight.PLACEHOLDER_REMOVED)
                summary.deletions += 1
            else:
                unit = right[record.right_index]
                left_item = self.synthesizer.synthesize(unit, Highlight.PLACEHOLDER_ADDED)
                right_item = self._marked(unit, Highlight.ADDED)
                summary.additions += 1

            left_processed.append(self._apply_marks(left_item, left_marks))
            right_processed.append(self._apply_marks(right_item, right_marks))

        logger.debug(f"Assembled {len(left_processed)} units per side", **summary.to_dict())
        return left_processed, right_processed, summary

    @staticmethod
    def render(processed: Sequence[ProcessedUnit]) -> str:
        """Concatenate processed units' markup in order."""
        return ''.join(item.output_markup for item in processed)

    def render_document(self, document: ExtractedDocument, processed: Sequence[ProcessedUnit]) -> str:
        """
        Write processed units back into the document tree.

        Rendered units replace their source element (keeping its tail), and
        placeholders are inserted after the previous unit of the same side,
        so wrappers such as lists and styled containers survive.
        """
        root = document.root
        host = root
        if any(element is root for element in document.elements):
            # The whole fragment is one unit; give it a parent to be replaced in
            host = lxml_html.Element('div')
            host.append(root)

        changed = False
        anchor = None
        pending = []
        for item in processed:
            if item.is_placeholder:
                node = parse_unit(item.output_markup)
                if anchor is None:
                    pending.append(node)
                else:
                    anchor.addnext(node)
                    anchor = node
                changed = True
                continue

            element = document.elements[item.unit.index]
            node = element
            if item.rendered_markup is not None:
                node = parse_unit(item.rendered_markup)
                node.tail = element.tail
                element.getparent().replace(element, node)
                changed = True
            for placeholder in pending:
                node.addprevious(placeholder)
            pending = []
            anchor = node

        for placeholder in pending:
            host.append(placeholder)

        if host is not root and changed:
            return inner_html(host)
        return inner_html(root)

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def _process_match(self, left: ContentUnit, right: ContentUnit) -> Tuple[ProcessedUnit, ProcessedUnit]:
        highlight = self.comparator.classify(left, right)
        if highlight is Highlight.NONE:
            return ProcessedUnit(left), ProcessedUnit(right)
        if highlight is Highlight.FORMAT_CHANGED or not self.comparator.needs_character_diff(left, right):
            return self._marked(left, highlight), self._marked(right, highlight)

        try:
            operations = self.oracle.diff(left.text, right.text)
        except DiffError as e:
            logger.warning(f"Character diff failed for pair ({left.index}, {right.index}); "
                           f"highlighting whole units: {e.message}")
            return self._marked(left, highlight), self._marked(right, highlight)

        left_markup, right_markup = self.renderer.render_pair(left, right, operations)
        return (
            ProcessedUnit(left, highlight, rendered_markup=left_markup),
            ProcessedUnit(right, highlight, rendered_markup=right_markup),
        )

    def _marked(self, unit: ContentUnit, highlight: Highlight) -> ProcessedUnit:
        """Unit with its block class added to the root element."""
        try:
            markup = self.renderer.mark_root(unit.markup, _BLOCK_CLASS[highlight])
        except (etree.LxmlError, ValueError) as e:
            logger.warning(f"Could not mark unit {unit.index}: {e}", unit_index=unit.index)
            markup = None
        return ProcessedUnit(unit, highlight, rendered_markup=markup)

    # -------------------------------------------------------------------------
    # Inline units
    # -------------------------------------------------------------------------

    def _inline_marks(
        self,
        left: Sequence[ContentUnit],
        right: Sequence[ContentUnit],
        inline_records: List[AlignmentRecord],
        parent_pairs: Dict[int, int]
    ) -> Tuple[Dict[int, InlineMarks], Dict[int, InlineMarks]]:
        """
        Collect inline annotations per parent unit on each side.

        Inline units are only marked inside parents that are matched; a
        removed or added parent is already highlighted as a whole. Images
        missing on one side get an inline placeholder in the counterpart
        parent.
        """
        right_parent_pairs = {j: i for i, j in parent_pairs.items()}
        left_marks: Dict[int, InlineMarks] = defaultdict(InlineMarks)
        right_marks: Dict[int, InlineMarks] = defaultdict(InlineMarks)

        for record in inline_records:
            if record.match_type is MatchType.MATCH:
                l_unit, r_unit = left[record.left_index], right[record.right_index]
                highlight = self.comparator.classify(l_unit, r_unit)
                if highlight is Highlight.NONE:
                    continue
                if l_unit.parent in parent_pairs:
                    left_marks[l_unit.parent].classes[l_unit.ordinal] = _BLOCK_CLASS[highlight]
                if r_unit.parent in right_parent_pairs:
                    right_marks[r_unit.parent].classes[r_unit.ordinal] = _BLOCK_CLASS[highlight]

            elif record.match_type is MatchType.LEFT_ONLY:
                unit = left[record.left_index]
                if unit.parent not in parent_pairs:
                    continue
                left_marks[unit.parent].classes[unit.ordinal] = CLASS_REMOVED
                if unit.kind is UnitKind.IMAGE:
                    right_marks[parent_pairs[unit.parent]].placeholders.append(
                        self.synthesizer.build_markup(unit, Highlight.PLACEHOLDER_REMOVED, inline=True)
                    )

            else:
                unit = right[record.right_index]
                if unit.parent not in right_parent_pairs:
                    continue
                right_marks[unit.parent].classes[unit.ordinal] = CLASS_ADDED
                if unit.kind is UnitKind.IMAGE:
                    left_marks[right_parent_pairs[unit.parent]].placeholders.append(
                        self.synthesizer.build_markup(unit, Highlight.PLACEHOLDER_ADDED, inline=True)
                    )

        return left_marks, right_marks

    def _apply_marks(self, item: ProcessedUnit, marks: Dict[int, InlineMarks]) -> ProcessedUnit:
        if item.is_placeholder or item.unit.index not in marks:
            return item
        markup = self.renderer.mark_inline(item.output_markup, item.unit, marks[item.unit.index])
        if markup == item.output_markup:
            return item
        return replace(item, rendered_markup=markup)
