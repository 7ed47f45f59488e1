"""
Mutual Differ v1.0.0
====================
Entry point: compares two HTML documents and annotates both.

Pipeline, strictly in this order with no backtracking:
Extract -> Align -> Compare -> Render/Synthesize -> Assemble.

Any failure falls back to returning both inputs verbatim with a zero
summary; the host never sees an exception from ``compare``.
"""

import asyncio
from typing import Any, Optional

from config_logging import EngineConfig, StructuredLogger, get_config, get_logger, fail_soft
from .aligner import AlignmentEngine
from .assembler import Assembler
from .comparator import PairwiseComparator
from .extractor import StructuralExtractor, content_fingerprint
from .models import ComparisonResult, ComparisonSummary, DetailedReport
from .placeholder import PlaceholderSynthesizer
from .renderer import CharacterDiffRenderer
from .report import ReportBuilder
from .similarity import SimilarityOracle

logger = get_logger('mutual_compare.differ')


def _verbatim(markup: Any) -> str:
    return markup if isinstance(markup, str) else ""


def _fallback_result(differ: 'MutualDiffer', left_markup: Any, right_markup: Any,
                     error: Exception) -> ComparisonResult:
    """Both originals unchanged, zero summary, empty report."""
    return ComparisonResult(
        left_output=_verbatim(left_markup),
        right_output=_verbatim(right_markup),
        summary=ComparisonSummary(),
        detailed_report=DetailedReport(),
        error=f"{type(error).__name__}: {error}",
    )


class MutualDiffer:
    """
    Mutual HTML comparison engine for one configuration.

    Holds no per-comparison state, so one instance may serve concurrent
    calls.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize the differ.

        Args:
            config: Engine configuration (defaults to the global config)
        """
        self.config = config or get_config()
        self.oracle = SimilarityOracle(self.config)
        self.comparator = PairwiseComparator()
        self.extractor = StructuralExtractor(self.config)
        self.aligner = AlignmentEngine(
            oracle=self.oracle,
            similarity_threshold=self.config.similarity_threshold,
            pass_order=self.config.pass_order,
        )
        self.assembler = Assembler(
            config=self.config,
            oracle=self.oracle,
            comparator=self.comparator,
            renderer=CharacterDiffRenderer(self.config),
            synthesizer=PlaceholderSynthesizer(self.config),
        )
        self.reporter = ReportBuilder(oracle=self.oracle, comparator=self.comparator)

    @fail_soft(_fallback_result, logger=logger)
    def compare(self, left_markup: str, right_markup: str) -> ComparisonResult:
        """
        Compare two documents.

        Args:
            left_markup: Original document (HTML fragment or document)
            right_markup: Modified document

        Returns:
            ComparisonResult with both annotated outputs, summary and report
        """
        StructuredLogger.new_correlation_id()

        with logger.log_operation('compare', profile=self.config.profile):
            if self.config.fast_path and content_fingerprint(left_markup) == content_fingerprint(right_markup):
                logger.debug("Documents have identical content; skipping alignment")
                return ComparisonResult(left_output=left_markup, right_output=right_markup)

            left_doc = self.extractor.extract_document(left_markup, side='left')
            right_doc = self.extractor.extract_document(right_markup, side='right')
            logger.debug(f"Units: left={len(left_doc.units)}, right={len(right_doc.units)}")

            records = self.aligner.align(left_doc.units, right_doc.units)
            report = self.reporter.build(left_doc.units, right_doc.units, records)
            assembly = self.assembler.assemble(left_doc, right_doc, records)

            logger.info(f"Comparison complete: {assembly.summary.additions} added, "
                        f"{assembly.summary.deletions} removed, "
                        f"{assembly.summary.modifications} modified")
            return ComparisonResult(
                left_output=assembly.left_output,
                right_output=assembly.right_output,
                summary=assembly.summary,
                detailed_report=report,
                alignment=records,
            )


def compare(left_markup: str, right_markup: str, config: Optional[EngineConfig] = None) -> ComparisonResult:
    """Compare two documents with a one-off differ."""
    return MutualDiffer(config).compare(left_markup, right_markup)


async def compare_async(left_markup: str, right_markup: str,
                        config: Optional[EngineConfig] = None) -> ComparisonResult:
    """
    Run ``compare`` in the event loop's default executor.

    There is no cancellation: a caller that stops waiting simply discards
    the eventual result.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, compare, left_markup, right_markup, config)
