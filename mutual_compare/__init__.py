"""
Mutual Compare v1.0.0
=====================
Mutual HTML document comparison: both versions are annotated, each
showing its own changes plus placeholders for the other side's.

Features:
- Structural extraction of paragraphs, headings, list items, tables and images
- Multi-pass alignment (exact, positional, fuzzy, residual)
- Character-level highlighting mapped back onto the original markup
- Same-footprint placeholders for unmatched content
- Summary counts and a detailed per-unit report

Author: MutualCompare
"""

from .differ import MutualDiffer, compare, compare_async
from .extractor import StructuralExtractor, plain_text, strip_annotations
from .aligner import AlignmentEngine
from .similarity import SimilarityOracle
from .models import (
    ContentUnit,
    StyleSnapshot,
    AlignmentRecord,
    ProcessedUnit,
    DiffOperation,
    ComparisonSummary,
    ComparisonResult,
    DetailedReport,
    ReportLine,
    UnitKind,
    MatchType,
    Highlight,
    ReportStatus,
    CHANGE_SELECTORS,
    LEFT_CONTAINER_ID,
    RIGHT_CONTAINER_ID,
)

__version__ = "1.0.0"
__all__ = [
    'MutualDiffer',
    'compare',
    'compare_async',
    'StructuralExtractor',
    'plain_text',
    'strip_annotations',
    'AlignmentEngine',
    'SimilarityOracle',
    'ContentUnit',
    'StyleSnapshot',
    'AlignmentRecord',
    'ProcessedUnit',
    'DiffOperation',
    'ComparisonSummary',
    'ComparisonResult',
    'DetailedReport',
    'ReportLine',
    'UnitKind',
    'MatchType',
    'Highlight',
    'ReportStatus',
    'CHANGE_SELECTORS',
    'LEFT_CONTAINER_ID',
    'RIGHT_CONTAINER_ID',
]
