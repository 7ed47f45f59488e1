"""
Mutual Compare Models v1.0.0
============================
Data classes for content units, alignment records, and comparison results.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import List, Dict, Optional, Any, Tuple


# =============================================================================
# HIGHLIGHT CLASS NAMES
# =============================================================================

CLASS_ADDED = 'mutual-added'
CLASS_REMOVED = 'mutual-removed'
CLASS_MODIFIED = 'mutual-modified'
CLASS_FORMAT_CHANGED = 'mutual-format-changed'
CLASS_PLACEHOLDER = 'mutual-placeholder'

CLASS_PLACEHOLDER_ADDED = 'placeholder-added'
CLASS_PLACEHOLDER_REMOVED = 'placeholder-removed'

CLASS_INLINE_ADDED = 'mutual-inline-added'
CLASS_INLINE_REMOVED = 'mutual-inline-removed'
CLASS_INLINE_PLACEHOLDER_ADDED = 'mutual-inline-placeholder-added'
CLASS_INLINE_PLACEHOLDER_REMOVED = 'mutual-inline-placeholder-removed'

HIGHLIGHT_CLASSES = (
    CLASS_ADDED,
    CLASS_REMOVED,
    CLASS_MODIFIED,
    CLASS_FORMAT_CHANGED,
    CLASS_PLACEHOLDER,
)

INLINE_CLASSES = (
    CLASS_INLINE_ADDED,
    CLASS_INLINE_REMOVED,
    CLASS_INLINE_PLACEHOLDER_ADDED,
    CLASS_INLINE_PLACEHOLDER_REMOVED,
)

# Selectors a navigation panel scans for to build its change index
CHANGE_SELECTORS = tuple(f'.{name}' for name in HIGHLIGHT_CLASSES + INLINE_CLASSES)

# Scroll container ids used by the two rendering surfaces
LEFT_CONTAINER_ID = 'left-document-container'
RIGHT_CONTAINER_ID = 'right-document-container'


# =============================================================================
# ENUMS
# =============================================================================

class UnitKind(Enum):
    """Structural kinds a content unit can have."""
    PARAGRAPH = "paragraph"
    HEADING = "heading"             # level carried on the unit
    LIST_ITEM = "list-item"
    TABLE = "table"
    TABLE_ROW = "table-row"
    TABLE_CELL = "table-cell"
    IMAGE = "image"
    GENERIC_BLOCK = "generic-block"
    EMPHASIS = "emphasis"           # short inline run nested in a block


# Compared as whole units only, never character-diffed
WHOLE_UNIT_KINDS = frozenset({
    UnitKind.TABLE, UnitKind.TABLE_ROW, UnitKind.TABLE_CELL, UnitKind.IMAGE
})


class MatchType(Enum):
    """How an alignment record pairs the two documents."""
    MATCH = "match"
    LEFT_ONLY = "leftOnly"
    RIGHT_ONLY = "rightOnly"


class Highlight(Enum):
    """Annotation applied to a processed unit."""
    NONE = "none"
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    FORMAT_CHANGED = "format-changed"
    PLACEHOLDER_ADDED = "placeholder-added"
    PLACEHOLDER_REMOVED = "placeholder-removed"


class DiffOp(Enum):
    """Character diff operation."""
    EQUAL = "equal"
    INSERT = "insert"
    DELETE = "delete"


class ReportStatus(Enum):
    """Per-line status in the detailed report."""
    UNCHANGED = "UNCHANGED"
    MODIFIED = "MODIFIED"
    FORMATTING_ONLY = "FORMATTING-ONLY"
    ADDED = "ADDED"
    REMOVED = "REMOVED"


# =============================================================================
# STYLE SNAPSHOT
# =============================================================================

# Attribute name -> CSS property name
STYLE_PROPERTIES = {
    'font_family': 'font-family',
    'font_size': 'font-size',
    'font_weight': 'font-weight',
    'font_style': 'font-style',
    'color': 'color',
    'background_color': 'background-color',
    'text_align': 'text-align',
    'line_height': 'line-height',
    'margin': 'margin',
    'padding': 'padding',
    'border': 'border',
    'width': 'width',
    'height': 'height',
}

KEY_STYLE_PROPERTIES = (
    'font_family', 'font_size', 'font_weight', 'font_style', 'color', 'text_align'
)

TYPOGRAPHY_PROPERTIES = (
    'font_family', 'font_size', 'font_weight', 'font_style', 'color', 'line_height'
)

DIMENSION_PROPERTIES = ('width', 'height')

# Values that add nothing when replayed as inline CSS
NEUTRAL_STYLE_VALUES = ('', 'auto', 'normal')


@dataclass(frozen=True)
class StyleSnapshot:
    """
    Resolved visual properties of a unit, captured once at extraction.

    Values are CSS value strings, or None when nothing set the property.
    """
    font_family: Optional[str] = None
    font_size: Optional[str] = None
    font_weight: Optional[str] = None
    font_style: Optional[str] = None
    color: Optional[str] = None
    background_color: Optional[str] = None
    text_align: Optional[str] = None
    line_height: Optional[str] = None
    margin: Optional[str] = None
    padding: Optional[str] = None
    border: Optional[str] = None
    width: Optional[str] = None
    height: Optional[str] = None

    def key_properties(self) -> Dict[str, Optional[str]]:
        """Properties that decide whether two units look the same."""
        return {name: getattr(self, name) for name in KEY_STYLE_PROPERTIES}

    def differences(self, other: 'StyleSnapshot') -> List[str]:
        """Human-readable key-property changes from self to other."""
        changes = []
        for name in KEY_STYLE_PROPERTIES:
            before = getattr(self, name)
            after = getattr(other, name)
            if before != after:
                changes.append(f"{STYLE_PROPERTIES[name]}: {before or 'default'} -> {after or 'default'}")
        return changes

    def css_declarations(
        self,
        include_dimensions: bool = True,
        properties: Optional[Tuple[str, ...]] = None
    ) -> str:
        """
        Render the snapshot as an inline style string.

        Args:
            include_dimensions: Whether width/height are replayed
            properties: Restrict output to these attribute names

        Returns:
            ``"prop: value; prop: value"`` (empty string if nothing set)
        """
        names = properties or tuple(STYLE_PROPERTIES)
        parts = []
        for name in names:
            if not include_dimensions and name in DIMENSION_PROPERTIES:
                continue
            value = getattr(self, name)
            if value is None or value.strip().lower() in NEUTRAL_STYLE_VALUES:
                continue
            parts.append(f"{STYLE_PROPERTIES[name]}: {value}")
        return '; '.join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


# =============================================================================
# UNITS AND RECORDS
# =============================================================================

@dataclass(frozen=True)
class ContentUnit:
    """
    The atomic comparable item extracted from one document.

    Attributes:
        index: Position within its source document's unit sequence
        kind: Structural kind
        tag: Source element tag name
        text: Whitespace-collapsed, trimmed visible text
        markup: Original sub-markup, retained verbatim for re-assembly
        style: Style snapshot captured at extraction time
        level: Heading level (0 for non-headings)
        media: (src, alt) of the unit's own image or its descendant images
        parent: Index of the containing block unit for inline units
        ordinal: Position of an inline unit among its parent's inline candidates
    """
    index: int
    kind: UnitKind
    tag: str
    text: str
    markup: str
    style: StyleSnapshot = field(default_factory=StyleSnapshot)
    level: int = 0
    media: Tuple[Tuple[str, str], ...] = ()
    parent: Optional[int] = None
    ordinal: int = -1

    @property
    def is_empty(self) -> bool:
        return not self.text and self.kind is not UnitKind.IMAGE

    @property
    def is_inline(self) -> bool:
        return self.parent is not None

    @property
    def match_key(self) -> Tuple[UnitKind, int, bool]:
        """
        Units may only pair when these agree. Inline units must also sit
        in parents that are paired with each other.
        """
        return (self.kind, self.level, self.is_inline)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'index': self.index,
            'kind': self.kind.value,
            'tag': self.tag,
            'level': self.level,
            'text': self.text,
            'markup': self.markup,
            'style': self.style.to_dict(),
            'media': [list(m) for m in self.media],
            'parent': self.parent,
            'is_empty': self.is_empty,
        }


@dataclass(frozen=True)
class AlignmentRecord:
    """Correspondence between a left unit, a right unit, or both."""
    left_index: Optional[int]
    right_index: Optional[int]
    match_type: MatchType

    def __post_init__(self):
        both = self.left_index is not None and self.right_index is not None
        if self.match_type is MatchType.MATCH and not both:
            raise ValueError("match record needs both indices")
        if self.match_type is MatchType.LEFT_ONLY and (self.left_index is None or self.right_index is not None):
            raise ValueError("leftOnly record needs only a left index")
        if self.match_type is MatchType.RIGHT_ONLY and (self.right_index is None or self.left_index is not None):
            raise ValueError("rightOnly record needs only a right index")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'leftIndex': self.left_index,
            'rightIndex': self.right_index,
            'matchType': self.match_type.value,
        }


@dataclass(frozen=True)
class ProcessedUnit:
    """
    A content unit with its annotation for one output side.

    For placeholders, ``unit`` is the source unit from the opposite document.
    """
    unit: ContentUnit
    highlight: Highlight = Highlight.NONE
    rendered_markup: Optional[str] = None
    is_placeholder: bool = False

    @property
    def output_markup(self) -> str:
        """Markup to emit for this unit."""
        if self.rendered_markup is not None:
            return self.rendered_markup
        return self.unit.markup

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'index': self.unit.index,
            'kind': self.unit.kind.value,
            'highlight': self.highlight.value,
            'is_placeholder': self.is_placeholder,
            'markup': self.output_markup,
        }


@dataclass(frozen=True)
class DiffOperation:
    """One character diff operation."""
    op: DiffOp
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {'op': self.op.value, 'text': self.text}


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class ComparisonSummary:
    """Aggregate change counts."""
    additions: int = 0
    deletions: int = 0
    modifications: int = 0

    @property
    def changes(self) -> int:
        return self.additions + self.deletions + self.modifications

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary for JSON serialization."""
        return {
            'additions': self.additions,
            'deletions': self.deletions,
            'modifications': self.modifications,
            'changes': self.changes,
        }


@dataclass
class ReportLine:
    """
    One row of the detailed report.

    Attributes:
        left_label: 1-based left position ('' when absent)
        right_label: 1-based right position ('' when absent)
        status: Row status
        diff_markup: Escaped text with inline change spans
        format_changes: Descriptions of formatting changes
    """
    left_label: str
    right_label: str
    status: ReportStatus
    diff_markup: str = ""
    format_changes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'v1': self.left_label,
            'v2': self.right_label,
            'status': self.status.value,
            'diffHtml': self.diff_markup,
            'formatChanges': list(self.format_changes),
        }


@dataclass
class DetailedReport:
    """Per-unit change log plus table and image status lists."""
    lines: List[ReportLine] = field(default_factory=list)
    tables: List[Dict[str, Any]] = field(default_factory=list)
    images: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.lines or self.tables or self.images)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'lines': [line.to_dict() for line in self.lines],
            'tables': [dict(t) for t in self.tables],
            'images': [dict(i) for i in self.images],
        }


@dataclass
class ComparisonResult:
    """
    Complete result of one comparison.

    Attributes:
        left_output: Annotated markup for the left (original) document
        right_output: Annotated markup for the right (modified) document
        summary: Aggregate counts
        detailed_report: Tabular change log
        alignment: Alignment records (empty on the fast path)
        error: Description of the failure when the fail-soft fallback was used
    """
    left_output: str
    right_output: str
    summary: ComparisonSummary = field(default_factory=ComparisonSummary)
    detailed_report: DetailedReport = field(default_factory=DetailedReport)
    alignment: List[AlignmentRecord] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'leftOutput': self.left_output,
            'rightOutput': self.right_output,
            'summary': self.summary.to_dict(),
            'detailed': self.detailed_report.to_dict(),
            'alignment': [r.to_dict() for r in self.alignment],
            'error': self.error,
        }
