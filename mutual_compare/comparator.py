"""
Pairwise Comparator v1.0.0
==========================
Classifies a matched pair as identical, content-modified, or
formatting-only modified.
"""

from typing import List

from .models import ContentUnit, Highlight, WHOLE_UNIT_KINDS


class PairwiseComparator:
    """Decides the highlight both sides of a matched pair receive."""

    def classify(self, left: ContentUnit, right: ContentUnit) -> Highlight:
        """
        Classify a matched pair.

        Args:
            left: Unit from the original document
            right: Unit from the modified document

        Returns:
            Highlight.NONE, Highlight.FORMAT_CHANGED or Highlight.MODIFIED
        """
        if left.text == right.text and left.media == right.media:
            if left.style.key_properties() == right.style.key_properties():
                return Highlight.NONE
            return Highlight.FORMAT_CHANGED
        return Highlight.MODIFIED

    def needs_character_diff(self, left: ContentUnit, right: ContentUnit) -> bool:
        """Tables and images are compared as whole units only."""
        return left.kind not in WHOLE_UNIT_KINDS and right.kind not in WHOLE_UNIT_KINDS

    def format_changes(self, left: ContentUnit, right: ContentUnit) -> List[str]:
        """Key style properties that differ, e.g. ``font-size: 16px -> 18px``."""
        return left.style.differences(right.style)
