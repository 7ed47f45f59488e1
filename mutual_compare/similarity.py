"""
Similarity Oracle v1.0.0
========================
Character-level diff primitive and the similarity ratio built on it.

Uses diff-match-patch (Myers diff plus semantic cleanup) for both
matching and rendering.
"""

import html
from typing import List, Optional

import diff_match_patch as dmp_module

from config_logging import EngineConfig, DiffError, get_logger
from .models import DiffOp, DiffOperation, CLASS_INLINE_ADDED, CLASS_INLINE_REMOVED

logger = get_logger('mutual_compare.similarity')

# diff-match-patch operation codes
_OPS = {
    0: DiffOp.EQUAL,
    1: DiffOp.INSERT,
    -1: DiffOp.DELETE,
}


class SimilarityOracle:
    """Character diffs and similarity ratios between two strings."""

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize the oracle.

        Args:
            config: Engine configuration (diff timeout and edit cost)
        """
        self.config = config or EngineConfig()
        self.dmp = dmp_module.diff_match_patch()
        self.dmp.Diff_Timeout = self.config.diff_timeout
        self.dmp.Diff_EditCost = self.config.diff_edit_cost

    def diff(self, a: str, b: str) -> List[DiffOperation]:
        """
        Character diff of ``a`` against ``b`` with semantic cleanup.

        Small interleaved edits are merged into readable chunks.

        Raises:
            DiffError: If the diff primitive fails
        """
        return self._diff(a, b, cleanup=True)

    def similarity(self, a: str, b: str) -> float:
        """
        Ratio of unchanged characters to the longer string's length.

        Returns:
            1.0 when both are empty, 0.0 when exactly one is empty
        """
        if not a and not b:
            return 1.0
        if not a or not b:
            return 0.0
        unchanged = sum(len(op.text) for op in self._diff(a, b, cleanup=False)
                        if op.op is DiffOp.EQUAL)
        return unchanged / max(len(a), len(b))

    def inline_diff_markup(self, a: str, b: str) -> str:
        """Escaped text with inline added/removed spans, for the report."""
        parts = []
        for operation in self.diff(a or "", b or ""):
            escaped = html.escape(operation.text)
            if operation.op is DiffOp.INSERT:
                parts.append(f'<span class="{CLASS_INLINE_ADDED}">{escaped}</span>')
            elif operation.op is DiffOp.DELETE:
                parts.append(f'<span class="{CLASS_INLINE_REMOVED}">{escaped}</span>')
            else:
                parts.append(escaped)
        return ''.join(parts)

    def _diff(self, a: str, b: str, cleanup: bool) -> List[DiffOperation]:
        try:
            diffs = self.dmp.diff_main(a, b)
            if cleanup:
                self.dmp.diff_cleanupSemantic(diffs)
        except Exception as e:
            logger.error(f"Character diff failed: {e}", len_a=len(a or ''), len_b=len(b or ''))
            raise DiffError(f"Character diff failed: {e}", len_a=len(a or ''), len_b=len(b or '')) from e
        return [DiffOperation(_OPS[op], text) for op, text in diffs if text]
