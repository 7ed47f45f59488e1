"""
Tests for Similarity Oracle
===========================
Tests for the character diff and the similarity ratio.
"""

import pytest

from config_logging import DiffError, EngineConfig
from mutual_compare.models import DiffOp
from mutual_compare.similarity import SimilarityOracle


@pytest.fixture
def oracle() -> SimilarityOracle:
    return SimilarityOracle(EngineConfig())


def rebuild(operations, side):
    keep = (DiffOp.EQUAL, DiffOp.DELETE) if side == 'left' else (DiffOp.EQUAL, DiffOp.INSERT)
    return ''.join(op.text for op in operations if op.op in keep)


class TestSimilarity:
    """Tests for SimilarityOracle.similarity."""

    def test_both_empty(self, oracle):
        """Test two empty strings are identical."""
        assert oracle.similarity('', '') == 1.0

    def test_one_empty(self, oracle):
        """Test one empty string shares nothing."""
        assert oracle.similarity('abc', '') == 0.0
        assert oracle.similarity('', 'abc') == 0.0

    def test_identical(self, oracle):
        """Test identical strings."""
        assert oracle.similarity('Hello world', 'Hello world') == 1.0

    def test_ratio_uses_longer_length(self, oracle):
        """Test unchanged length is divided by the longer string."""
        assert oracle.similarity('Hello', 'Hello there') == pytest.approx(5 / 11)

    def test_similar_sentences(self, oracle):
        """Test a one-word edit stays above the default threshold."""
        score = oracle.similarity('The quick brown fox', 'The quick brown cat')
        assert score == pytest.approx(16 / 19)
        assert score > 0.6

    def test_symmetric(self, oracle):
        """Test the ratio does not depend on argument order."""
        a, b = 'alignment engine', 'assignment engines'
        assert oracle.similarity(a, b) == pytest.approx(oracle.similarity(b, a))


class TestDiff:
    """Tests for SimilarityOracle.diff."""

    def test_insertion(self, oracle):
        """Test an appended word is one insert."""
        operations = oracle.diff('Hello', 'Hello there')
        assert [(op.op, op.text) for op in operations] == [
            (DiffOp.EQUAL, 'Hello'),
            (DiffOp.INSERT, ' there'),
        ]

    def test_reconstructs_both_sides(self, oracle):
        """Test equal+delete rebuilds the left, equal+insert the right."""
        a = 'The committee approved the revised budget on Monday.'
        b = 'The board approved the final budget on Tuesday.'
        operations = oracle.diff(a, b)
        assert rebuild(operations, 'left') == a
        assert rebuild(operations, 'right') == b

    def test_no_empty_operations(self, oracle):
        """Test empty diff chunks are dropped."""
        assert all(op.text for op in oracle.diff('abc', 'abd'))
        assert oracle.diff('', '') == []

    def test_diff_failure(self, oracle, monkeypatch):
        """Test primitive failures surface as DiffError."""
        def broken(a, b):
            raise RuntimeError("pathological input")

        monkeypatch.setattr(oracle.dmp, 'diff_main', broken)
        with pytest.raises(DiffError):
            oracle.diff('a', 'b')

    def test_config_applied(self):
        """Test timeout and edit cost come from configuration."""
        oracle = SimilarityOracle(EngineConfig(diff_timeout=0.5, diff_edit_cost=6))
        assert oracle.dmp.Diff_Timeout == 0.5
        assert oracle.dmp.Diff_EditCost == 6


class TestInlineDiffMarkup:
    """Tests for the report's inline diff markup."""

    def test_added_text(self, oracle):
        """Test insertions are wrapped in the added class."""
        markup = oracle.inline_diff_markup('Hello', 'Hello there')
        assert markup == 'Hello<span class="mutual-inline-added"> there</span>'

    def test_removed_text(self, oracle):
        """Test deletions are wrapped in the removed class."""
        markup = oracle.inline_diff_markup('Hello there', 'Hello')
        assert markup == 'Hello<span class="mutual-inline-removed"> there</span>'

    def test_escaped(self, oracle):
        """Test text is HTML-escaped."""
        markup = oracle.inline_diff_markup('a < b', 'a < b')
        assert markup == 'a &lt; b'
