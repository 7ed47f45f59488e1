"""
Alignment Engine v1.0.0
=======================
Multi-pass matcher producing the ordered correspondence between the
left and right unit sequences.

Passes, each over units not yet claimed:
1. exact      - equal normalized text (images: src/alt, tables: markup)
2. positional - the lone unclaimed pair left between the exact matches
3. fuzzy      - same-kind text units above the similarity threshold
4. residual   - everything left over becomes leftOnly / rightOnly

Top-level blocks are aligned first. Inline units are then aligned with
the same passes, but only against inline units whose parent block is
paired with their own parent.

The strategy is greedy and not globally optimal: with many near-duplicate
units the pairing can depend on document order.
"""

from collections import defaultdict, deque
from typing import List, Dict, Tuple, Optional, Sequence, Hashable

from config_logging import (
    ALIGNMENT_PASSES, DEFAULT_SIMILARITY_THRESHOLD, ConfigurationError, get_logger
)
from .models import AlignmentRecord, ContentUnit, MatchType, UnitKind
from .similarity import SimilarityOracle

logger = get_logger('mutual_compare.aligner')


def normalize_markup(markup: str) -> str:
    """Whitespace-insensitive form of a unit's markup."""
    return ''.join(markup.split())


def exact_key(unit: ContentUnit) -> Hashable:
    """Key two units must share to pair in the exact pass."""
    if unit.kind is UnitKind.IMAGE:
        content = unit.media
    elif unit.kind is UnitKind.TABLE:
        content = normalize_markup(unit.markup)
    else:
        content = unit.text
    return unit.match_key, content


class AlignmentEngine:
    """
    Pairs left and right content units.

    Pass order and threshold are explicit so a run can be pinned exactly;
    the threshold stays fixed for the lifetime of the engine.
    """

    def __init__(
        self,
        oracle: Optional[SimilarityOracle] = None,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        pass_order: Sequence[str] = ALIGNMENT_PASSES
    ):
        unknown = [p for p in pass_order if p not in ALIGNMENT_PASSES]
        if unknown:
            raise ConfigurationError(f"Unknown alignment passes: {unknown}")
        self.oracle = oracle or SimilarityOracle()
        self.similarity_threshold = similarity_threshold
        self.pass_order = tuple(pass_order)

    def align(
        self,
        left: Sequence[ContentUnit],
        right: Sequence[ContentUnit]
    ) -> List[AlignmentRecord]:
        """
        Align two unit sequences.

        Args:
            left: Units of the original document
            right: Units of the modified document

        Returns:
            Alignment records in document order
        """
        pairs: Dict[int, int] = {}
        right_claimed: Dict[int, int] = {}

        for inline in (False, True):
            left_scope, right_scope = self._scopes(left, right, pairs, inline)
            for name in self.pass_order:
                before = len(pairs)
                if name == "exact":
                    self._exact_pass(left, right, pairs, right_claimed, left_scope, right_scope)
                elif name == "fuzzy":
                    self._fuzzy_pass(left, right, pairs, right_claimed, left_scope, right_scope)
                else:
                    self._positional_pass(left, right, pairs, right_claimed, left_scope, right_scope)
                logger.debug(f"{name} pass matched {len(pairs) - before} "
                             f"{'inline' if inline else 'block'} pairs")

        records = [
            AlignmentRecord(i, pairs[i], MatchType.MATCH) if i in pairs
            else AlignmentRecord(i, None, MatchType.LEFT_ONLY)
            for i in range(len(left))
        ]
        right_only = [
            AlignmentRecord(None, j, MatchType.RIGHT_ONLY)
            for j in range(len(right)) if j not in right_claimed
        ]
        ordered = self._merge(records, right_only)

        logger.debug(f"Alignment: {len(pairs)} matched, "
                     f"{len(left) - len(pairs)} left-only, {len(right_only)} right-only")
        return ordered

    @staticmethod
    def _scopes(
        left: Sequence[ContentUnit],
        right: Sequence[ContentUnit],
        pairs: Dict[int, int],
        inline: bool
    ) -> Tuple[Dict[int, Hashable], Dict[int, Hashable]]:
        """
        Units taking part in one round, each mapped to its scope.

        Two units may only pair when their scopes are equal. Blocks share a
        single scope. An inline unit's scope is the right index of its
        parent block: on the left side that is the parent's pair, which is
        None for an unpaired parent and so never equals a right scope.
        """
        if not inline:
            return ({i: None for i, unit in enumerate(left) if not unit.is_inline},
                    {j: None for j, unit in enumerate(right) if not unit.is_inline})
        return ({i: pairs.get(unit.parent) for i, unit in enumerate(left) if unit.is_inline},
                {j: unit.parent for j, unit in enumerate(right) if unit.is_inline})

    # -------------------------------------------------------------------------
    # Passes
    # -------------------------------------------------------------------------

    def _exact_pass(self, left, right, pairs, right_claimed, left_scope, right_scope):
        """Each left unit takes the first unclaimed right unit with an equal key."""
        available: Dict[Hashable, deque] = defaultdict(deque)
        for j, scope in right_scope.items():
            if j not in right_claimed:
                available[(scope, exact_key(right[j]))].append(j)

        for i, scope in left_scope.items():
            if i in pairs:
                continue
            queue = available.get((scope, exact_key(left[i])))
            if queue:
                j = queue.popleft()
                pairs[i] = j
                right_claimed[j] = i

    def _fuzzy_pass(self, left, right, pairs, right_claimed, left_scope, right_scope):
        """
        Claim similar same-kind pairs best-first.

        Scores are computed for every eligible pair, then claimed in
        descending score order (ties by left, then right index). Raising
        the threshold only removes the tail of that order, so it can never
        produce more matches.
        """
        by_key: Dict[Tuple, List[int]] = defaultdict(list)
        for j, scope in right_scope.items():
            if j not in right_claimed and self._fuzzy_eligible(right[j]):
                by_key[(scope, right[j].match_key)].append(j)

        candidates: List[Tuple[float, int, int]] = []
        for i, scope in left_scope.items():
            unit = left[i]
            if i in pairs or not self._fuzzy_eligible(unit):
                continue
            for j in by_key.get((scope, unit.match_key), ()):
                score = self.oracle.similarity(unit.text, right[j].text)
                if score > self.similarity_threshold:
                    candidates.append((score, i, j))

        candidates.sort(key=lambda c: (-c[0], c[1], c[2]))
        for score, i, j in candidates:
            if i in pairs or j in right_claimed:
                continue
            pairs[i] = j
            right_claimed[j] = i

    def _positional_pass(self, left, right, pairs, right_claimed, left_scope, right_scope):
        """
        Pair the lone unclaimed units sitting at the same position.

        A unit's position is which side it falls on of every existing match
        in its scope. When exactly one unclaimed left unit and one unclaimed
        right unit share a scope and a position, they are taken as the same
        unit rewritten. In the default order the anchors are exact matches
        only, so the pairing does not depend on the threshold. Tables qualify here (they are then compared whole); images never do.
        """
        anchors: Dict[Hashable, List[Tuple[int, int]]] = defaultdict(list)
        for i, j in pairs.items():
            if i in left_scope:
                anchors[left_scope[i]].append((i, j))

        groups: Dict[Tuple, Tuple[List[int], List[int]]] = defaultdict(lambda: ([], []))
        for i, scope in left_scope.items():
            if i not in pairs:
                position = tuple(a < i for a, _ in anchors.get(scope, ()))
                groups[(scope, position)][0].append(i)
        for j, scope in right_scope.items():
            if j not in right_claimed:
                position = tuple(b < j for _, b in anchors.get(scope, ()))
                groups[(scope, position)][1].append(j)

        for lefts, rights in groups.values():
            if len(lefts) != 1 or len(rights) != 1:
                continue
            i, j = lefts[0], rights[0]
            if left[i].match_key == right[j].match_key and left[i].kind is not UnitKind.IMAGE:
                pairs[i] = j
                right_claimed[j] = i

    @staticmethod
    def _fuzzy_eligible(unit: ContentUnit) -> bool:
        return unit.kind not in (UnitKind.IMAGE, UnitKind.TABLE)

    # -------------------------------------------------------------------------
    # Ordering
    # -------------------------------------------------------------------------

    @staticmethod
    def _merge(
        left_records: List[AlignmentRecord],
        right_only: List[AlignmentRecord]
    ) -> List[AlignmentRecord]:
        """
        Stable merge of right-only records into left-ordered records.

        A right-only record goes immediately before the first match whose
        right index is greater than its own, i.e. after every left-indexed
        record at or before the same position. Right-only records with no
        such match go at the end, in right order.
        """
        ordered: List[AlignmentRecord] = []
        pending = deque(right_only)
        for record in left_records:
            if record.match_type is MatchType.MATCH:
                while pending and pending[0].right_index < record.right_index:
                    ordered.append(pending.popleft())
            ordered.append(record)
        ordered.extend(pending)
        return ordered
