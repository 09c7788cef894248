"""Gap-run detection and pairwise identity counts for gapped rows."""

from __future__ import annotations

from typing import NamedTuple

import numpy as np

from alignjoin.intspan import IntervalSet

GAP = "-"
_GAP_BYTE = ord(GAP)


def _as_array(seq: str) -> np.ndarray:
    return np.frombuffer(seq.upper().encode("ascii"), dtype=np.uint8)


def find_indel_set(seq: str, expand: int = 0) -> IntervalSet:
    """Return the 1-based columns of every gap run in *seq*.

    With *expand* > 0 each run is widened by that many columns on both
    sides and clipped to ``1..len(seq)``.
    """
    indel_set = IntervalSet()
    if not seq:
        return indel_set

    is_gap = (_as_array(seq) == _GAP_BYTE).astype(np.int8)
    edges = np.diff(np.concatenate(([0], is_gap, [0])))
    starts = np.flatnonzero(edges == 1) + 1
    ends = np.flatnonzero(edges == -1)
    indel_set = IntervalSet(zip(starts.tolist(), ends.tolist()))

    if expand and indel_set:
        indel_set = indel_set.expand(expand).intersect((1, len(seq)))
    return indel_set


class PairStat(NamedTuple):
    """Column counts for two rows of one alignment."""

    length: int
    comparable: int
    identities: int
    differences: int
    gaps: int

    @property
    def identity(self) -> float:
        return self.identities / self.length if self.length else 0.0


def pair_seq_stat(seq_a: str, seq_b: str) -> PairStat:
    """Count identical, differing and gapped columns between two rows."""
    if len(seq_a) != len(seq_b):
        raise ValueError("Aligned rows must be the same length")
    a = _as_array(seq_a)
    b = _as_array(seq_b)
    gapped = (a == _GAP_BYTE) | (b == _GAP_BYTE)
    comparable = int((~gapped).sum())
    identities = int(((a == b) & ~gapped).sum())
    return PairStat(
        length=len(seq_a),
        comparable=comparable,
        identities=identities,
        differences=comparable - identities,
        gaps=int(gapped.sum()),
    )
