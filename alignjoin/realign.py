"""Realignment of indel-flanking windows."""

from __future__ import annotations

import logging
from itertools import combinations
from typing import Sequence

from alignjoin.assemble import SequenceRecord
from alignjoin.errors import AlignerError
from alignjoin.indel import find_indel_set
from alignjoin.intspan import IntervalSet
from alignjoin.msa import ExternalAligner, strip_gaps

logger = logging.getLogger(__name__)


def find_realign_region(rows: Sequence[str], indel_expand: int, indel_join: int) -> IntervalSet:
    """Columns worth realigning.

    Every row's gap runs are widened by *indel_expand*.  For each pair of
    rows, a run of their union that touches their intersection (two rows
    have nearby indels) is taken whole.  Runs closer than *indel_join* are
    then joined into windows.
    """
    indel_sets = [find_indel_set(row, indel_expand) for row in rows]

    realign_region = IntervalSet()
    for set_a, set_b in combinations(indel_sets, 2):
        intersect_set = set_a.intersect(set_b)
        if intersect_set.is_empty():
            continue
        union_set = set_a.union(set_b)
        for span in union_set.spans():
            if intersect_set.intersect(span).is_not_empty():
                realign_region.add_range(*span)

    return realign_region.join_span(indel_join)


def _check_realigned(before: Sequence[str], after: Sequence[str]) -> None:
    if len(after) != len(before):
        raise AlignerError(f"aligner returned {len(after)} rows for {len(before)}")
    if len({len(s) for s in after}) > 1:
        raise AlignerError("aligner returned rows of differing length")
    for old, new in zip(before, after):
        if strip_gaps(old).upper() != strip_gaps(new).upper():
            raise AlignerError("aligner changed row content or order")


def realign_windows(
    records: Sequence[SequenceRecord],
    aligner: ExternalAligner,
    indel_expand: int,
    indel_join: int,
) -> IntervalSet:
    """Realign each window across all *records* and splice results back.

    Windows are handled from the highest column down, so a window whose
    length changes does not shift the ones still to come.  Returns the
    windows in pre-realignment coordinates.
    """
    region = find_realign_region([r.seq for r in records], indel_expand, indel_join)
    windows = region.spans()
    if windows:
        logger.debug("Realigning %d window(s): %s", len(windows), region.runlist())

    for lo, hi in reversed(windows):
        segments = [r.seq[lo - 1 : hi] for r in records]
        realigned = list(aligner.align(segments))
        _check_realigned(segments, realigned)
        for record, seg in zip(records, realigned):
            record.seq = record.seq[: lo - 1] + seg + record.seq[hi:]

    return region
