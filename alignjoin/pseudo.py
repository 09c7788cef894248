"""Pseudo-alignment – synchronise independently gapped target rows.

Every dataset aligned its own query against the same target range, so the
target rows carry the same residues but gaps in different columns.  The
builder walks the columns once and, wherever some target rows show a gap
and others do not, opens a gap in the others (and in their paired query
rows).  Afterwards all target rows read identically and every row has the
same length.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

from alignjoin.assemble import AssembledPair, SequenceRecord
from alignjoin.errors import AbortReason, SegmentAbort
from alignjoin.indel import GAP

logger = logging.getLogger(__name__)


def sync_rows(targets: List[str], queries: List[str]) -> int:
    """Insert gaps into *targets* (and the matching *queries*) in place.

    Both lists are rewritten.  Returns the number of gap columns inserted.
    Raises ``SegmentAbort`` when a column holds two different residues and
    no gap, which no amount of gap insertion can reconcile.
    """
    if len(targets) != len(queries):
        raise ValueError("Every target row needs its paired query row")

    inserted = 0
    col = 0
    while True:
        # rows can grow below us, so the bound is re-read every column
        max_length = max((len(t) for t in targets), default=0)
        if col >= max_length:
            break

        bases = [t[col] if col < len(t) else "" for t in targets]
        if all(b == bases[0] for b in bases):
            col += 1
            continue
        if all(b != GAP for b in bases):
            raise SegmentAbort(
                AbortReason.COLUMN_DISAGREEMENT,
                f"align error in column {col + 1}, [{' '.join(b or '<end>' for b in bases)}]",
            )

        for i, base in enumerate(bases):
            if base == GAP:
                continue
            targets[i] = targets[i][:col] + GAP + targets[i][col:]
            queries[i] = queries[i][:col] + GAP + queries[i][col:]
            inserted += 1

    return inserted


def check_columns(records: Iterable[SequenceRecord]) -> int:
    """Return the shared row length or abort the segment."""
    lengths = {len(r.seq) for r in records}
    if len(lengths) != 1:
        raise SegmentAbort(
            AbortReason.COLUMN_INVARIANT,
            f"rows differ in length: {sorted(lengths)}",
        )
    return lengths.pop()


def build_pseudo_alignment(pairs: Sequence[AssembledPair]) -> int:
    """Synchronise the rows of every assembled pair in place.

    Returns the common alignment length.
    """
    targets = [p.target.seq for p in pairs]
    queries = [p.query.seq for p in pairs]

    inserted = sync_rows(targets, queries)
    for pair, t_seq, q_seq in zip(pairs, targets, queries):
        pair.target.seq = t_seq
        pair.query.seq = q_seq

    length = check_columns([r for p in pairs for r in (p.target, p.query)])
    logger.debug("pseudo-alignment: %d gaps inserted, %d columns", inserted, length)
    return length
