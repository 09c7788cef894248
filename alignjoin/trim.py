"""Column trimming – outgroup-only insertions and all-gap edges."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence

from alignjoin.assemble import SequenceRecord
from alignjoin.indel import GAP, find_indel_set
from alignjoin.intspan import IntervalSet, intersect_all, union_all
from alignjoin.roles import Role

logger = logging.getLogger(__name__)


def delete_columns(records: Iterable[SequenceRecord], lo: int, hi: int) -> None:
    """Remove 1-based columns *lo*..*hi* from every record."""
    for record in records:
        record.seq = record.seq[: lo - 1] + record.seq[hi:]


def delete_regions(records: Sequence[SequenceRecord], region: IntervalSet) -> None:
    """Remove every span of *region*, highest span first."""
    for lo, hi in reversed(region.spans()):
        delete_columns(records, lo, hi)


def find_outgroup_only(ingroup_rows: Sequence[str]) -> IntervalSet:
    """Columns where every ingroup row has a gap throughout a gap run.

    A union run of the ingroup gap sets qualifies when the intersection
    covers all of it::

        outgroup GAAAAC
        target   G----C
        query    G----C
    """
    indel_sets = [find_indel_set(row) for row in ingroup_rows]
    union_set = union_all(indel_sets)
    intersect_set = intersect_all(indel_sets)

    trim_region = IntervalSet()
    for span in union_set.spans():
        if intersect_set.superset(span):
            trim_region.add_range(*span)
    return trim_region


def trim_outgroup(records: Dict[Role, SequenceRecord], outgroup: Role) -> IntervalSet:
    """Delete outgroup-only columns from every row.

    The outgroup's untrimmed row is kept in its ``raw_seq``.  Returns the
    region removed, in pre-trim coordinates.
    """
    out_record = records[outgroup]
    out_record.raw_seq = out_record.seq

    ingroup = [rec for role, rec in records.items() if role != outgroup]
    trim_region = find_outgroup_only([rec.seq for rec in ingroup])
    if trim_region:
        logger.debug("Delete trim region %s", trim_region.runlist())
        delete_regions(list(records.values()), trim_region)
    return trim_region


def trim_header_footer(records: Iterable[SequenceRecord]) -> int:
    """Strip leading and trailing columns that are gaps in every row.

    Returns the number of columns removed.
    """
    records = list(records)
    removed = 0

    def column(idx: int) -> List[str]:
        return [r.seq[idx] for r in records]

    while records and records[0].seq and all(c == GAP for c in column(0)):
        for r in records:
            r.seq = r.seq[1:]
        removed += 1

    while records and records[0].seq and all(c == GAP for c in column(-1)):
        for r in records:
            r.seq = r.seq[:-1]
        removed += 1

    if removed:
        logger.debug("Trimmed %d header/footer gap columns", removed)
    return removed
