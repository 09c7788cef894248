"""Complex indel resolution among ingroup rows.

Columns where every ingroup row has a gap are removed.  Whenever such a
removed stretch sat inside a longer ingroup gap run, the run is ambiguous
(the rows disagree about the extent of the event) and is recorded as
complex::

    outgroup GGAGAC
    target   G-A-AC
    query    G----C

Ingroup gaps shared with the outgroup but nested in a longer ingroup run
are complex as well.  The outgroup record receives the ``complex`` and
``all_indel`` runlists; the rows keep every other column.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict

from alignjoin.assemble import SequenceRecord
from alignjoin.indel import find_indel_set
from alignjoin.intspan import IntervalSet, intersect_all, union_all
from alignjoin.roles import Role
from alignjoin.trim import delete_columns

logger = logging.getLogger(__name__)


@dataclass
class ComplexResolution:
    """Outcome of complex indel resolution for one segment."""

    complex_region: IntervalSet
    all_indel_region: IntervalSet
    deleted: IntervalSet  # in pre-deletion coordinates


def resolve_complex(records: Dict[Role, SequenceRecord], outgroup: Role) -> ComplexResolution:
    """Remove shared ingroup gaps and classify complex regions, in place."""
    indel_sets = {role: find_indel_set(rec.seq) for role, rec in records.items()}
    outgroup_set = indel_sets.pop(outgroup)
    ingroup = list(indel_sets)

    union_set = union_all(indel_sets.values())
    intersect_set = intersect_all(indel_sets.values())
    complex_region = IntervalSet()

    for lo, hi in reversed(intersect_set.spans()):
        delete_columns(records.values(), lo, hi)
        logger.debug("Delete complex trim region %d - %d", lo, hi)

        for run in union_set.sets():
            if run.superset((lo, hi)):
                complex_region.merge(run)

        # keep every set in the coordinates of the shortened rows
        union_set.banish_span(lo, hi)
        for role in ingroup:
            indel_sets[role].banish_span(lo, hi)
        outgroup_set.banish_span(lo, hi)
        complex_region.banish_span(lo, hi)

    all_indel_region = IntervalSet()
    for role in ingroup:
        all_indel_region.merge(indel_sets[role])
        shared = outgroup_set.intersect(indel_sets[role])
        for out_span in shared.spans():
            for run in union_set.sets():
                if run.larger_than(out_span):
                    complex_region.merge(run)

    out_record = records[outgroup]
    out_record.complex = complex_region.runlist()
    out_record.all_indel = all_indel_region.runlist()

    return ComplexResolution(
        complex_region=complex_region,
        all_indel_region=all_indel_region,
        deleted=intersect_set,
    )
