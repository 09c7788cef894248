"""Per-segment sequence extraction from every dataset."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from alignjoin.dataset import GenomeDataset
from alignjoin.errors import AbortReason, SegmentAbort
from alignjoin.roles import Side
from alignjoin.segment import SegmentCandidate

logger = logging.getLogger(__name__)


@dataclass
class SequenceRecord:
    """One row of the joined alignment for one segment.

    ``seq`` is rewritten in place by every stage.  The outgroup record also
    carries ``raw_seq`` (its row before the outgroup-only trim) and the
    ``complex`` / ``all_indel`` runlists produced by complex resolution.
    """

    name: str
    taxon_id: str
    chr_name: str
    chr_start: int
    chr_end: int
    strand: str
    seq: str
    alignment_id: Optional[int] = None
    raw_seq: Optional[str] = None
    complex: Optional[str] = None
    all_indel: Optional[str] = None

    def __len__(self) -> int:
        return len(self.seq)

    @property
    def header(self) -> str:
        return f"{self.name}.{self.chr_name}({self.strand}):{self.chr_start}-{self.chr_end}"


@dataclass
class AssembledPair:
    """Target and query rows cut from one dataset for one segment."""

    dataset: str
    alignment_id: int
    target: SequenceRecord
    query: SequenceRecord
    ambiguous: bool = False

    def rows(self) -> Dict[Side, SequenceRecord]:
        return {Side.TARGET: self.target, Side.QUERY: self.query}


@dataclass
class _Located:
    alignment_id: int
    align_start: int
    align_end: int
    ambiguous: bool = False


def _locate(dataset: GenomeDataset, segment: SegmentCandidate) -> _Located:
    hit = dataset.locate(segment.chr_name, segment.start, segment.end)
    if hit is None:
        raise SegmentAbort(
            AbortReason.LOOKUP_MISS,
            f"no alignment spans {segment} in {dataset.name}",
        )
    alignment_id, ambiguous = hit
    align_start = dataset.at_align(alignment_id, segment.start)
    align_end = dataset.at_align(alignment_id, segment.end)
    if not align_start or not align_end:
        raise SegmentAbort(
            AbortReason.LOOKUP_MISS,
            f"alignment {alignment_id} of {dataset.name} does not span {segment}",
        )
    return _Located(alignment_id, align_start, align_end, ambiguous)


def assemble_pair(dataset: GenomeDataset, segment: SegmentCandidate) -> AssembledPair:
    """Cut the target and query rows of *segment* out of *dataset*.

    Raises ``SegmentAbort`` on a lookup miss or when the two rows do not
    come out with the same positive length.
    """
    located = _locate(dataset, segment)
    if located.ambiguous:
        logger.warning("Overlapped alignment in %s at %s", dataset.name, segment)

    alignment_id = located.alignment_id
    aln = dataset.get_alignment(alignment_id)
    full_target, full_query = dataset.get_aligned_pair(alignment_id)

    target_seq = full_target[located.align_start - 1 : located.align_end]
    query_seq = full_query[located.align_start - 1 : located.align_end]
    if not target_seq or len(target_seq) != len(query_seq):
        raise SegmentAbort(
            AbortReason.LENGTH_MISMATCH,
            f"seq-length error in {dataset.name} alignment {alignment_id}",
        )

    q_start = dataset.to_query_chr(alignment_id, located.align_start)
    q_end = dataset.to_query_chr(alignment_id, located.align_end)

    target = SequenceRecord(
        name=dataset.target.name,
        taxon_id=dataset.target.taxon_id,
        chr_name=segment.chr_name,
        chr_start=segment.start,
        chr_end=segment.end,
        strand=aln.target_strand,
        seq=target_seq,
        alignment_id=alignment_id,
    )
    query = SequenceRecord(
        name=dataset.query.name,
        taxon_id=dataset.query.taxon_id,
        chr_name=aln.query_chr,
        chr_start=min(q_start, q_end),
        chr_end=max(q_start, q_end),
        strand=aln.query_strand,
        seq=query_seq,
        alignment_id=alignment_id,
    )
    return AssembledPair(
        dataset=dataset.name,
        alignment_id=alignment_id,
        target=target,
        query=query,
        ambiguous=located.ambiguous,
    )


def assemble_segment(
    datasets: Sequence[GenomeDataset], segment: SegmentCandidate
) -> List[AssembledPair]:
    """Assemble one ``AssembledPair`` per dataset, in dataset order."""
    pairs = []
    for dataset in datasets:
        logger.debug("build %s seqs for %s", dataset.name, segment)
        pairs.append(assemble_pair(dataset, segment))
    return pairs
