"""Emission of joined alignments and FASTA snapshots."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Protocol, Union

from alignjoin.assemble import SequenceRecord
from alignjoin.io import write_fasta
from alignjoin.segment import SegmentCandidate

logger = logging.getLogger(__name__)


class AlignmentEmitter(Protocol):
    """Destination store for joined ingroup pairs."""

    def add_alignment(
        self,
        target: SequenceRecord,
        query: SequenceRecord,
        outgroup: SequenceRecord,
        all_indel: str,
    ) -> int: ...


@dataclass
class EmittedAlignment:
    alignment_id: int
    target: SequenceRecord
    query: SequenceRecord
    outgroup: SequenceRecord
    all_indel: str


class MemoryEmitter:
    """Keep emitted alignments in a list; ids count up from 1."""

    def __init__(self) -> None:
        self.alignments: List[EmittedAlignment] = []

    def add_alignment(self, target, query, outgroup, all_indel) -> int:
        alignment_id = len(self.alignments) + 1
        self.alignments.append(EmittedAlignment(alignment_id, target, query, outgroup, all_indel))
        return alignment_id

    def __len__(self) -> int:
        return len(self.alignments)


def segment_filename(first_taxon_id: str, segment: SegmentCandidate, *extra: str) -> str:
    parts = [f"id{first_taxon_id}", segment.chr_name, str(segment.start), str(segment.end), *extra]
    return "_".join(parts) + ".fas"


class FastaEmitter:
    """Write each joined pair as a ``.fas`` block of target, query and outgroup.

    The outgroup row before the outgroup-only trim follows as ``<name>.raw``
    when present.  The indel runlists go into the header comment.
    """

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)
        self.written: List[Path] = []

    def add_alignment(self, target, query, outgroup, all_indel) -> int:
        segment = SegmentCandidate(target.chr_name, target.chr_start, target.chr_end)
        path = self.output_dir / segment_filename(target.taxon_id, segment, target.name, query.name)
        rows = [
            (target.header, target.seq),
            (query.header, query.seq),
            (f"{outgroup.header}|complex={outgroup.complex}|all_indel={all_indel}", outgroup.seq),
        ]
        if outgroup.raw_seq is not None:
            rows.append((f"{outgroup.name}.raw", outgroup.raw_seq))
        write_fasta(path, rows)
        self.written.append(path)
        logger.debug("Wrote %s", path)
        return len(self.written)


def write_segment_fasta(
    directory: Union[str, Path],
    records: Iterable[SequenceRecord],
    segment: SegmentCandidate,
    first_taxon_id: str,
) -> Path:
    """Snapshot all rows of one segment as ``id<taxon>_<chr>_<start>_<end>.fas``."""
    path = Path(directory) / segment_filename(first_taxon_id, segment)
    write_fasta(path, [(r.name, r.seq) for r in records])
    logger.info("Wrote %s", path)
    return path
