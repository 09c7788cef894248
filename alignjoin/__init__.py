"""
alignjoin: join pairwise genome alignments that share a target into one
multi-way alignment per common segment.

Each input dataset aligns the target genome against one other genome.
The join finds target ranges covered by every dataset, synchronises the
independently gapped target rows, realigns indel-dense windows, trims
outgroup-only and all-gap columns, and classifies complex indels before
handing every ingroup pair to an emitter.
"""

__version__ = "0.1.0"

from alignjoin.intspan import IntervalSet, union_all, intersect_all
from alignjoin.config import JoinConfig
from alignjoin.roles import Role, RoleKind, RoleMap
from alignjoin.dataset import PairwiseAlignment, PairwiseDataset, TaxonInfo, load_dataset
from alignjoin.segment import SegmentCandidate, select_segments
from alignjoin.assemble import SequenceRecord, assemble_segment
from alignjoin.pseudo import build_pseudo_alignment
from alignjoin.msa import ProgressiveAligner, CommandAligner
from alignjoin.emit import FastaEmitter, MemoryEmitter
from alignjoin.errors import AbortReason, AlignerError, ConfigError, SegmentAbort
from alignjoin.pipeline import JoinSummary, SegmentResult, SegmentState, join_alignments, process_segment

__all__ = [
    "IntervalSet",
    "union_all",
    "intersect_all",
    "JoinConfig",
    "Role",
    "RoleKind",
    "RoleMap",
    "PairwiseAlignment",
    "PairwiseDataset",
    "TaxonInfo",
    "load_dataset",
    "SegmentCandidate",
    "select_segments",
    "SequenceRecord",
    "assemble_segment",
    "build_pseudo_alignment",
    "ProgressiveAligner",
    "CommandAligner",
    "FastaEmitter",
    "MemoryEmitter",
    "AbortReason",
    "AlignerError",
    "ConfigError",
    "SegmentAbort",
    "JoinSummary",
    "SegmentResult",
    "SegmentState",
    "join_alignments",
    "process_segment",
]
