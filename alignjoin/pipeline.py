"""Join pipeline – per-segment processing and the run driver.

Each segment goes through::

    Selected -> Assembled -> Synced -> Realigned -> OutgroupTrimmed
             -> EdgeTrimmed -> ComplexResolved -> Emitted

and any stage up to the pseudo-alignment may abandon it instead.
``process_segment`` owns all rows of one segment and never emits;
``join_alignments`` runs segments over a worker pool and emits finished
segments in order.
"""

from __future__ import annotations

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import partial
from typing import Dict, Iterable, List, Optional, Sequence

from alignjoin.assemble import SequenceRecord, assemble_segment
from alignjoin.complex import resolve_complex
from alignjoin.config import JoinConfig
from alignjoin.dataset import GenomeDataset
from alignjoin.divergence import check_distant, distant_threshold
from alignjoin.emit import AlignmentEmitter, write_segment_fasta
from alignjoin.errors import AbortReason, AlignerError, SegmentAbort
from alignjoin.msa import ExternalAligner, ProgressiveAligner
from alignjoin.pseudo import build_pseudo_alignment, check_columns
from alignjoin.realign import realign_windows
from alignjoin.roles import Role, RoleMap
from alignjoin.segment import SegmentCandidate, select_segments
from alignjoin.trim import trim_header_footer, trim_outgroup

logger = logging.getLogger(__name__)


class SegmentState(Enum):
    SELECTED = "selected"
    ASSEMBLED = "assembled"
    SYNCED = "synced"
    REALIGNED = "realigned"
    OUTGROUP_TRIMMED = "outgroup_trimmed"
    EDGE_TRIMMED = "edge_trimmed"
    COMPLEX_RESOLVED = "complex_resolved"
    EMITTED = "emitted"
    ABANDONED = "abandoned"


@dataclass
class SegmentResult:
    """Everything one segment produced, whether finished or abandoned."""

    segment: SegmentCandidate
    state: SegmentState = SegmentState.SELECTED
    records: Dict[Role, SequenceRecord] = field(default_factory=dict)
    reason: Optional[AbortReason] = None
    message: str = ""
    snapshots: Dict[str, List[SequenceRecord]] = field(default_factory=dict)
    alignment_ids: List[int] = field(default_factory=list)

    @property
    def abandoned(self) -> bool:
        return self.state is SegmentState.ABANDONED

    @property
    def ready(self) -> bool:
        return self.state is SegmentState.COMPLEX_RESOLVED


@dataclass
class JoinSummary:
    """Counts for one run."""

    selected: int = 0
    emitted: int = 0
    crude: int = 0
    resolved: int = 0
    abandoned: Counter = field(default_factory=Counter)
    alignment_ids: List[int] = field(default_factory=list)

    @property
    def total_abandoned(self) -> int:
        return sum(self.abandoned.values())

    def __str__(self) -> str:
        reasons = ", ".join(f"{r.value}={n}" for r, n in sorted(
            self.abandoned.items(), key=lambda item: item[0].value))
        return (
            f"segments={self.selected} resolved={self.resolved} emitted={self.emitted} "
            f"crude={self.crude} abandoned={self.total_abandoned}"
            + (f" ({reasons})" if reasons else "")
        )


def _snapshot(records: Iterable[SequenceRecord]) -> List[SequenceRecord]:
    return [replace(r) for r in records]


def process_segment(
    segment: SegmentCandidate,
    datasets: Sequence[GenomeDataset],
    roles: RoleMap,
    config: JoinConfig,
    aligner: Optional[ExternalAligner] = None,
    threshold: Optional[float] = None,
) -> SegmentResult:
    """Run one segment from assembly to complex resolution.

    Abandoned segments are logged and returned with ``reason`` set; they
    never raise.  ``AlignerError`` propagates unless
    ``config.abort_on_aligner_error`` is set.
    """
    result = SegmentResult(segment=segment)
    aligner = aligner or ProgressiveAligner()
    logger.info("%s; length:%d", segment, segment.length)

    try:
        pairs = assemble_segment(datasets, segment)
        result.state = SegmentState.ASSEMBLED

        if threshold is not None:
            check_distant(pairs[roles.outgroup.dataset], threshold)

        build_pseudo_alignment(pairs)
        records = roles.resolve([p.rows() for p in pairs])
        result.records = records
        result.state = SegmentState.SYNCED
        if config.crude_only:
            result.snapshots["crude"] = _snapshot(records.values())
            return result

        rows = list(records.values())
        realign_windows(rows, aligner, config.indel_expand, config.indel_join)
        check_columns(rows)
        result.state = SegmentState.REALIGNED
        if config.raw_fasta:
            result.snapshots["raw"] = _snapshot(rows)

        trim_outgroup(records, roles.outgroup)
        result.state = SegmentState.OUTGROUP_TRIMMED

        trim_header_footer(rows)
        result.state = SegmentState.EDGE_TRIMMED

        resolve_complex(records, roles.outgroup)
        check_columns(rows)
        result.state = SegmentState.COMPLEX_RESOLVED
        if config.trimmed_fasta:
            result.snapshots["trimmed"] = _snapshot(rows)

    except SegmentAbort as exc:
        _abandon(result, exc.reason, str(exc))
    except AlignerError as exc:
        if not config.abort_on_aligner_error:
            raise
        _abandon(result, AbortReason.ALIGNER_FAILURE, str(exc))

    return result


def _abandon(result: SegmentResult, reason: AbortReason, message: str) -> None:
    logger.warning("%s abandoned at %s: %s", result.segment, result.state.value, message)
    result.state = SegmentState.ABANDONED
    result.reason = reason
    result.message = message
    result.records = {}


def emit_segment(result: SegmentResult, roles: RoleMap, emitter: AlignmentEmitter) -> List[int]:
    """Hand every ingroup pair of a resolved segment to *emitter*."""
    if not result.ready:
        raise ValueError(f"Segment {result.segment} is {result.state.value}, not resolved")
    outgroup = result.records[roles.outgroup]
    for t_role, q_role in roles.ingroup_pairs():
        logger.debug("insert %s %s", t_role, q_role)
        alignment_id = emitter.add_alignment(
            result.records[t_role], result.records[q_role], outgroup, outgroup.all_indel
        )
        result.alignment_ids.append(alignment_id)
    result.state = SegmentState.EMITTED
    return result.alignment_ids


def _write_snapshots(result: SegmentResult, roles: RoleMap, config: JoinConfig) -> None:
    suffix = {"crude": ".crude", "raw": ".raw", "trimmed": ""}
    for kind, records in result.snapshots.items():
        directory = config.output_path / f"{config.goal}{suffix[kind]}"
        first_taxon_id = records[1].taxon_id  # target row follows the outgroup
        write_segment_fasta(directory, records, result.segment, first_taxon_id)


def _finish_segment(
    result: SegmentResult,
    summary: JoinSummary,
    roles: RoleMap,
    config: JoinConfig,
    emitter: Optional[AlignmentEmitter],
) -> None:
    _write_snapshots(result, roles, config)
    if result.abandoned:
        summary.abandoned[result.reason] += 1
    elif result.state is SegmentState.SYNCED:
        summary.crude += 1
    else:
        summary.resolved += 1
        if emitter is not None and config.inserts:
            summary.alignment_ids.extend(emit_segment(result, roles, emitter))
            summary.emitted += 1
    result.snapshots.clear()


def join_alignments(
    datasets: Sequence[GenomeDataset],
    roles: RoleMap,
    config: JoinConfig,
    aligner: Optional[ExternalAligner] = None,
    emitter: Optional[AlignmentEmitter] = None,
) -> JoinSummary:
    """Join all common segments of *datasets* and emit the results.

    Parameters
    ----------
    datasets : sequence of GenomeDataset
        Pairwise datasets, indexed as in the role codes.
    roles : RoleMap
        Outgroup, target and query rows.
    config : JoinConfig
        Run parameters.
    aligner : ExternalAligner, optional
        Window realigner; defaults to ``ProgressiveAligner``.
    emitter : AlignmentEmitter, optional
        Destination for joined pairs; nothing is emitted when ``None`` or
        when ``config.no_insert`` / ``config.crude_only`` is set.

    Returns
    -------
    JoinSummary
    """
    if len(datasets) != len(roles.queries) + 1:
        raise ValueError(f"{len(datasets)} datasets given for {len(roles.queries)} queries")

    threshold = None
    if config.discard_distant:
        threshold = distant_threshold(datasets[roles.outgroup.dataset], config.discard_distant)

    segments = list(select_segments(
        datasets, roles.target.dataset, config.min_length, config.reduce_end))
    summary = JoinSummary(selected=len(segments))
    logger.info("%d common segment(s) longer than %d", len(segments), config.min_length)

    worker = partial(
        process_segment,
        datasets=datasets,
        roles=roles,
        config=config,
        aligner=aligner or ProgressiveAligner(),
        threshold=threshold,
    )

    # results arrive in segment order and are dropped once written
    if config.workers > 1:
        with ThreadPoolExecutor(max_workers=config.workers) as pool:
            for result in pool.map(worker, segments):
                _finish_segment(result, summary, roles, config, emitter)
    else:
        for result in map(worker, segments):
            _finish_segment(result, summary, roles, config, emitter)

    logger.info("Join finished: %s", summary)
    return summary
