"""Distant-outgroup filter – identity percentile over the outgroup dataset."""

from __future__ import annotations

import logging

import numpy as np

from alignjoin.assemble import AssembledPair
from alignjoin.dataset import GenomeDataset
from alignjoin.errors import AbortReason, SegmentAbort
from alignjoin.indel import pair_seq_stat

logger = logging.getLogger(__name__)


def distant_threshold(dataset: GenomeDataset, percentile: float) -> float:
    """Identity ratio at *percentile* over every alignment of *dataset*.

    This is a whole-run pass and must finish before any segment is judged.
    """
    ratios = dataset.identity_ratios()
    if ratios.size == 0:
        raise ValueError(f"{dataset.name} holds no alignments")
    # nearest rank: the threshold is always one of the observed ratios
    threshold = float(np.percentile(ratios, percentile, method="inverted_cdf"))
    logger.info(
        "Outgroup identity %gth percentile in %s: %.4f (%d alignments)",
        percentile, dataset.name, threshold, ratios.size,
    )
    return threshold


def check_distant(pair: AssembledPair, threshold: float) -> float:
    """Abort the segment when the outgroup pair's identity is below *threshold*.

    Returns the identity ratio otherwise.
    """
    identity = pair_seq_stat(pair.target.seq, pair.query.seq).identity
    if identity < threshold:
        raise SegmentAbort(
            AbortReason.DISTANT,
            f"low percentage identity with outgroup ({identity:.4f} < {threshold:.4f})",
        )
    return identity
