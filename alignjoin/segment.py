"""Common segment selection across all input datasets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Sequence

from alignjoin.dataset import GenomeDataset
from alignjoin.intspan import IntervalSet, intersect_all

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SegmentCandidate:
    """A chromosome range covered by every dataset (1-based, inclusive)."""

    chr_name: str
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def __str__(self) -> str:
        return f"{self.chr_name}:{self.start}-{self.end}"


def common_positions(
    datasets: Sequence[GenomeDataset],
    chr_name: str,
    reduce_end: int = 0,
) -> IntervalSet:
    """Intersect every dataset's valid positions on *chr_name*.

    A dataset without alignments on the chromosome contributes an empty
    set, so the result is empty too.
    """
    return intersect_all(ds.valid_positions(chr_name, reduce_end) for ds in datasets)


def select_segments(
    datasets: Sequence[GenomeDataset],
    target_dataset: int = 0,
    min_length: int = 0,
    reduce_end: int = 0,
) -> Iterator[SegmentCandidate]:
    """Yield segments covered by all datasets, longer than *min_length*.

    Chromosomes come from the dataset holding the target row, in ascending
    order; segments within a chromosome ascend by start.
    """
    for chr_name in sorted(datasets[target_dataset].chromosomes()):
        common = common_positions(datasets, chr_name, reduce_end)
        logger.debug("%s: common positions %s", chr_name, common.runlist())
        for start, end in common.spans():
            segment = SegmentCandidate(chr_name, start, end)
            if segment.length <= min_length:
                continue
            yield segment
