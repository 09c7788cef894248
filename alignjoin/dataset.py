"""Genome datasets – one target genome pairwise-aligned against one query genome.

A dataset answers the coordinate questions the join needs: which stored
alignment covers a target chromosome position, which alignment column
that position falls on, and where a column lands on the query chromosome.
``PairwiseDataset`` is the in-memory implementation, loaded from ``.fas``
files.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Tuple, Union

import numpy as np

from alignjoin.indel import GAP, pair_seq_stat
from alignjoin.intspan import IntervalSet
from alignjoin.io import read_fas_blocks

logger = logging.getLogger(__name__)

FAS_SUFFIXES = (".fas", ".fa", ".fasta", ".fas.gz", ".fa.gz", ".fasta.gz")


@dataclass(frozen=True)
class TaxonInfo:
    """Identity of one side of a pairwise dataset."""

    taxon_id: str
    name: str


@dataclass
class PairwiseAlignment:
    """One stored target/query alignment block."""

    target_seq: str
    query_seq: str
    target_chr: str
    target_start: int
    target_end: int
    query_chr: str
    query_start: int
    query_end: int
    target_strand: str = "+"
    query_strand: str = "+"
    _target_columns: Optional[np.ndarray] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if len(self.target_seq) != len(self.query_seq):
            raise ValueError("Target and query rows differ in length")
        residues = len(self.target_seq) - self.target_seq.count(GAP)
        if residues != self.target_end - self.target_start + 1:
            raise ValueError(
                f"Target row has {residues} residues but spans "
                f"{self.target_chr}:{self.target_start}-{self.target_end}"
            )
        row = np.frombuffer(self.target_seq.encode("ascii"), dtype=np.uint8)
        self._target_columns = np.flatnonzero(row != ord(GAP))

    @property
    def length(self) -> int:
        return len(self.target_seq)

    def covers(self, chr_name: str, pos: int) -> bool:
        return chr_name == self.target_chr and self.target_start <= pos <= self.target_end

    def column_of(self, chr_pos: int) -> int:
        """1-based column holding target chromosome position *chr_pos*."""
        return int(self._target_columns[chr_pos - self.target_start]) + 1


class CoordinateTranslator(Protocol):
    """Maps target chromosome coordinates onto stored alignments."""

    def locate(
        self, chr_name: str, chr_pos: int, chr_end: Optional[int] = None
    ) -> Optional[Tuple[int, bool]]:
        """``(alignment_id, ambiguous)`` or ``None`` when nothing covers *chr_pos*.

        With *chr_end* the alignment must cover *chr_pos*..*chr_end* whole.
        """

    def at_align(self, alignment_id: int, chr_pos: int) -> Optional[int]:
        """1-based alignment column of target position *chr_pos*."""

    def to_query_chr(self, alignment_id: int, aligned_pos: int) -> int:
        """Query chromosome position at alignment column *aligned_pos*."""


class GenomeDataset(CoordinateTranslator, Protocol):
    """A translator plus taxon identity, coverage and sequence access."""

    name: str
    target: TaxonInfo
    query: TaxonInfo

    def chromosomes(self) -> List[str]: ...

    def valid_positions(self, chr_name: str, reduce_end: int = 0) -> IntervalSet: ...

    def get_alignment(self, alignment_id: int) -> PairwiseAlignment: ...

    def get_aligned_pair(self, alignment_id: int) -> Tuple[str, str]: ...

    def identity_ratios(self) -> np.ndarray: ...


class PairwiseDataset:
    """In-memory dataset of pairwise alignments; alignment ids start at 1."""

    def __init__(
        self,
        name: str,
        alignments: Iterable[PairwiseAlignment],
        target: TaxonInfo,
        query: TaxonInfo,
    ):
        self.name = name
        self.target = target
        self.query = query
        self._alignments: Dict[int, PairwiseAlignment] = {
            i: aln for i, aln in enumerate(alignments, start=1)
        }
        self._by_chr: Dict[str, List[int]] = {}
        for align_id, aln in self._alignments.items():
            self._by_chr.setdefault(aln.target_chr, []).append(align_id)
        for ids in self._by_chr.values():
            ids.sort(key=lambda i: self._alignments[i].target_start)

    def __len__(self) -> int:
        return len(self._alignments)

    def __repr__(self) -> str:
        return f"PairwiseDataset({self.name!r}, {len(self)} alignments)"

    # ------------------------------------------------------------------
    # Coverage
    # ------------------------------------------------------------------

    def chromosomes(self) -> List[str]:
        return sorted(self._by_chr)

    def valid_positions(self, chr_name: str, reduce_end: int = 0) -> IntervalSet:
        """Target positions covered by alignments on *chr_name*.

        Each alignment's range is shrunk by *reduce_end* at both ends so
        that overlapping alignment edges drop out.
        """
        chr_set = IntervalSet()
        for align_id in self._by_chr.get(chr_name, []):
            aln = self._alignments[align_id]
            start = aln.target_start + reduce_end
            end = aln.target_end - reduce_end
            if start > end:
                continue
            chr_set.add_range(start, end)
        return chr_set

    # ------------------------------------------------------------------
    # Coordinate translation
    # ------------------------------------------------------------------

    def locate(
        self, chr_name: str, chr_pos: int, chr_end: Optional[int] = None
    ) -> Optional[Tuple[int, bool]]:
        hits = [
            align_id
            for align_id in self._by_chr.get(chr_name, [])
            if self._alignments[align_id].covers(chr_name, chr_pos)
        ]
        ambiguous = len(hits) > 1
        if chr_end is not None:
            hits = [i for i in hits if self._alignments[i].covers(chr_name, chr_end)]
        if not hits:
            return None
        return hits[0], ambiguous

    def at_align(self, alignment_id: int, chr_pos: int) -> Optional[int]:
        aln = self.get_alignment(alignment_id)
        if not aln.covers(aln.target_chr, chr_pos):
            return None
        return aln.column_of(chr_pos)

    def to_query_chr(self, alignment_id: int, aligned_pos: int) -> int:
        aln = self.get_alignment(alignment_id)
        aligned_pos = min(max(aligned_pos, 1), aln.length)
        residues = aligned_pos - aln.query_seq[:aligned_pos].count(GAP)
        residues = max(residues, 1)
        if aln.query_strand == "-":
            return aln.query_end - residues + 1
        return aln.query_start + residues - 1

    # ------------------------------------------------------------------
    # Sequences
    # ------------------------------------------------------------------

    def get_alignment(self, alignment_id: int) -> PairwiseAlignment:
        try:
            return self._alignments[alignment_id]
        except KeyError:
            raise KeyError(f"No alignment {alignment_id} in {self.name}") from None

    def get_aligned_pair(self, alignment_id: int) -> Tuple[str, str]:
        aln = self.get_alignment(alignment_id)
        return aln.target_seq, aln.query_seq

    def identity_ratios(self) -> np.ndarray:
        """Identities / alignment length for every stored alignment."""
        return np.array(
            [pair_seq_stat(a.target_seq, a.query_seq).identity for a in self._alignments.values()],
            dtype=float,
        )


def _fas_files(path: Path) -> List[Path]:
    if path.is_file():
        return [path]
    return sorted(p for p in path.rglob("*") if p.is_file() and p.name.endswith(FAS_SUFFIXES))


def load_dataset(path: Union[str, Path], name: Optional[str] = None) -> PairwiseDataset:
    """Build a ``PairwiseDataset`` from a ``.fas`` file or a directory of them.

    Every block contributes its first row as target and its second row as
    query; further rows are ignored.
    """
    path = Path(path)
    files = _fas_files(path)
    if not files:
        raise FileNotFoundError(f"No .fas files under {path}")

    alignments: List[PairwiseAlignment] = []
    target: Optional[TaxonInfo] = None
    query: Optional[TaxonInfo] = None
    for fas in files:
        for block in read_fas_blocks(fas):
            if len(block) < 2:
                logger.warning("Skipping single-row block in %s", fas)
                continue
            (t_head, t_seq), (q_head, q_seq) = block[0], block[1]
            if target is None:
                target = TaxonInfo(taxon_id=t_head.name, name=t_head.name)
                query = TaxonInfo(taxon_id=q_head.name, name=q_head.name)
            alignments.append(
                PairwiseAlignment(
                    target_seq=t_seq.upper(),
                    query_seq=q_seq.upper(),
                    target_chr=t_head.chr_name,
                    target_start=t_head.start,
                    target_end=t_head.end,
                    target_strand=t_head.strand,
                    query_chr=q_head.chr_name,
                    query_start=q_head.start,
                    query_end=q_head.end,
                    query_strand=q_head.strand,
                )
            )

    if target is None or query is None:
        raise ValueError(f"No pairwise blocks found under {path}")
    dataset = PairwiseDataset(name or path.stem, alignments, target=target, query=query)
    logger.info("Loaded %s from %d file(s)", dataset, len(files))
    return dataset
