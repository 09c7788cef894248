"""Multiple aligners used to refine indel windows.

``ProgressiveAligner`` works in-process: each gap-stripped row is aligned
globally to a centre row with an affine-gap DP and the pairwise results
are merged centre-star fashion.  ``CommandAligner`` hands the rows to an
external program (clustalw, muscle or mafft) through a temporary FASTA
file.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

import numpy as np

from alignjoin.errors import AlignerError
from alignjoin.indel import GAP
from alignjoin.io import read_fasta, write_fasta
from alignjoin.scoring import ScoringModel, encode

logger = logging.getLogger(__name__)

# traceback states
_MATCH, _DEL, _INS = 0, 1, 2


class ExternalAligner(Protocol):
    """Realigns N related rows; returns N equal-length rows in input order."""

    def align(self, sequences: Sequence[str]) -> List[str]: ...


def strip_gaps(seq: str) -> str:
    return seq.replace(GAP, "")


class ProgressiveAligner:
    """Centre-star multiple alignment built on global affine-gap DP."""

    def __init__(self, scoring: Optional[ScoringModel] = None):
        self.scoring = scoring or ScoringModel()

    def align(self, sequences: Sequence[str]) -> List[str]:
        rows = [strip_gaps(s) for s in sequences]
        if not rows:
            return []
        if not any(rows):
            return list(sequences)

        centre = max(range(len(rows)), key=lambda i: len(rows[i]))
        msa = [rows[centre]]
        order = [centre]
        for i, row in enumerate(rows):
            if i == centre:
                continue
            pair_centre, pair_row = self.align_pair(rows[centre], row)
            msa = _merge(msa, pair_centre, pair_row)
            order.append(i)

        result: List[str] = [""] * len(rows)
        for aligned, i in zip(msa, order):
            result[i] = aligned
        return result

    def align_pair(self, seq_a: str, seq_b: str) -> Tuple[str, str]:
        """Global alignment of two gap-free sequences (lowest energy wins)."""
        n, m = len(seq_a), len(seq_b)
        if n == 0:
            return GAP * m, seq_b
        if m == 0:
            return seq_a, GAP * n

        sc = self.scoring
        go, ge = sc.gap_open_energy, sc.gap_extend_energy
        INF = float("inf")
        enc_a = encode(seq_a.upper())
        enc_b = encode(seq_b.upper())

        # H: a[i-1] over b[j-1]; E: a[i-1] over a gap; F: a gap over b[j-1]
        H = np.full((n + 1, m + 1), INF)
        E = np.full((n + 1, m + 1), INF)
        F = np.full((n + 1, m + 1), INF)
        ptr = np.zeros((3, n + 1, m + 1), dtype=np.int8)

        H[0, 0] = 0.0
        for i in range(1, n + 1):
            E[i, 0] = sc.gap_energy(i)
            ptr[_DEL, i, 0] = _DEL if i > 1 else _MATCH
        for j in range(1, m + 1):
            F[0, j] = sc.gap_energy(j)
            ptr[_INS, 0, j] = _INS if j > 1 else _MATCH

        for i in range(1, n + 1):
            for j in range(1, m + 1):
                sub = float(sc.matrix[enc_a[i - 1], enc_b[j - 1]])
                prev = (H[i - 1, j - 1], E[i - 1, j - 1], F[i - 1, j - 1])
                best = int(np.argmin(prev))
                H[i, j] = prev[best] + sub
                ptr[_MATCH, i, j] = best

                prev = (H[i - 1, j] + go, E[i - 1, j] + ge, F[i - 1, j] + go)
                best = int(np.argmin(prev))
                E[i, j] = prev[best]
                ptr[_DEL, i, j] = best

                prev = (H[i, j - 1] + go, E[i, j - 1] + go, F[i, j - 1] + ge)
                best = int(np.argmin(prev))
                F[i, j] = prev[best]
                ptr[_INS, i, j] = best

        state = int(np.argmin((H[n, m], E[n, m], F[n, m])))
        out_a: List[str] = []
        out_b: List[str] = []
        i, j = n, m
        while i > 0 or j > 0:
            prev_state = int(ptr[state, i, j])
            if state == _MATCH:
                out_a.append(seq_a[i - 1])
                out_b.append(seq_b[j - 1])
                i -= 1
                j -= 1
            elif state == _DEL:
                out_a.append(seq_a[i - 1])
                out_b.append(GAP)
                i -= 1
            else:
                out_a.append(GAP)
                out_b.append(seq_b[j - 1])
                j -= 1
            state = prev_state

        return "".join(reversed(out_a)), "".join(reversed(out_b))


def _slots(anchor: str) -> Tuple[List[List[int]], List[int]]:
    """Split *anchor* columns into gap slots around its residues.

    Slot ``k`` holds the gap columns before residue ``k``; the last slot
    holds the trailing gaps.
    """
    slots: List[List[int]] = [[]]
    residues: List[int] = []
    for col, ch in enumerate(anchor):
        if ch == GAP:
            slots[-1].append(col)
        else:
            residues.append(col)
            slots.append([])
    return slots, residues


def _merge(msa: List[str], pair_centre: str, pair_row: str) -> List[str]:
    """Add *pair_row* to *msa*, whose first row is the gapped centre."""
    m_slots, m_res = _slots(msa[0])
    p_slots, p_res = _slots(pair_centre)
    rows: List[List[str]] = [[] for _ in msa]
    new: List[str] = []

    for k, (m_slot, p_slot) in enumerate(zip(m_slots, p_slots)):
        width = max(len(m_slot), len(p_slot))
        for r, seq in enumerate(msa):
            rows[r].extend(seq[c] for c in m_slot)
            rows[r].append(GAP * (width - len(m_slot)))
        new.extend(pair_row[c] for c in p_slot)
        new.append(GAP * (width - len(p_slot)))
        if k < len(m_res):
            for r, seq in enumerate(msa):
                rows[r].append(seq[m_res[k]])
            new.append(pair_row[p_res[k]])

    return ["".join(r) for r in rows] + ["".join(new)]


# program -> argv template; {infile}/{outfile} are filled in
COMMANDS: Dict[str, List[str]] = {
    "clustalw": ["clustalw", "-INFILE={infile}", "-OUTFILE={outfile}",
                 "-OUTPUT=FASTA", "-OUTORDER=INPUT", "-QUIET"],
    "muscle": ["muscle", "-in", "{infile}", "-out", "{outfile}", "-quiet"],
    "mafft": ["mafft", "--quiet", "--auto", "{infile}"],
}


class CommandAligner:
    """Run an external multiple aligner on a temporary FASTA file.

    Programs that write to stdout (``mafft``) are read from stdout; the
    others from ``outfile``.  All-gap rows are left out of the call and come
    back as all-gap rows.
    """

    def __init__(self, program: str = "clustalw", executable: Optional[str] = None,
                 timeout: Optional[float] = None):
        if program not in COMMANDS:
            raise ValueError(f"Unknown aligner program: {program}")
        self.program = program
        self.executable = executable or shutil.which(COMMANDS[program][0]) or COMMANDS[program][0]
        self.timeout = timeout

    def _argv(self, infile: Path, outfile: Path) -> List[str]:
        template = COMMANDS[self.program]
        argv = [self.executable] + [
            arg.format(infile=infile, outfile=outfile) for arg in template[1:]
        ]
        return argv

    def align(self, sequences: Sequence[str]) -> List[str]:
        rows = [strip_gaps(s) for s in sequences]
        present = [i for i, row in enumerate(rows) if row]
        if len(present) < 2:
            # nothing to align against; pad to a common width
            width = max((len(r) for r in rows), default=0)
            return [r + GAP * (width - len(r)) for r in rows]

        with tempfile.TemporaryDirectory(prefix="alignjoin-") as tmp:
            infile = Path(tmp) / "in.fas"
            outfile = Path(tmp) / "out.fas"
            write_fasta(infile, [(f"seq{i}", rows[i]) for i in present])
            argv = self._argv(infile, outfile)
            logger.debug("Running %s", " ".join(argv))
            try:
                proc = subprocess.run(
                    argv, capture_output=True, text=True, timeout=self.timeout, check=False
                )
            except (OSError, subprocess.TimeoutExpired) as exc:
                raise AlignerError(f"{self.program} could not run: {exc}") from exc
            if proc.returncode != 0:
                raise AlignerError(
                    f"{self.program} exited with {proc.returncode}: {proc.stderr.strip()}"
                )
            if self.program == "mafft":
                outfile.write_text(proc.stdout)
            if not outfile.exists():
                raise AlignerError(f"{self.program} wrote no output")
            aligned = dict(read_fasta(outfile))

        missing = [i for i in present if f"seq{i}" not in aligned]
        if missing:
            raise AlignerError(f"{self.program} dropped rows {missing}")
        width = len(aligned[f"seq{present[0]}"])
        return [aligned[f"seq{i}"].upper() if rows[i] else GAP * width for i in range(len(rows))]


def make_aligner(name: str = "progressive") -> ExternalAligner:
    """Aligner by name: ``progressive`` or one of ``COMMANDS``."""
    if name == "progressive":
        return ProgressiveAligner()
    return CommandAligner(name)
