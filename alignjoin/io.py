"""Sequence I/O – FASTA and pairwise ``.fas`` blocks (plain and gzipped)."""

from __future__ import annotations

import gzip
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Generator, Iterable, List, Tuple, Union


@dataclass
class Sequence:
    """A named (possibly gapped) sequence row."""

    name: str
    seq: str


@dataclass(frozen=True)
class FasHeader:
    """Parsed ``>name.chr(strand):start-end`` header of one ``.fas`` row."""

    name: str
    chr_name: str
    strand: str
    start: int
    end: int

    def __str__(self) -> str:
        return f"{self.name}.{self.chr_name}({self.strand}):{self.start}-{self.end}"


_FAS_HEADER = re.compile(
    r"^(?P<name>[^.\s]+)\.(?P<chr>[^(:\s]+)"
    r"(?:\((?P<strand>[+-])\))?"
    r":(?P<start>\d+)-(?P<end>\d+)"
)


def _open(filepath: Path, mode: str):
    opener = gzip.open if filepath.suffix == ".gz" else open
    return opener(filepath, mode)  # type: ignore[operator]


def read_fasta(filepath: Union[str, Path]) -> Generator[Tuple[str, str], None, None]:
    """Yield (name, sequence) tuples from a FASTA file.

    Supports plain-text and gzip-compressed files (.gz).
    """
    filepath = Path(filepath)

    name: str | None = None
    parts: list[str] = []

    with _open(filepath, "rt") as fh:
        for line in fh:
            line = line.rstrip("\n").rstrip("\r")
            if line.startswith(">"):
                if name is not None:
                    yield name, "".join(parts)
                name = line[1:].split()[0]
                parts = []
            elif line.strip():
                parts.append(line.strip())
        if name is not None:
            yield name, "".join(parts)


def write_fasta(
    filepath: Union[str, Path],
    sequences: Iterable[Union[Tuple[str, str], Sequence]],
    line_width: int = 0,
) -> None:
    """Write sequences to a FASTA file.

    *sequences* can be an iterable of ``(name, seq)`` tuples or
    ``Sequence`` objects.  ``line_width=0`` writes each row on one line,
    the usual layout for alignment blocks.
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with _open(filepath, "wt") as fh:
        for item in sequences:
            if isinstance(item, Sequence):
                name, seq = item.name, item.seq
            else:
                name, seq = item
            fh.write(f">{name}\n")
            if seq and line_width > 0:
                for i in range(0, len(seq), line_width):
                    fh.write(seq[i : i + line_width] + "\n")
            else:
                fh.write(seq + "\n")


def parse_fas_header(header: str) -> FasHeader:
    """Parse ``name.chr(strand):start-end``; strand defaults to ``+``."""
    match = _FAS_HEADER.match(header.lstrip(">"))
    if match is None:
        raise ValueError(f"Malformed .fas header: {header!r}")
    start, end = int(match["start"]), int(match["end"])
    if start > end:
        raise ValueError(f"Header range is reversed: {header!r}")
    return FasHeader(
        name=match["name"],
        chr_name=match["chr"],
        strand=match["strand"] or "+",
        start=start,
        end=end,
    )


def read_fas_blocks(
    filepath: Union[str, Path],
) -> Generator[List[Tuple[FasHeader, str]], None, None]:
    """Yield alignment blocks from a ``.fas`` file.

    Blocks are separated by blank lines; each row is ``(FasHeader, seq)``
    and all rows of a block must have the same length.
    """
    filepath = Path(filepath)
    block: List[Tuple[FasHeader, str]] = []
    header: FasHeader | None = None
    parts: list[str] = []

    def flush_row() -> None:
        nonlocal header, parts
        if header is not None:
            block.append((header, "".join(parts)))
        header, parts = None, []

    def finish_block() -> List[Tuple[FasHeader, str]]:
        lengths = {len(seq) for _, seq in block}
        if len(lengths) > 1:
            raise ValueError(f"Rows of differing length in block of {filepath}")
        return list(block)

    with _open(filepath, "rt") as fh:
        for line in fh:
            line = line.strip()
            if line.startswith(">"):
                flush_row()
                header = parse_fas_header(line[1:])
            elif line:
                parts.append(line)
            else:
                flush_row()
                if block:
                    yield finish_block()
                    block = []
        flush_row()
        if block:
            yield finish_block()
