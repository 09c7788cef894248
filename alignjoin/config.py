"""Run configuration for joining pairwise alignments."""

from __future__ import annotations

import configparser
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Union

from alignjoin.errors import ConfigError

# INI key -> JoinConfig field, per section
_INI_KEYS = {
    "ref": {
        "length_threshold": "min_length",
        "reduce_end": "reduce_end",
        "indel_expand": "indel_expand",
        "indel_join": "indel_join",
        "raw_fasta": "raw_fasta",
        "trimmed_fasta": "trimmed_fasta",
    },
    "join": {
        "discard_distant": "discard_distant",
        "crude_only": "crude_only",
        "no_insert": "no_insert",
        "output_dir": "output_dir",
        "goal": "goal",
        "workers": "workers",
        "abort_on_aligner_error": "abort_on_aligner_error",
    },
}


@dataclass(frozen=True)
class JoinConfig:
    """Immutable parameters shared by every segment of a run.

    Attributes
    ----------
    min_length : int
        Common segments of this length or shorter are skipped.
    reduce_end : int
        Bases trimmed from both ends of every stored alignment before
        coverage sets are intersected.
    indel_expand : int
        Flank added around each gap run when looking for realign windows.
    indel_join : int
        Realign windows closer than this are merged.
    discard_distant : float
        Percentile (0-100) of outgroup identities; 0 disables the filter.
    crude_only : bool
        Stop after the pseudo-alignment and write crude FASTA only.
    raw_fasta, trimmed_fasta : bool
        Write FASTA snapshots after realignment / after complex resolution.
    """

    min_length: int = 5000
    reduce_end: int = 0
    indel_expand: int = 50
    indel_join: int = 50
    discard_distant: float = 0.0
    crude_only: bool = False
    raw_fasta: bool = False
    trimmed_fasta: bool = False
    no_insert: bool = False
    output_dir: str = "."
    goal: str = "joined"
    workers: int = 1
    abort_on_aligner_error: bool = False

    def __post_init__(self) -> None:
        for name in ("min_length", "reduce_end", "indel_expand", "indel_join"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be non-negative")
        if not 0 <= self.discard_distant <= 100:
            raise ConfigError("discard_distant is a percentile between 0 and 100")
        if self.workers < 1:
            raise ConfigError("workers must be at least 1")

    @property
    def inserts(self) -> bool:
        """Whether joined alignments are handed to the emitter."""
        return not (self.no_insert or self.crude_only)

    @property
    def output_path(self) -> Path:
        return Path(self.output_dir)

    def with_overrides(self, **overrides: Any) -> "JoinConfig":
        """Copy with every non-``None`` override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_ini(cls, path: Union[str, Path], **overrides: Any) -> "JoinConfig":
        """Read ``[ref]`` and ``[join]`` sections of an INI file.

        Unknown keys are ignored; *overrides* that are not ``None`` win
        over file values.
        """
        parser = configparser.ConfigParser()
        if not parser.read(path):
            raise ConfigError(f"Cannot read config file {path}")

        types = {f.name: f.type for f in fields(cls)}
        values: Dict[str, Any] = {}
        for section, keys in _INI_KEYS.items():
            if not parser.has_section(section):
                continue
            for key, attr in keys.items():
                if not parser.has_option(section, key):
                    continue
                try:
                    values[attr] = _convert(parser, section, key, types[attr])
                except ValueError as exc:
                    raise ConfigError(f"[{section}] {key}: {exc}") from exc
        return cls(**values).with_overrides(**overrides)


def _convert(parser: configparser.ConfigParser, section: str, key: str, type_name: str) -> Any:
    # field types are strings under postponed annotations
    if type_name == "bool":
        return parser.getboolean(section, key)
    if type_name == "int":
        return parser.getint(section, key)
    if type_name == "float":
        return parser.getfloat(section, key)
    return parser.get(section, key)
