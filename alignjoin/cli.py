"""CLI entry point for alignjoin."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from alignjoin.config import JoinConfig
from alignjoin.dataset import PairwiseDataset, load_dataset
from alignjoin.emit import FastaEmitter
from alignjoin.errors import ConfigError
from alignjoin.msa import COMMANDS, make_aligner
from alignjoin.pipeline import join_alignments
from alignjoin.roles import RoleMap
from alignjoin.segment import select_segments

logger = logging.getLogger(__name__)


def _split(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def _add_input_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--dbs", required=True,
                        help="Comma-separated pairwise datasets (.fas file or directory each)")
    parser.add_argument("--outgroup", required=True, help="Outgroup role, e.g. 0query")
    parser.add_argument("--target", required=True, help="Target role, e.g. 0target")
    parser.add_argument("--queries", required=True, help="Query roles, e.g. 1query,2query")
    parser.add_argument("--config", type=str, help="INI file with [ref]/[join] sections")
    parser.add_argument("--length", type=int, dest="min_length",
                        help="Skip common segments of this length or shorter")
    parser.add_argument("--reduce-end", type=int,
                        help="Trim this many bases off each alignment end (10 for independent datasets)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="alignjoin",
        description="alignjoin – join pairwise alignments sharing a target into multi-way alignments",
    )
    sub = parser.add_subparsers(dest="command")

    # join sub-command
    join_p = sub.add_parser("join", help="Join datasets into multi-way alignments")
    _add_input_args(join_p)
    join_p.add_argument("--goal", type=str, help="Name of the output set")
    join_p.add_argument("--output", type=str, dest="output_dir", help="Output directory")
    join_p.add_argument("--indel-expand", type=int)
    join_p.add_argument("--indel-join", type=int)
    join_p.add_argument("--discard-distant", type=float,
                        help="Percentile of outgroup identity used to drop segments")
    join_p.add_argument("--crude-only", action="store_true", default=None,
                        help="Write pseudo-alignments only")
    join_p.add_argument("--raw-fasta", action="store_true", default=None)
    join_p.add_argument("--trimmed-fasta", action="store_true", default=None)
    join_p.add_argument("--no-insert", action="store_true", default=None,
                        help="Do not write joined pairs")
    join_p.add_argument("--aligner", choices=["progressive", *COMMANDS], default="progressive")
    join_p.add_argument("--workers", type=int)

    # segments sub-command
    seg_p = sub.add_parser("segments", help="List segments covered by every dataset")
    _add_input_args(seg_p)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = _load_config(args)
        datasets = [load_dataset(path) for path in _split(args.dbs)]
        roles = RoleMap.from_codes(args.outgroup, args.target, _split(args.queries), len(datasets))
    except (ConfigError, ValueError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        sys.exit(2)

    if args.command == "join":
        _cmd_join(args, config, datasets, roles)
    elif args.command == "segments":
        _cmd_segments(config, datasets, roles)


def _load_config(args) -> JoinConfig:
    overrides = {
        "min_length": args.min_length,
        "reduce_end": args.reduce_end,
    }
    if args.command == "join":
        overrides.update(
            goal=args.goal,
            output_dir=args.output_dir,
            indel_expand=args.indel_expand,
            indel_join=args.indel_join,
            discard_distant=args.discard_distant,
            crude_only=args.crude_only,
            raw_fasta=args.raw_fasta,
            trimmed_fasta=args.trimmed_fasta,
            no_insert=args.no_insert,
            workers=args.workers,
        )
    if args.config:
        return JoinConfig.from_ini(args.config, **overrides)
    return JoinConfig().with_overrides(**overrides)


def _cmd_join(args, config: JoinConfig, datasets: List[PairwiseDataset], roles: RoleMap) -> None:
    emitter = None
    if config.inserts:
        emitter = FastaEmitter(Path(config.output_dir) / f"{config.goal}.pairs")
    summary = join_alignments(datasets, roles, config, make_aligner(args.aligner), emitter)
    print(summary)


def _cmd_segments(config: JoinConfig, datasets: List[PairwiseDataset], roles: RoleMap) -> None:
    for segment in select_segments(datasets, roles.target.dataset, config.min_length, config.reduce_end):
        print(f"{segment}\t{segment.length}")
