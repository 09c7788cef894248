"""Named roles – which dataset row plays outgroup, target and each query.

Roles are declared in the ``<dataset-index><side>`` encoding: ``0query``
is the query row of the first dataset, ``0target`` its target row.  The
usual layout aligns the target genome against the outgroup in dataset 0
and against one query genome in each further dataset::

    dbs      = TvsR, TvsQ1, TvsQ2
    outgroup = 0query
    target   = 0target
    queries  = 1query, 2query
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from itertools import combinations
from typing import Dict, Iterator, List, Sequence, Tuple, TypeVar

from alignjoin.errors import ConfigError

T = TypeVar("T")

_ROLE_CODE = re.compile(r"^(\d+)([A-Za-z]+)$")


class RoleKind(Enum):
    OUTGROUP = "outgroup"
    TARGET = "target"
    QUERY = "query"


class Side(Enum):
    """Which row of a pairwise dataset a role reads."""

    TARGET = "target"
    QUERY = "query"


@dataclass(frozen=True)
class Role:
    """One row of the joined alignment."""

    kind: RoleKind
    dataset: int
    side: Side
    index: int = 0  # position among queries, 1-based for QUERY

    @property
    def code(self) -> str:
        return f"{self.dataset}{self.side.value}"

    @property
    def is_ingroup(self) -> bool:
        return self.kind is not RoleKind.OUTGROUP

    def __str__(self) -> str:
        if self.kind is RoleKind.QUERY:
            return f"query{self.index}({self.code})"
        return f"{self.kind.value}({self.code})"


def parse_role_code(code: str) -> Tuple[int, Side]:
    """Split ``"1query"`` into ``(1, Side.QUERY)``."""
    match = _ROLE_CODE.match(code.strip())
    if match is None:
        raise ConfigError(f"Malformed role {code!r}; expected e.g. '0target' or '1query'")
    letters = match.group(2).lower()
    if letters.startswith("t"):
        side = Side.TARGET
    elif letters.startswith("q"):
        side = Side.QUERY
    else:
        raise ConfigError(f"{match.group(2)} is neither target nor query")
    return int(match.group(1)), side


@dataclass(frozen=True)
class RoleMap:
    """The fixed outgroup/target/queries layout of one run."""

    outgroup: Role
    target: Role
    queries: Tuple[Role, ...]

    @classmethod
    def from_codes(
        cls,
        outgroup: str,
        target: str,
        queries: Sequence[str],
        n_datasets: int,
    ) -> "RoleMap":
        """Resolve role codes against *n_datasets* inputs.

        Raises ``ConfigError`` when a role is missing, the dataset count is
        not ``len(queries) + 1``, an index is out of range, or two roles
        point at the same row.
        """
        if not target:
            raise ConfigError("Target not defined")
        if not outgroup:
            raise ConfigError("Outgroup not defined")
        queries = [q for q in queries if q]
        if not queries:
            raise ConfigError("Queries not defined")
        if n_datasets != len(queries) + 1:
            raise ConfigError(
                f"{n_datasets} datasets do not match {len(queries)} queries "
                "(expected one dataset more than queries)"
            )

        def build(kind: RoleKind, code: str, index: int = 0) -> Role:
            dataset, side = parse_role_code(code)
            if dataset >= n_datasets:
                raise ConfigError(f"Role {code!r} refers to dataset {dataset} of {n_datasets}")
            return Role(kind=kind, dataset=dataset, side=side, index=index)

        role_map = cls(
            outgroup=build(RoleKind.OUTGROUP, outgroup),
            target=build(RoleKind.TARGET, target),
            queries=tuple(build(RoleKind.QUERY, q, i) for i, q in enumerate(queries, start=1)),
        )
        codes = [r.code for r in role_map.all_roles]
        if len(set(codes)) != len(codes):
            raise ConfigError(f"Roles must name distinct rows, got {codes}")
        return role_map

    @property
    def all_roles(self) -> List[Role]:
        """Outgroup first, then target, then queries in declared order."""
        return [self.outgroup, self.target, *self.queries]

    @property
    def ingroup(self) -> List[Role]:
        return [self.target, *self.queries]

    def __iter__(self) -> Iterator[Role]:
        return iter(self.all_roles)

    def __len__(self) -> int:
        return len(self.queries) + 2

    def ingroup_pairs(self) -> List[Tuple[Role, Role]]:
        """Every unordered pair of ingroup roles, earlier-declared role first."""
        return list(combinations(self.ingroup, 2))

    def resolve(self, rows_by_dataset: Sequence[Dict[Side, T]]) -> Dict[Role, T]:
        """Pick each role's row out of per-dataset ``{Side: row}`` mappings."""
        return {role: rows_by_dataset[role.dataset][role.side] for role in self.all_roles}
