"""Integer span sets – sorted, non-overlapping closed ranges with set algebra.

Positions are non-negative integers.  Alignment columns and chromosome
coordinates are both 1-based, so a set of gap columns in ``"A--T"`` reads
``"2-3"``.
"""

from __future__ import annotations

from functools import reduce
from typing import Iterable, Iterator, List, Tuple, Union

Span = Tuple[int, int]
SpanLike = Union["IntervalSet", Span, str, int]

EMPTY_RUNLIST = "-"


def _normalize(spans: Iterable[Span]) -> List[Span]:
    """Sort *spans* and merge any that overlap or touch."""
    merged: List[Span] = []
    for lo, hi in sorted(spans):
        if merged and lo <= merged[-1][1] + 1:
            if hi > merged[-1][1]:
                merged[-1] = (merged[-1][0], hi)
        else:
            merged.append((lo, hi))
    return merged


def _check_range(lo: int, hi: int) -> None:
    if lo < 0:
        raise ValueError(f"Negative position: {lo}")
    if lo > hi:
        raise ValueError(f"Invalid range: {lo}-{hi}")


def _parse_runlist(runlist: str) -> List[Span]:
    runlist = runlist.strip()
    if runlist in ("", EMPTY_RUNLIST):
        return []
    spans = []
    for run in runlist.split(","):
        lo_txt, sep, hi_txt = run.strip().partition("-")
        lo = int(lo_txt)
        hi = int(hi_txt) if sep else lo
        _check_range(lo, hi)
        spans.append((lo, hi))
    return spans


class IntervalSet:
    """A normalized set of closed integer ranges.

    Accepts another ``IntervalSet``, a runlist string (``"1-5,8,10-12"``),
    a single integer, or an iterable of ``(lo, hi)`` pairs.
    """

    __slots__ = ("_spans",)

    def __init__(self, source: Union[SpanLike, Iterable[Span], None] = None):
        self._spans: List[Span] = []
        if source is None:
            return
        if isinstance(source, IntervalSet):
            self._spans = list(source._spans)
        elif isinstance(source, str):
            self._spans = _normalize(_parse_runlist(source))
        elif isinstance(source, int):
            _check_range(source, source)
            self._spans = [(source, source)]
        else:
            spans = []
            for lo, hi in source:
                _check_range(lo, hi)
                spans.append((lo, hi))
            self._spans = _normalize(spans)

    @classmethod
    def coerce(cls, other: SpanLike) -> "IntervalSet":
        """Return *other* as an ``IntervalSet``; a tuple is one closed range."""
        if isinstance(other, IntervalSet):
            return other
        if isinstance(other, tuple):
            return cls([other])
        return cls(other)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, pos: int) -> "IntervalSet":
        return self.add_range(pos, pos)

    def add_range(self, lo: int, hi: int) -> "IntervalSet":
        _check_range(lo, hi)
        self._spans = _normalize(self._spans + [(lo, hi)])
        return self

    def merge(self, *others: SpanLike) -> "IntervalSet":
        """In-place union with every set in *others*."""
        spans = list(self._spans)
        for other in others:
            spans.extend(IntervalSet.coerce(other)._spans)
        self._spans = _normalize(spans)
        return self

    def banish_span(self, lo: int, hi: int) -> "IntervalSet":
        """Remove columns *lo*..*hi* and renumber everything above *hi*.

        Elements above *hi* shift down by ``hi - lo + 1`` so the set keeps
        describing the same residues of a sequence that lost those columns.
        Mutates and returns ``self``.  Callers removing several regions from
        one coordinate frame must go from the highest range to the lowest.
        """
        _check_range(lo, hi)
        width = hi - lo + 1
        spans: List[Span] = []
        for a, b in self._spans:
            if b < lo:
                spans.append((a, b))
            elif a > hi:
                spans.append((a - width, b - width))
            else:
                if a < lo:
                    spans.append((a, lo - 1))
                if b > hi:
                    spans.append((lo, b - width))
        self._spans = _normalize(spans)
        return self

    # ------------------------------------------------------------------
    # Set algebra (pure)
    # ------------------------------------------------------------------

    def union(self, *others: SpanLike) -> "IntervalSet":
        return self.copy().merge(*others)

    def intersect(self, *others: SpanLike) -> "IntervalSet":
        result = self
        for other in others:
            result = result._intersect_one(IntervalSet.coerce(other))
        return result if others else self.copy()

    def _intersect_one(self, other: "IntervalSet") -> "IntervalSet":
        out: List[Span] = []
        i = j = 0
        a, b = self._spans, other._spans
        while i < len(a) and j < len(b):
            lo = max(a[i][0], b[j][0])
            hi = min(a[i][1], b[j][1])
            if lo <= hi:
                out.append((lo, hi))
            if a[i][1] < b[j][1]:
                i += 1
            else:
                j += 1
        result = IntervalSet()
        result._spans = out
        return result

    def subtract(self, other: SpanLike) -> "IntervalSet":
        other = IntervalSet.coerce(other)
        out: List[Span] = []
        j = 0
        holes = other._spans
        for lo, hi in self._spans:
            while j < len(holes) and holes[j][1] < lo:
                j += 1
            k = j
            cur = lo
            while k < len(holes) and holes[k][0] <= hi:
                if holes[k][0] > cur:
                    out.append((cur, holes[k][0] - 1))
                cur = max(cur, holes[k][1] + 1)
                k += 1
            if cur <= hi:
                out.append((cur, hi))
        result = IntervalSet()
        result._spans = out
        return result

    def expand(self, n: int) -> "IntervalSet":
        """Grow every span by *n* on both sides, clamped at zero."""
        if n < 0:
            raise ValueError("expand() needs a non-negative width")
        return IntervalSet((max(0, lo - n), hi + n) for lo, hi in self._spans)

    def fill(self, gap: int) -> "IntervalSet":
        """Fill holes of at most *gap* positions between neighbouring spans."""
        if gap < 0:
            raise ValueError("fill() needs a non-negative gap")
        out: List[Span] = []
        for lo, hi in self._spans:
            if out and lo - out[-1][1] - 1 <= gap:
                out[-1] = (out[-1][0], hi)
            else:
                out.append((lo, hi))
        result = IntervalSet()
        result._spans = out
        return result

    def join_span(self, gap: int) -> "IntervalSet":
        """Join spans separated by at most *gap* uncovered positions."""
        return self.fill(gap)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_empty(self) -> bool:
        return not self._spans

    def is_not_empty(self) -> bool:
        return bool(self._spans)

    def size(self) -> int:
        return sum(hi - lo + 1 for lo, hi in self._spans)

    def elements(self) -> Iterator[int]:
        for lo, hi in self._spans:
            yield from range(lo, hi + 1)

    def spans(self) -> List[Span]:
        return list(self._spans)

    def sets(self) -> List["IntervalSet"]:
        """One single-span set per maximal run."""
        return [IntervalSet([span]) for span in self._spans]

    def superset(self, other: SpanLike) -> bool:
        other = IntervalSet.coerce(other)
        return other.subtract(self).is_empty()

    def larger_than(self, other: SpanLike) -> bool:
        """True when this set contains *other* and covers more positions."""
        other = IntervalSet.coerce(other)
        return self.superset(other) and self.size() > other.size()

    def runlist(self) -> str:
        if not self._spans:
            return EMPTY_RUNLIST
        return ",".join(str(lo) if lo == hi else f"{lo}-{hi}" for lo, hi in self._spans)

    def copy(self) -> "IntervalSet":
        return IntervalSet(self)

    def __contains__(self, pos: int) -> bool:
        return any(lo <= pos <= hi for lo, hi in self._spans)

    def __iter__(self) -> Iterator[int]:
        return self.elements()

    def __len__(self) -> int:
        return self.size()

    def __bool__(self) -> bool:
        return bool(self._spans)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (IntervalSet, str)):
            return self._spans == IntervalSet.coerce(other)._spans
        return NotImplemented

    def __or__(self, other: SpanLike) -> "IntervalSet":
        return self.union(other)

    def __and__(self, other: SpanLike) -> "IntervalSet":
        return self.intersect(other)

    def __sub__(self, other: SpanLike) -> "IntervalSet":
        return self.subtract(other)

    def __repr__(self) -> str:
        return f"IntervalSet({self.runlist()!r})"

    def __str__(self) -> str:
        return self.runlist()


def union_all(sets: Iterable[SpanLike]) -> IntervalSet:
    """Union of any number of sets; empty input gives an empty set."""
    return reduce(lambda acc, s: acc.union(s), sets, IntervalSet())


def intersect_all(sets: Iterable[SpanLike]) -> IntervalSet:
    """Intersection of any number of sets; empty input gives an empty set."""
    coerced = [IntervalSet.coerce(s) for s in sets]
    if not coerced:
        return IntervalSet()
    return reduce(lambda acc, s: acc.intersect(s), coerced[1:], coerced[0].copy())
