"""Exception hierarchy shared by every join stage."""

from __future__ import annotations

from enum import Enum


class AbortReason(Enum):
    """Why a segment left the pipeline before emission."""

    LOOKUP_MISS = "lookup_miss"
    LENGTH_MISMATCH = "length_mismatch"
    COLUMN_DISAGREEMENT = "column_disagreement"
    COLUMN_INVARIANT = "column_invariant"
    DISTANT = "distant"
    ALIGNER_FAILURE = "aligner_failure"


class AlignJoinError(Exception):
    """Base class for alignjoin errors."""


class ConfigError(AlignJoinError, ValueError):
    """Role or dataset configuration is unusable; the run cannot start."""


class AlignerError(AlignJoinError):
    """The realigner failed or returned rows that cannot be spliced back."""


class SegmentAbort(AlignJoinError):
    """Raised by a stage when the current segment must be abandoned."""

    def __init__(self, reason: AbortReason, message: str = ""):
        super().__init__(message or reason.value)
        self.reason = reason
