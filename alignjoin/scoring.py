"""Substitution and gap energies for the built-in realigner."""

import numpy as np


# Base encoding: A=0, C=1, G=2, T=3, anything else (N, IUPAC) = 4
BASE_TO_INT = {"A": 0, "C": 1, "G": 2, "T": 3, "N": 4,
               "a": 0, "c": 1, "g": 2, "t": 3, "n": 4}

# Transition pairs (purine<->purine or pyrimidine<->pyrimidine)
_TRANSITIONS = {(0, 2), (2, 0), (1, 3), (3, 1)}  # A<->G, C<->T


def encode(seq: str) -> np.ndarray:
    """Integer codes for *seq*; unknown characters map to the N code."""
    return np.array([BASE_TO_INT.get(c, 4) for c in seq], dtype=np.int8)


class ScoringModel:
    """Energy parameters for aligning gap-free segments.

    Lower energy is better.  A gap of length ``n`` costs
    ``gap_open_energy + (n - 1) * gap_extend_energy``.
    """

    def __init__(
        self,
        match_energy: float = -2.0,
        mismatch_energy: float = 3.0,
        gap_open_energy: float = 5.0,
        gap_extend_energy: float = 1.0,
        transition_energy: float = 2.0,
        n_energy: float = 0.0,
    ):
        if gap_open_energy < gap_extend_energy:
            raise ValueError("gap_open_energy must not be below gap_extend_energy")
        self.match_energy = match_energy
        self.mismatch_energy = mismatch_energy
        self.gap_open_energy = gap_open_energy
        self.gap_extend_energy = gap_extend_energy
        self.transition_energy = transition_energy
        self.n_energy = n_energy

        self.matrix = np.full((5, 5), mismatch_energy, dtype=float)
        np.fill_diagonal(self.matrix, match_energy)
        for i, j in _TRANSITIONS:
            self.matrix[i, j] = transition_energy
        # N against anything is neutral
        self.matrix[4, :] = n_energy
        self.matrix[:, 4] = n_energy

    def gap_energy(self, length: int) -> float:
        if length <= 0:
            return 0.0
        return self.gap_open_energy + (length - 1) * self.gap_extend_energy

