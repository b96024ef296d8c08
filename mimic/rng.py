"""Reproducible random streams addressed by (sequence, shuffle) pairs.

Every unit of work derives its own generator from the run seed and its
indices instead of sharing one mutable generator, so the output does not
depend on the order (or the thread) in which units are generated.
"""
import numpy as np


def resolve_seed(seed: int) -> int:
    """Return `seed`, or a fresh seed from system entropy when it is 0."""
    if seed:
        return int(seed)
    # Keep it within 63 bits so it can be printed and passed back on a command line
    return int(np.random.SeedSequence().entropy) & ((1 << 63) - 1) or 1


class RandomStream:
    """Uniform draws backed by one PCG64 generator."""

    def __init__(self, generator: np.random.Generator):
        self._gen = generator

    def uniform_index(self, n: int) -> int:
        """Integer in [0, n)."""
        if n <= 0:
            raise ValueError(f"cannot draw an index from an empty range (n={n})")
        return int(self._gen.integers(n))

    def uniform_float(self) -> float:
        """Float in [0, 1)."""
        return float(self._gen.random())


class DeterministicRandomSource:
    """Hands out independent streams keyed by (sequence_index, shuffle_index)."""

    def __init__(self, global_seed: int):
        self.global_seed = int(global_seed)

    def derive_stream(self, sequence_index: int, shuffle_index: int) -> RandomStream:
        seq = np.random.SeedSequence(entropy=self.global_seed,
                                     spawn_key=(int(sequence_index), int(shuffle_index)))
        return RandomStream(np.random.Generator(np.random.PCG64(seq)))


def derive_stream(global_seed: int, sequence_index: int, shuffle_index: int) -> RandomStream:
    return DeterministicRandomSource(global_seed).derive_stream(sequence_index, shuffle_index)
