import math
from typing import Iterator

ISOLEUCINE = "I"
LEUCINE = "L"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (0.5 -> 1, 2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def replace_isoleucine(sequence: str) -> str:
    """Rewrite I to L; the two are isobaric and indistinguishable by mass."""
    return sequence.replace(ISOLEUCINE, LEUCINE)


def wrap_sequence(sequence: str, width: int) -> Iterator[str]:
    """Yield consecutive chunks of at most `width` characters."""
    if width < 1:
        raise ValueError(f"line width must be positive (got {width})")
    for i in range(0, len(sequence), width):
        yield sequence[i:i + width]
