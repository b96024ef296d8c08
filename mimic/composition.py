from collections import Counter
from typing import Dict, Iterable, List, Tuple

import numpy as np

from .models import ProteinRecord


class CompositionModel:
    """Amino-acid composition: symbol counts and their relative frequencies.

    Symbols are kept in sorted order, so the weight vector, any cumulative
    table built from it and every tie-break depend on the symbols alone and
    never on the order in which residues were counted.
    """

    def __init__(self, counts: Dict[str, int]):
        self.symbols: Tuple[str, ...] = tuple(sorted(s for s, c in counts.items() if c > 0))
        self.counts = np.array([counts[s] for s in self.symbols], dtype=np.int64)
        self.total = int(self.counts.sum())
        if self.total > 0:
            self.weights = self.counts / self.total
        else:
            self.weights = np.zeros(0, dtype=np.float64)
        self._index = {s: i for i, s in enumerate(self.symbols)}

    @classmethod
    def build_global(cls, records: Iterable[ProteinRecord]) -> "CompositionModel":
        """Pool the residues of every record into one model."""
        counts: Counter = Counter()
        for record in records:
            counts.update(record.sequence)
        return cls(counts)

    @classmethod
    def from_sequence(cls, sequence: str) -> "CompositionModel":
        """Model of a single sequence's own composition."""
        return cls(Counter(sequence))

    def __len__(self) -> int:
        return len(self.symbols)

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._index

    def __repr__(self) -> str:
        return f"CompositionModel(symbols={len(self.symbols)}, total={self.total})"

    def count(self, symbol: str) -> int:
        i = self._index.get(symbol)
        return 0 if i is None else int(self.counts[i])

    def weight(self, symbol: str) -> float:
        """Relative frequency of `symbol`; 0.0 for symbols never seen."""
        i = self._index.get(symbol)
        return 0.0 if i is None else float(self.weights[i])

    def weights_for(self, symbols: Iterable[str]) -> np.ndarray:
        """Weight vector aligned with an arbitrary symbol order."""
        return np.array([self.weight(s) for s in symbols], dtype=np.float64)

    def most_common(self, n: int = 5) -> List[Tuple[str, float]]:
        """Top `n` symbols by weight, ties broken alphabetically."""
        ranked = sorted(zip(self.symbols, self.counts.tolist()), key=lambda x: (-x[1], x[0]))
        return [(s, c / self.total) for s, c in ranked[:n]]
