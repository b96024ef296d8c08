from typing import List, Optional, Tuple

import numpy as np

from .composition import CompositionModel
from .models import MimicRecord, ProteinRecord
from .rng import RandomStream
from .utils import ISOLEUCINE, replace_isoleucine, round_half_up

# Pseudo-count mass given to the composition table at every draw in
# frequency-sampling mode. Relative to the source's remaining residue counts
# it decides how far a sampled mimic may drift from the local composition.
PRIOR_STRENGTH = 1.0


class MimicGenerator:
    """Builds one mimic sequence per call from a source record.

    A contiguous window of ``round(shared_ratio * length)`` residues is copied
    verbatim at the same offset; the remaining positions are refilled either
    by an exact Fisher-Yates permutation of their own residues
    (``infer_frequency=False``) or by composition-weighted sampling
    (``infer_frequency=True``).

    The sampling variant is approximate: every draw mixes the not yet used
    residues of the source with ``PRIOR_STRENGTH`` times the composition
    model's weights, so the mimic usually stays close to the source's
    amino-acid multiset but is not guaranteed to reproduce it. The drawn
    multiset is then permuted onto the outside positions, so every position
    has the same chance of receiving a residue drawn from the model.
    """

    def __init__(self, replace_i: bool = False, shared_ratio: float = 0.0,
                 infer_frequency: bool = True, max_attempts: int = 10):
        self.replace_i = replace_i
        self.shared_ratio = shared_ratio
        self.infer_frequency = infer_frequency
        self.max_attempts = max(1, max_attempts)

    def normalize(self, sequence: str) -> str:
        return replace_isoleucine(sequence) if self.replace_i else sequence

    def select_window(self, length: int, stream: RandomStream) -> Tuple[int, int]:
        """Return (start, window_length) of the shared window; (0, 0) for none."""
        if self.shared_ratio <= 0 or length == 0:
            return 0, 0
        window_length = min(length, round_half_up(self.shared_ratio * length))
        if window_length == 0:
            return 0, 0
        if window_length == length:
            return 0, length
        return stream.uniform_index(length - window_length + 1), window_length

    def produce(self, record: ProteinRecord, model: Optional[CompositionModel],
                stream: RandomStream, shuffle_index: int = 1) -> MimicRecord:
        """Generate one mimic of `record`, same length as the source.

        `model` is the global composition used in sampling mode; when it is
        None the source's own composition is used instead. Exact mode ignores it.
        """
        source = self.normalize(record.sequence)
        n = len(source)
        if n == 0:
            return MimicRecord(ProteinRecord(record.id, record.description, ""),
                               record.id, shuffle_index)

        start, window_length = self.select_window(n, stream)
        end = start + window_length
        outside = [i for i in range(n) if not start <= i < end]
        residues = [source[i] for i in outside]

        if self.infer_frequency and model is None:
            model = CompositionModel.from_sequence(source)
        can_differ = len(set(residues)) > 1

        attempts = 0
        while True:
            attempts += 1
            if self.infer_frequency:
                refill = self._sample(residues, model, stream)
            else:
                refill = self._permute(residues, stream)
            mimic = list(source)
            for pos, aa in zip(outside, refill):
                mimic[pos] = aa
            sequence = "".join(mimic)
            if sequence != source or not can_differ or attempts >= self.max_attempts:
                break

        return MimicRecord(
            ProteinRecord(record.id, record.description, sequence),
            source_id=record.id,
            shuffle_index=shuffle_index,
            window_start=start if window_length else None,
            window_length=window_length,
            attempts=attempts,
        )

    @staticmethod
    def _permute(residues: List[str], stream: RandomStream) -> List[str]:
        """Fisher-Yates shuffle; the multiset of residues is unchanged."""
        out = list(residues)
        for i in range(len(out) - 1, 0, -1):
            j = stream.uniform_index(i + 1)
            out[i], out[j] = out[j], out[i]
        return out

    def _sample(self, residues: List[str], model: CompositionModel,
                stream: RandomStream) -> List[str]:
        """Draw a residue multiset from the composition table and permute it onto the positions.

        The share of model-driven draws grows as source residues are used up,
        so the draws are shuffled before placement to keep them position independent.
        """
        local = CompositionModel.from_sequence("".join(residues))
        alphabet = sorted(set(model.symbols) | set(local.symbols))
        remaining = np.array([local.count(s) for s in alphabet], dtype=np.float64)
        prior = PRIOR_STRENGTH * model.weights_for(alphabet)
        if self.replace_i and ISOLEUCINE in alphabet:
            prior[alphabet.index(ISOLEUCINE)] = 0.0

        out = []
        for _ in residues:
            # remaining sums to at least the number of draws left, so the total is positive
            table = remaining + prior
            cum = np.cumsum(table)
            u = stream.uniform_float() * cum[-1]
            last = int(np.flatnonzero(table)[-1])
            k = min(int(np.searchsorted(cum, u, side="right")), last)
            out.append(alphabet[k])
            if remaining[k] > 0:
                remaining[k] -= 1
        return self._permute(out, stream)
