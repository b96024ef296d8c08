from dataclasses import dataclass
from typing import List, Optional

from .errors import ConfigurationError


@dataclass(frozen=True)
class ProteinRecord:
    """One FASTA entry. Sequences are never mutated; mimics are new records."""
    id: str
    description: str
    sequence: str

    @property
    def length(self) -> int:
        return len(self.sequence)

    def header(self) -> str:
        """Header line text without the leading '>'."""
        if self.description:
            return f"{self.id} {self.description}"
        return self.id


@dataclass(frozen=True)
class MimicRecord:
    """A generated sequence plus the provenance used to name it."""
    record: ProteinRecord
    source_id: str
    shuffle_index: int
    window_start: Optional[int] = None  # Offset of the shared window, None when no window
    window_length: int = 0
    attempts: int = 1  # Shuffles drawn before the mimic was accepted

    @property
    def sequence(self) -> str:
        return self.record.sequence


@dataclass(frozen=True)
class Configuration:
    """Validated options for one run. Immutable for the duration of the run."""
    input_path: str
    output_path: str
    min_length: int = 0
    num_shuffles: int = 1
    replace_i: bool = False
    seed: int = 0  # 0 draws a fresh seed from system entropy
    name_prefix: str = "mimic|Random"
    shared_ratio: float = 0.0
    prepend_original: bool = False
    infer_frequency: bool = True
    verbose: bool = False
    line_width: int = 60
    threads: int = 1
    max_attempts: int = 10

    def validate(self) -> "Configuration":
        """Check option invariants; raise ConfigurationError listing every problem."""
        problems: List[str] = []
        if not self.input_path:
            problems.append("input path must not be empty")
        if not self.output_path:
            problems.append("output path must not be empty")
        for name in ("min_length", "num_shuffles", "seed"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                problems.append(f"{name} must be a non-negative integer (got {value!r})")
        for name in ("line_width", "threads", "max_attempts"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                problems.append(f"{name} must be a positive integer (got {value!r})")
        ratio = self.shared_ratio
        if isinstance(ratio, bool) or not isinstance(ratio, (int, float)) or not 0.0 <= ratio <= 1.0:
            problems.append(f"shared_ratio must be within [0, 1] (got {ratio!r})")
        if problems:
            raise ConfigurationError("; ".join(problems))
        return self


@dataclass
class RunResult:
    """Outcome of a run, consumed by the calling layer."""
    succeeded: bool
    records_written: int = 0
    diagnostic: str = ""
    records_read: int = 0
    records_retained: int = 0
    seed_used: Optional[int] = None

    def __bool__(self) -> bool:
        return self.succeeded

    def summary(self) -> str:
        """One-line, human readable report of the run."""
        if not self.succeeded:
            return f"Mimic generation failed: {self.diagnostic}"
        return (f"Read {self.records_read} records, kept {self.records_retained}, "
                f"wrote {self.records_written} (seed {self.seed_used})")
