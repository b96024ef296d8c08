import os
import time
import warnings
from concurrent.futures import ThreadPoolExecutor
from typing import Iterator, List, Optional

from .composition import CompositionModel
from .errors import EmptyResultWarning, FastaWriteError, MimicError
from .fasta import read_fasta, write_fasta
from .generator import MimicGenerator
from .models import Configuration, ProteinRecord, RunResult
from .rng import DeterministicRandomSource, resolve_seed


def original_header(prefix: str, index: int, original_id: str) -> str:
    return f"{prefix}|{index}_{original_id}"


def mimic_header(prefix: str, index: int, shuffle_index: int, original_id: str) -> str:
    return f"{prefix}|{index}_{shuffle_index}_{original_id}"


class RunOrchestrator:
    """Runs the read -> filter -> model -> generate -> write pipeline for one Configuration."""

    def __init__(self, config: Configuration):
        self.config = config
        self.show_progress = config.verbose
        self.generator = MimicGenerator(
            replace_i=config.replace_i,
            shared_ratio=config.shared_ratio,
            infer_frequency=config.infer_frequency,
            max_attempts=config.max_attempts,
        )
        self.model: Optional[CompositionModel] = None
        self.random_source: Optional[DeterministicRandomSource] = None

    def _progress(self, message: str):
        if self.show_progress:
            print(f"  [mimic] {message}", flush=True)

    def run(self) -> RunResult:
        """Execute the pipeline; any input or output error becomes a failed RunResult."""
        cfg = self.config
        result = RunResult(succeeded=False)
        t0 = time.time()
        try:
            records = read_fasta(cfg.input_path)
            result.records_read = len(records)
            self._progress(f"Read {len(records)} records from {cfg.input_path}")

            retained = self.filter_records(records)
            result.records_retained = len(retained)
            self._progress(f"{len(retained)} records kept after length filter (min length {cfg.min_length})")
            if not retained:
                warnings.warn(
                    f"no record in {cfg.input_path} is at least {cfg.min_length} residues long; "
                    "writing an empty output",
                    EmptyResultWarning,
                    stacklevel=2,
                )

            result.seed_used = resolve_seed(cfg.seed)
            self.random_source = DeterministicRandomSource(result.seed_used)
            self._progress(f"Using seed {result.seed_used}"
                           + (" (drawn from system entropy)" if not cfg.seed else ""))

            if cfg.infer_frequency:
                self.model = CompositionModel.build_global(
                    ProteinRecord(r.id, r.description, self.generator.normalize(r.sequence))
                    for r in retained)
                top = ", ".join(f"{s}={w:.3f}" for s, w in self.model.most_common(5))
                self._progress(f"Composition model: {len(self.model)} symbols, "
                               f"{self.model.total} residues ({top})")

            self._ensure_output_dir(cfg.output_path)
            result.records_written = write_fasta(cfg.output_path, self.iter_output(retained),
                                                 line_width=cfg.line_width)
        except MimicError as e:
            result.diagnostic = str(e)
            self._progress(f"Failed: {result.diagnostic}")
            return result

        result.succeeded = True
        self._progress(f"Wrote {result.records_written} records to {cfg.output_path} "
                       f"in {time.time() - t0:.2f}s")
        return result

    def filter_records(self, records: List[ProteinRecord]) -> List[ProteinRecord]:
        """Drop records shorter than min_length; empty sequences never pass."""
        threshold = max(1, self.config.min_length)
        return [r for r in records if r.length >= threshold]

    def records_for(self, index: int, record: ProteinRecord) -> List[ProteinRecord]:
        """Output records derived from the `index`-th retained record (1-based)."""
        cfg = self.config
        out = []
        if cfg.prepend_original:
            out.append(ProteinRecord(original_header(cfg.name_prefix, index, record.id), "",
                                     self.generator.normalize(record.sequence)))
        for k in range(1, cfg.num_shuffles + 1):
            stream = self.random_source.derive_stream(index, k)
            mimic = self.generator.produce(record, self.model, stream, shuffle_index=k)
            out.append(ProteinRecord(mimic_header(cfg.name_prefix, index, k, record.id), "",
                                     mimic.sequence))
        return out

    def iter_output(self, records: List[ProteinRecord]) -> Iterator[ProteinRecord]:
        """Yield output records in input order, generating on worker threads if configured."""
        indices = range(1, len(records) + 1)
        if self.config.threads > 1:
            # map() returns results in submission order, so the file layout is unchanged
            executor = ThreadPoolExecutor(max_workers=self.config.threads)
            try:
                for batch in executor.map(self.records_for, indices, records):
                    yield from batch
            finally:
                # a consumer that stops early (failed write) must not wait for unused work
                executor.shutdown(wait=True, cancel_futures=True)
        else:
            for index, record in zip(indices, records):
                yield from self.records_for(index, record)

    @staticmethod
    def _ensure_output_dir(path: str):
        parent = os.path.dirname(os.path.abspath(path))
        try:
            os.makedirs(parent, exist_ok=True)
        except OSError as e:
            raise FastaWriteError(f"cannot create output directory {parent}: {e.strerror or e}") from e


def run(config: Configuration) -> RunResult:
    return RunOrchestrator(config).run()


def mimic_fasta(input_path: str, output_path: str, min_len: int = 0, num_shuffles: int = 1,
                replace_i: bool = False, seed: int = 0,
                protein_name_prefix: str = "mimic|Random",
                shared_peptide_ratio: float = 0.0, prepend_original: bool = False,
                infer_aa_frequency: bool = True, verbose: bool = False,
                **extra) -> RunResult:
    """Validate keyword options into a Configuration and run it.

    Extra keywords (line_width, threads, max_attempts) are passed through to
    Configuration. Raises ConfigurationError for invalid option values.
    """
    config = Configuration(
        input_path=input_path,
        output_path=output_path,
        min_length=min_len,
        num_shuffles=num_shuffles,
        replace_i=replace_i,
        seed=seed,
        name_prefix=protein_name_prefix,
        shared_ratio=shared_peptide_ratio,
        prepend_original=prepend_original,
        infer_frequency=infer_aa_frequency,
        verbose=verbose,
        **extra,
    ).validate()
    return run(config)
