import unittest
import io
import os
import sys
import tempfile
import threading
import time
import warnings
from collections import Counter
from contextlib import redirect_stdout
from dataclasses import replace

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from mimic.errors import ConfigurationError, EmptyResultWarning
from mimic.fasta import read_fasta
from mimic.models import Configuration, ProteinRecord
from mimic.pipeline import RunOrchestrator, mimic_fasta, run

INPUT_FASTA = """>sp|P1|ONE_HUMAN First protein
MKVLAAGIWYCDEFHIKLMNPQRSTVWYIIGKRLLAPEDQNSTVMKRILE
GGSTPKKLLIAVEDWWMQ
>P2 short one
MKIL
>P3
ACDEFGHIKLMNPQRSTVWYACDEFGHIKLMNPQRSTVWYACDEFGHIKLMNPQRSTVWYACDEFGHIKLMNPQRS
>P4
WYIIKRRKPLLQ
"""


class RunOrchestratorTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.tmp = tempfile.TemporaryDirectory()
        cls.input_path = os.path.join(cls.tmp.name, "input.fasta")
        with open(cls.input_path, 'w') as f:
            f.write(INPUT_FASTA)
        cls.sources = {r.id: r.sequence for r in read_fasta(cls.input_path)}

    @classmethod
    def tearDownClass(cls):
        cls.tmp.cleanup()

    def _config(self, name: str, **kwargs) -> Configuration:
        defaults = dict(input_path=self.input_path,
                        output_path=os.path.join(self.tmp.name, name),
                        seed=42)
        defaults.update(kwargs)
        return Configuration(**defaults).validate()

    def _read_bytes(self, path: str) -> bytes:
        with open(path, 'rb') as f:
            return f.read()

    @staticmethod
    def _source_id(header_id: str) -> str:
        # "<prefix>|<i>_<k>_<id>" -> "<id>"; the original ids contain '|' and '_'
        tail = header_id.split("|", 2)[2]
        return tail.split("_", 2)[2]

    def test_basic_run_counts_and_headers(self):
        result = run(self._config("basic.fasta", num_shuffles=2))
        self.assertTrue(result.succeeded, result.diagnostic)
        self.assertEqual(result.records_read, 4)
        self.assertEqual(result.records_retained, 4)
        self.assertEqual(result.records_written, 8)
        self.assertEqual(result.seed_used, 42)
        out = read_fasta(os.path.join(self.tmp.name, "basic.fasta"))
        self.assertEqual([r.id for r in out], [
            "mimic|Random|1_1_sp|P1|ONE_HUMAN", "mimic|Random|1_2_sp|P1|ONE_HUMAN",
            "mimic|Random|2_1_P2", "mimic|Random|2_2_P2",
            "mimic|Random|3_1_P3", "mimic|Random|3_2_P3",
            "mimic|Random|4_1_P4", "mimic|Random|4_2_P4",
        ])

    def test_determinism(self):
        a = self._config("det_a.fasta", num_shuffles=3, shared_ratio=0.2)
        b = replace(a, output_path=os.path.join(self.tmp.name, "det_b.fasta"))
        self.assertTrue(run(a).succeeded)
        self.assertTrue(run(b).succeeded)
        self.assertEqual(self._read_bytes(a.output_path), self._read_bytes(b.output_path))

    def test_threads_do_not_change_output(self):
        single = self._config("t1.fasta", num_shuffles=3, shared_ratio=0.3)
        multi = replace(single, output_path=os.path.join(self.tmp.name, "t4.fasta"), threads=4)
        self.assertTrue(run(single).succeeded)
        self.assertTrue(run(multi).succeeded)
        self.assertEqual(self._read_bytes(single.output_path), self._read_bytes(multi.output_path))

    def test_threaded_generation_stops_when_output_is_abandoned(self):
        class CountingOrchestrator(RunOrchestrator):
            def __init__(self, config):
                super().__init__(config)
                self.calls = 0
                self._lock = threading.Lock()

            def records_for(self, index, record):
                time.sleep(0.01)
                with self._lock:
                    self.calls += 1
                return [record]

        records = [ProteinRecord(f"p{i}", "", "MKVL") for i in range(200)]
        orchestrator = CountingOrchestrator(self._config("abandon.fasta", threads=2))
        output = orchestrator.iter_output(records)
        self.assertEqual(next(output).id, "p0")
        output.close()
        calls = orchestrator.calls
        self.assertLess(calls, 50)
        time.sleep(0.05)
        self.assertEqual(orchestrator.calls, calls)

    def test_seed_changes_output(self):
        a = self._config("s1.fasta", seed=1)
        b = self._config("s2.fasta", seed=2)
        run(a)
        run(b)
        self.assertNotEqual(self._read_bytes(a.output_path), self._read_bytes(b.output_path))

    def test_length_and_exact_composition(self):
        config = self._config("exact.fasta", num_shuffles=3, infer_frequency=False)
        self.assertTrue(run(config).succeeded)
        for record in read_fasta(config.output_path):
            source = self.sources[self._source_id(record.id)]
            self.assertEqual(len(record.sequence), len(source))
            self.assertEqual(Counter(record.sequence), Counter(source))

    def test_shared_window_overlap(self):
        config = self._config("shared.fasta", num_shuffles=2, shared_ratio=0.5)
        self.assertTrue(run(config).succeeded)
        for record in read_fasta(config.output_path):
            source = self.sources[self._source_id(record.id)]
            window = int(len(source) * 0.5 + 0.5)
            matches = sum(a == b for a, b in zip(record.sequence, source))
            self.assertGreaterEqual(matches, window)
            self.assertTrue(any(record.sequence[s:s + window] == source[s:s + window]
                                for s in range(len(source) - window + 1)))

    def test_min_length_filter_and_prepend(self):
        config = self._config("filtered.fasta", min_length=10, prepend_original=True,
                              num_shuffles=1)
        result = run(config)
        self.assertEqual(result.records_retained, 3)
        self.assertEqual(result.records_written, 6)
        out = read_fasta(config.output_path)
        ids = [r.id for r in out]
        self.assertNotIn("P2", " ".join(ids))
        self.assertEqual(ids[0], "mimic|Random|1_sp|P1|ONE_HUMAN")
        self.assertEqual(out[0].sequence, self.sources["sp|P1|ONE_HUMAN"])
        self.assertEqual(ids[2], "mimic|Random|2_P3")
        self.assertEqual(ids[3], "mimic|Random|2_1_P3")

    def test_replace_i_everywhere(self):
        for infer in (True, False):
            config = self._config(f"noi_{infer}.fasta", replace_i=True, prepend_original=True,
                                  num_shuffles=2, infer_frequency=infer, shared_ratio=0.3)
            self.assertTrue(run(config).succeeded)
            for record in read_fasta(config.output_path):
                self.assertNotIn("I", record.sequence)

    def test_lowercase_input_is_normalized(self):
        lower = os.path.join(self.tmp.name, "lower.fasta")
        with open(lower, 'w') as f:
            f.write(">p1\nmkvliiaaglikr\n")
        for infer in (True, False):
            config = self._config(f"lower_{infer}.fasta", input_path=lower, replace_i=True,
                                  prepend_original=True, infer_frequency=infer, num_shuffles=3)
            self.assertTrue(run(config).succeeded)
            out = read_fasta(config.output_path)
            self.assertEqual(out[0].sequence, "MKVLLLAAGLLKR")
            for record in out:
                self.assertNotIn("I", record.sequence.upper())
                self.assertEqual(record.sequence, record.sequence.upper())

    def test_zero_shuffles(self):
        config = self._config("zero.fasta", num_shuffles=0, prepend_original=True)
        result = run(config)
        self.assertEqual(result.records_written, 4)
        self.assertEqual([r.sequence for r in read_fasta(config.output_path)],
                         list(self.sources.values()))

    def test_full_shared_ratio_reproduces_sources(self):
        config = self._config("full.fasta", shared_ratio=1.0)
        run(config)
        self.assertEqual([r.sequence for r in read_fasta(config.output_path)],
                         list(self.sources.values()))

    def test_custom_prefix_and_line_width(self):
        config = self._config("prefix.fasta", name_prefix="DECOY", line_width=10)
        run(config)
        with open(config.output_path) as f:
            lines = f.read().splitlines()
        self.assertEqual(lines[0], ">DECOY|1_1_sp|P1|ONE_HUMAN")
        self.assertTrue(all(len(l) <= 10 for l in lines if not l.startswith(">")))

    def test_everything_filtered_is_success_with_warning(self):
        config = self._config("empty.fasta", min_length=10000)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            result = run(config)
        self.assertTrue(result.succeeded)
        self.assertEqual(result.records_written, 0)
        self.assertTrue(any(issubclass(w.category, EmptyResultWarning) for w in caught))
        self.assertEqual(os.path.getsize(config.output_path), 0)

    def test_parse_error_is_failure_result(self):
        bad = os.path.join(self.tmp.name, "bad.fasta")
        with open(bad, 'w') as f:
            f.write(">a\nMK\n>b\n")
        config = self._config("never.fasta", input_path=bad)
        result = run(config)
        self.assertFalse(result.succeeded)
        self.assertFalse(result)
        self.assertIn("empty sequence", result.diagnostic)
        self.assertFalse(os.path.exists(config.output_path))

    def test_missing_input_is_failure_result(self):
        config = self._config("never2.fasta",
                              input_path=os.path.join(self.tmp.name, "nope.fasta"))
        result = run(config)
        self.assertFalse(result.succeeded)
        self.assertIn("nope.fasta", result.diagnostic)

    def test_unwritable_output_is_failure_result(self):
        blocker = os.path.join(self.tmp.name, "blocker")
        with open(blocker, 'w') as f:
            f.write("x")
        config = self._config("x", output_path=os.path.join(blocker, "out.fasta"))
        result = run(config)
        self.assertFalse(result.succeeded)
        self.assertIn("blocker", result.diagnostic)

    def test_output_directory_is_created(self):
        config = self._config("x", output_path=os.path.join(self.tmp.name, "sub", "dir", "o.fasta"))
        self.assertTrue(run(config).succeeded)
        self.assertTrue(os.path.exists(config.output_path))

    def test_entropy_seed_is_reported_and_replayable(self):
        config = self._config("entropy.fasta", seed=0)
        result = run(config)
        self.assertTrue(result.succeeded)
        self.assertGreater(result.seed_used, 0)
        replay = self._config("replay.fasta", seed=result.seed_used)
        run(replay)
        self.assertEqual(self._read_bytes(config.output_path), self._read_bytes(replay.output_path))

    def test_verbose_reports_stage_counts(self):
        config = self._config("verbose.fasta", verbose=True, min_length=10)
        buf = io.StringIO()
        with redirect_stdout(buf):
            RunOrchestrator(config).run()
        text = buf.getvalue()
        self.assertIn("Read 4 records", text)
        self.assertIn("3 records kept", text)
        self.assertIn("Wrote 3 records", text)

    def test_quiet_run_prints_nothing(self):
        buf = io.StringIO()
        with redirect_stdout(buf):
            run(self._config("quiet.fasta"))
        self.assertEqual(buf.getvalue(), "")


class MimicFastaFunctionTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.input_path = os.path.join(self.tmp.name, "in.fasta")
        with open(self.input_path, 'w') as f:
            f.write(">seq1\nACDEFGHIKLMNPQRSTVWY\n>seq2\nWYVUTSRQPONMLKIHGFEDCA\n")

    def test_keyword_interface(self):
        out = os.path.join(self.tmp.name, "out.fasta")
        result = mimic_fasta(self.input_path, out, num_shuffles=3, min_len=5, seed=7)
        self.assertTrue(result.succeeded)
        with open(out) as f:
            headers = [l for l in f if l.startswith(">")]
        self.assertEqual(len(headers), 6)

    def test_extra_options_pass_through(self):
        out = os.path.join(self.tmp.name, "out.fasta")
        result = mimic_fasta(self.input_path, out, seed=7, threads=2, line_width=5)
        self.assertTrue(result.succeeded)
        self.assertEqual(result.records_written, 2)

    def test_invalid_options(self):
        out = os.path.join(self.tmp.name, "out.fasta")
        with self.assertRaises(ConfigurationError):
            mimic_fasta(self.input_path, out, shared_peptide_ratio=1.5)
        with self.assertRaises(ConfigurationError):
            mimic_fasta(self.input_path, out, num_shuffles=-1)
        with self.assertRaises(ValueError):
            mimic_fasta(self.input_path, "", seed=1)


if __name__ == "__main__":
    unittest.main()
