import argparse
import os
import sys
import time
from typing import List, Optional

from .errors import ConfigurationError
from .models import Configuration
from .pipeline import RunOrchestrator


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mimic-fasta",
        description="Generate mimic (decoy) protein sequences from a FASTA database")
    parser.add_argument("fasta_file", help="Input protein FASTA file")
    parser.add_argument("--output", "-o", help="Output FASTA file (default: <input>_mimic.fasta)")
    parser.add_argument("--min-length", "-l", type=int, default=0,
                        help="Skip proteins shorter than this many residues (default: 0)")
    parser.add_argument("--num-shuffles", "-m", type=int, default=1,
                        help="Mimic sequences generated per protein (default: 1)")
    parser.add_argument("--replace-i", "-I", action="store_true",
                        help="Replace isoleucine (I) with leucine (L) in every output sequence")
    parser.add_argument("--seed", "-s", type=int, default=0,
                        help="Random seed; 0 draws one from system entropy (default: 0)")
    parser.add_argument("--prefix", "-p", default="mimic|Random",
                        help="Prefix of output protein names (default: mimic|Random)")
    parser.add_argument("--shared-ratio", "-q", type=float, default=0.0,
                        help="Fraction of each mimic kept identical to its source (default: 0.0)")
    parser.add_argument("--prepend-original", "-P", action="store_true",
                        help="Write each original protein before its mimics")
    freq = parser.add_mutually_exclusive_group()
    freq.add_argument("--infer-frequency", "-A", dest="infer_frequency", action="store_true",
                      default=True,
                      help="Sample residues using amino-acid frequencies of the input (default)")
    freq.add_argument("--no-infer-frequency", dest="infer_frequency", action="store_false",
                      help="Exact permutations of each protein's own residues")
    parser.add_argument("--line-width", type=int, default=60,
                        help="Residues per output sequence line (default: 60)")
    parser.add_argument("--threads", type=int, default=1,
                        help="Worker threads for generation; output is unaffected (default: 1)")
    parser.add_argument("--max-attempts", type=int, default=10,
                        help="Reshuffles allowed when a mimic equals its source (default: 10)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show progress")
    return parser


def config_from_args(args: argparse.Namespace) -> Configuration:
    output = args.output if args.output else f"{os.path.splitext(args.fasta_file)[0]}_mimic.fasta"
    return Configuration(
        input_path=args.fasta_file,
        output_path=output,
        min_length=args.min_length,
        num_shuffles=args.num_shuffles,
        replace_i=args.replace_i,
        seed=args.seed,
        name_prefix=args.prefix,
        shared_ratio=args.shared_ratio,
        prepend_original=args.prepend_original,
        infer_frequency=args.infer_frequency,
        verbose=args.verbose,
        line_width=args.line_width,
        threads=args.threads,
        max_attempts=args.max_attempts,
    ).validate()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if not os.path.exists(args.fasta_file):
        print(f"Error: File {args.fasta_file} not found", file=sys.stderr)
        return 1

    try:
        config = config_from_args(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if config.verbose:
        print(f"Processing {config.input_path}...")
    start_total = time.time()

    result = RunOrchestrator(config).run()
    if not result:
        print(f"Error: {result.diagnostic}", file=sys.stderr)
        return 1

    if config.verbose:
        print(result.summary())
        print(f"Total time: {time.time() - start_total:.2f}s")
    print(f"Results written to {config.output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
