from typing import Iterable, Iterator, List, Tuple

from .errors import FastaWriteError, ParseError
from .models import ProteinRecord
from .utils import wrap_sequence

DEFAULT_LINE_WIDTH = 60


def _split_header(line: str) -> Tuple[str, str]:
    parts = line[1:].strip().split(None, 1)
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1].strip()


def parse_fasta(file_path: str) -> Iterator[Tuple[str, str, str]]:
    """Yield (id, description, sequence) for each record, in file order.

    Sequence lines are concatenated with all whitespace removed. Raises
    ParseError on an unreadable file, text before the first header, an empty
    id, or a record without sequence (including a trailing header).
    """
    name = None
    description = ""
    header_line = 0
    seq_parts: List[str] = []
    line_number = 0
    try:
        with open(file_path, 'r') as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                if line.startswith('>'):
                    if name is not None:
                        if not seq_parts:
                            raise ParseError(f"record {name!r} has an empty sequence",
                                             file_path, header_line)
                        yield name, description, "".join(seq_parts)
                    name, description = _split_header(line)
                    if not name:
                        raise ParseError("header line has no identifier", file_path, line_number)
                    header_line = line_number
                    seq_parts = []
                else:
                    if name is None:
                        raise ParseError("sequence data before the first '>' header",
                                         file_path, line_number)
                    seq_parts.append("".join(line.split()))
    except OSError as e:
        raise ParseError(f"cannot read input: {e.strerror or e}", file_path) from e
    except UnicodeDecodeError as e:
        raise ParseError(f"input is not a text FASTA file ({e.reason})",
                         file_path, line_number + 1) from e
    if name is not None:
        if not seq_parts:
            raise ParseError(f"record {name!r} has an empty sequence (truncated file?)",
                             file_path, header_line)
        yield name, description, "".join(seq_parts)


def read_fasta(file_path: str) -> List[ProteinRecord]:
    """Read every record of a FASTA file; an input without records is a ParseError.

    Sequences are upper-cased so residue symbols compare and count the same
    whatever the case of the input.
    """
    records = [ProteinRecord(name, description, seq.upper())
               for name, description, seq in parse_fasta(file_path)]
    if not records:
        raise ParseError("no FASTA records found", file_path)
    return records


def format_record(record: ProteinRecord, line_width: int = DEFAULT_LINE_WIDTH) -> str:
    """Render one record as FASTA text, sequence wrapped at `line_width`."""
    lines = [f">{record.header()}"]
    lines.extend(wrap_sequence(record.sequence, line_width))
    return "\n".join(lines) + "\n"


def write_fasta(file_path: str, records: Iterable[ProteinRecord],
                line_width: int = DEFAULT_LINE_WIDTH) -> int:
    """Write records in iteration order, creating or truncating the file.

    `records` is consumed lazily, so generated sequences can be streamed
    straight to disk. Returns the number of records written. If writing
    fails the partially written file is left in place.
    """
    written = 0
    try:
        with open(file_path, 'w') as f:
            for record in records:
                f.write(format_record(record, line_width))
                written += 1
    except OSError as e:
        raise FastaWriteError(f"cannot write output {file_path}: {e.strerror or e}") from e
    return written
