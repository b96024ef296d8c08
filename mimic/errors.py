"""Exception and warning types raised by the mimic engine."""

from typing import Optional


class MimicError(Exception):
    """Base class for errors raised by the mimic engine."""


class ParseError(MimicError):
    """Input FASTA is missing, unreadable, truncated or malformed."""

    def __init__(self, message: str, path: Optional[str] = None, line_number: Optional[int] = None):
        self.path = path
        self.line_number = line_number
        location = ""
        if path is not None:
            location = f"{path}:{line_number}: " if line_number else f"{path}: "
        super().__init__(f"{location}{message}")


class FastaWriteError(MimicError, IOError):
    """Output FASTA could not be created or written."""


class ConfigurationError(MimicError, ValueError):
    """Option values violate their documented invariants."""


class EmptyResultWarning(UserWarning):
    """No record survived the length filter; the run still succeeds."""
