# paired_diff/exceptions.py
"""Errors that abort a paired_diff run."""

from typing import Iterable


class PairedDiffError(Exception):
    """Base class for fatal pipeline errors."""


class SchemaError(PairedDiffError, ValueError):
    """Expected columns are missing, or the input violates the table schema."""

    def __init__(self, message: str, missing_columns: Iterable[str] = ()):
        self.missing_columns = list(missing_columns)
        if self.missing_columns:
            message = f"{message} Missing columns: {self.missing_columns}"
        super().__init__(message)


class PivotError(PairedDiffError, ValueError):
    """The long table cannot be pivoted into a usable subject-level table."""
