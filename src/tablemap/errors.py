"""Exception hierarchy for the row store and the export pipeline.

- `StoreAccessError`: the key-value substrate failed a get/put/scan.
- `EncodingError`: a stored value cannot be decoded or written as CSV text.
- `WorkerFailure`: one export worker failed; wraps the original error.
- `MergeIOError`: the final output could not be assembled or renamed.
- `ExportConfigError`: invalid priority columns or filters.
- `ParallelismResolutionWarning`: worker count fell back to a default.
"""

from __future__ import annotations


class TableMapError(Exception):
    """Base class for all tablemap errors."""


class StoreAccessError(TableMapError):
    """Reading from or writing to the backing store failed."""


class EncodingError(TableMapError):
    """A record value is not valid UTF-8 text or cannot be CSV-encoded."""


class WorkerFailure(TableMapError):
    """An export worker failed while processing its chunk."""

    def __init__(self, chunk_index: int, error: BaseException) -> None:
        super().__init__(f"chunk {chunk_index} failed: {type(error).__name__}: {error}")
        self.chunk_index = chunk_index
        self.error = error


class MergeIOError(TableMapError):
    """Writing, merging or renaming the final output file failed."""


class ExportConfigError(TableMapError, ValueError):
    """Export parameters are inconsistent (duplicate priority columns, bad filters)."""


class ParallelismResolutionWarning(UserWarning):
    """Available parallelism could not be detected; a default worker count is used."""
