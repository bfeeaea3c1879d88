"""
Custom exceptions for the strata.io module.

Purpose
- Provide IO-layer specific error types that map cleanly to responsibilities in strata.io.
- Keep strata.core as the source of truth for partitioning errors (see strata.core.errors):
  InvalidValueError from a partitioner propagates to writers unchanged.

Source of truth and boundaries
- strata.io raises Io* errors for filesystem/reader/writer concerns:
  - IoConfigError: invalid or unsupported configuration.
  - IoEnumerationError: listing partitions or part files failed.
  - IoReadError: opening or decoding a part file failed.
  - IoWriteError: atomic part write path failed (tmp write/fsync/rename, mkdir).
  - IoSchemaError: records could not be converted to the dataset's Arrow schema.
  - IoDeleteError: deleting a partition or cleaning its ancestors failed.

Notes
- Every Io* error raised in response to a backend failure chains the original cause.
- These exceptions do not perform any IO and are stdlib-only.
"""

from __future__ import annotations


class IoError(Exception):
    """
    Base class for IO-related errors in strata.io.

    Notes:
        Use this as a catch-all for IO-layer failures, distinct from strata.core errors.
    """


class IoConfigError(IoError):
    """
    Raised when IO configuration is invalid or unsupported.

    Examples:
        - Unsupported filesystem protocol
        - row_group_size < 1
        - Asking an unpartitioned dataset for its partition strategy
    """


class IoEnumerationError(IoError):
    """
    Raised when partitions or part files cannot be listed.

    Notes:
        Distinct from IoReadError so callers can tell "could not find the data" from
        "found the data but could not read it".
    """


class IoReadError(IoError):
    """Raised when a part file cannot be opened or decoded."""


class IoWriteError(IoError):
    """
    Raised when a write operation fails to complete atomically.

    Notes:
        The write path is tmp parquet → fsync → rename(tmp, final). Failures at any step
        surface as IoWriteError (with best-effort cleanup of tmp files).
    """


class IoSchemaError(IoError):
    """Raised when records cannot be converted to the dataset's Arrow schema."""


class IoDeleteError(IoError):
    """Raised when a partition delete or empty-ancestor cleanup fails."""
