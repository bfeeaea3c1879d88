"""
strata core IO-facing defaults.

Defines storage layout and Parquet defaults consumed by the strata.io layer. This
module is zero-IO and uses only the Python standard library.

Notes:
    - Part files are named ``part-<uuid32>.parquet`` and written to ``<name>.tmp`` first.
    - Directory and file names beginning with HIDDEN_PREFIXES are never treated as
      partitions or data files.
    - Changes to FORMAT_VERSION must accompany a layout change that readers can detect.
"""

from __future__ import annotations

__all__ = [
    "ROOT_DIR",
    "ROW_GROUP_SIZE",
    "READ_BATCH_SIZE",
    "COMPRESSION",
    "DATA_FILE_SUFFIX",
    "TMP_SUFFIX",
    "PART_PREFIX",
    "HIDDEN_PREFIXES",
    "FORMAT_VERSION",
]

# Default directory under which datasets are rooted (<ROOT_DIR>/<dataset name>).
ROOT_DIR: str = "data"

# Target row group size for Parquet part files.
ROW_GROUP_SIZE: int = 128 * 1024

# Number of rows decoded per batch when streaming records back out of a part file.
READ_BATCH_SIZE: int = 64 * 1024

# Default compression codec for Parquet part files.
COMPRESSION: str = "zstd"

DATA_FILE_SUFFIX: str = ".parquet"
TMP_SUFFIX: str = ".tmp"
PART_PREFIX: str = "part-"
HIDDEN_PREFIXES: tuple[str, ...] = (".", "_")

# Embedded in Parquet key-value metadata of every part file.
FORMAT_VERSION: str = "1"
