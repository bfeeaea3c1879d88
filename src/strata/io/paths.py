"""
Path and layout helpers for strata.io.

Overview (file protocol baseline)
- <root_dir>/<dataset>/<level-0 value>/.../<level-n value>/part-<UUID>.parquet
- Unpartitioned datasets keep their part files directly under <root_dir>/<dataset>.

Source of truth
- Directory names per level: FieldPartitioner.format()/parse() in strata.core.partitioners.
- Level order: strata.core.strategy.PartitionStrategy.
- Naming constants: strata.core.constants.

Notes
- This module focuses solely on path construction and name classification.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from strata.core.constants import DATA_FILE_SUFFIX, HIDDEN_PREFIXES, PART_PREFIX, TMP_SUFFIX
from strata.core.descriptor import validate_dataset_name
from strata.core.strategy import PartitionStrategy
from strata.core.typing import StorageKey

from .config import IoSettings


def dataset_root(settings: IoSettings, name: str) -> str:
    """
    Default root directory for a dataset.

    Args:
        settings (IoSettings): IO settings containing root_dir.
        name (str): Dataset name (validated as a single safe directory name).

    Returns:
        str: Path "<root_dir>/<name>".
    """
    return os.path.join(settings.root_dir, validate_dataset_name(name))


def partition_dir(root: str, strategy: PartitionStrategy, key: StorageKey) -> str:
    """
    Partition directory path for a StorageKey.

    Returns:
        str: Path "<root>/<v0>/<v1>/...".
    """
    return os.path.join(root, strategy.path_for(key))


def is_hidden(name: str) -> bool:
    """Return True for names that are never partitions or data files ("." / "_" prefixed)."""
    return name.startswith(HIDDEN_PREFIXES)


def is_data_file(name: str) -> bool:
    """
    Check whether a directory entry name is a readable part file.

    Returns:
        bool: True for visible "*.parquet" names; in-flight "*.parquet.tmp" files are excluded.
    """
    return not is_hidden(name) and name.endswith(DATA_FILE_SUFFIX)


@dataclass(slots=True, frozen=True)
class PartPaths:
    """
    Container for a part's temporary and final file paths.

    Attributes:
        tmp_path (str): Temporary file path used for initial write (e.g., "*.parquet.tmp").
        final_path (str): Final file path after atomic rename (e.g., "*.parquet").
    """

    tmp_path: str
    final_path: str


def part_paths(directory: str, uuid_str: str) -> PartPaths:
    """
    Compute temporary and final part file paths inside a directory.

    Args:
        directory (str): Partition directory (or dataset root when unpartitioned).
        uuid_str (str): Hex string used to build a unique part name.

    Returns:
        PartPaths: Paths for .parquet.tmp and final .parquet files.
    """
    base_name = f"{PART_PREFIX}{uuid_str}{DATA_FILE_SUFFIX}"
    final_path = os.path.join(directory, base_name)
    return PartPaths(tmp_path=final_path + TMP_SUFFIX, final_path=final_path)
