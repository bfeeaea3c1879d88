from __future__ import annotations

import pytest

from strata.core.partitioners import ListFieldPartitioner
from strata.core.schema import parse_dataset_descriptor
from strata.io.fs import LocalFileSystem


class RecordingFileSystem(LocalFileSystem):
    """LocalFileSystem that records every call by operation name."""

    MUTATIONS = frozenset({"delete", "open_write", "makedirs", "rename"})

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def list(self, path):
        self.calls.append(("list", path))
        return super().list(path)

    def delete(self, path, recursive=False):
        self.calls.append(("delete", path))
        return super().delete(path, recursive)

    def open_read(self, path):
        self.calls.append(("open_read", path))
        return super().open_read(path)

    def open_write(self, path):
        self.calls.append(("open_write", path))
        return super().open_write(path)

    def makedirs(self, path):
        self.calls.append(("makedirs", path))
        super().makedirs(path)

    def rename(self, src, dst):
        self.calls.append(("rename", src))
        super().rename(src, dst)

    def mutations(self) -> list[tuple[str, str]]:
        return [c for c in self.calls if c[0] in self.MUTATIONS]


@pytest.fixture
def recording_fs() -> RecordingFileSystem:
    return RecordingFileSystem()


@pytest.fixture
def letters_descriptor():
    """One list level: bucket 0 = {"a","b"}, bucket 1 = {"c"}."""
    return parse_dataset_descriptor(
        {
            "name": "letters",
            "columns": {"letter": "str", "n": "i64"},
            "partitions": [{"type": "list", "name": "letter", "buckets": [["a", "b"], ["c"]]}],
        }
    )


@pytest.fixture
def letters_partitioner() -> ListFieldPartitioner:
    return ListFieldPartitioner("letter", [{"a", "b"}, {"c"}])
