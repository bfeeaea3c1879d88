"""
Storage backend contract and the local filesystem implementation.

Responsibilities
- Define the minimal storage collaborator strata.io consumes (StorageBackend): listing,
  deletion, open for read/write, directory creation, rename, fsync.
- Provide LocalFileSystem, a stdlib-only implementation over os/shutil.
- Establish clear semantics for the atomic write path: tmp write → fsync → atomic rename.

Contract
- list(path) returns (name, is_directory) pairs sorted by name and raises
  FileNotFoundError when path does not exist.
- delete(path, recursive) returns False when path is already absent; it is never an
  error to delete something that is gone.
- makedirs(path) is "create if absent" so concurrent writers can race on it.

Import DAG discipline
- stdlib-only; remote backends can be layered later behind the same protocol.

Notes
- Atomicity via os.replace is guaranteed only when src and dst reside on the same filesystem.
- All helpers are synchronous; callers decide on concurrency/locking if/when needed.
"""

from __future__ import annotations

import os
import shutil
from typing import BinaryIO, Protocol, runtime_checkable

from .config import IoSettings
from .errors import IoConfigError


@runtime_checkable
class StorageBackend(Protocol):
    """Raw hierarchical storage operations used by views, readers and writers."""

    def list(self, path: str) -> list[tuple[str, bool]]: ...

    def delete(self, path: str, recursive: bool = False) -> bool: ...

    def open_read(self, path: str) -> BinaryIO: ...

    def open_write(self, path: str) -> BinaryIO: ...

    def makedirs(self, path: str) -> None: ...

    def exists(self, path: str) -> bool: ...

    def rename(self, src: str, dst: str) -> None: ...

    def fsync(self, fh: BinaryIO) -> None: ...


class LocalFileSystem:
    """
    StorageBackend over the local filesystem.

    Notes:
        Thin wrappers around os/shutil to centralize IO-layer usage.
    """

    def list(self, path: str) -> list[tuple[str, bool]]:
        """
        List entries in a directory (non-recursive).

        Args:
            path (str): Directory to list.

        Returns:
            list[tuple[str, bool]]: (name, is_directory) pairs sorted by name.

        Raises:
            FileNotFoundError: If the directory does not exist.
            OSError: On any other listing failure.
        """
        with os.scandir(path) as it:
            entries = [(e.name, e.is_dir(follow_symlinks=False)) for e in it]
        return sorted(entries)

    def delete(self, path: str, recursive: bool = False) -> bool:
        """
        Delete a file or directory.

        Args:
            path (str): Path to remove.
            recursive (bool): Remove a directory together with its contents.

        Returns:
            bool: True if something was removed, False if path was already absent.

        Raises:
            OSError: If removal fails, including a non-recursive delete of a
                non-empty directory.
        """
        try:
            if os.path.isdir(path) and not os.path.islink(path):
                if recursive:
                    shutil.rmtree(path)
                else:
                    os.rmdir(path)
            else:
                os.remove(path)
        except FileNotFoundError:
            return False
        return True

    def open_read(self, path: str) -> BinaryIO:
        return open(path, "rb")

    def open_write(self, path: str) -> BinaryIO:
        """
        Open a file for binary write.

        Notes:
            Caller is responsible for fsync and the atomic rename of a temporary file
            to its final path.
        """
        return open(path, "wb")

    def makedirs(self, path: str) -> None:
        os.makedirs(path, exist_ok=True)

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def rename(self, src: str, dst: str) -> None:
        """
        Atomically rename src -> dst on the same filesystem.

        Notes:
            Uses os.replace, which is atomic only if src and dst reside on the same filesystem.
            Callers must ensure tmp and final are placed under the same mount/volume.
        """
        os.replace(src, dst)

    def fsync(self, fh: BinaryIO) -> None:
        """
        Flush and fsync an open file handle.

        Notes:
            Ensures file contents reach the storage device (subject to OS/filesystem semantics).
        """
        fh.flush()
        os.fsync(fh.fileno())


def filesystem_for(settings: IoSettings) -> StorageBackend:
    """
    Return the storage backend for the configured protocol.

    Raises:
        IoConfigError: If settings.fs_protocol is not supported.
    """
    if settings.fs_protocol == "file":
        return LocalFileSystem()
    raise IoConfigError(f"unsupported fs_protocol {settings.fs_protocol!r}")
