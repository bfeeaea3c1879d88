"""
Configuration for the strata.io module.

Defines IoSettings, a frozen dataclass carrying runtime configuration for IO behavior.
Defaults are sourced from strata.core.constants (the single source of truth) and align
with a local file-based layout.

Source of truth
- strata.core.constants.ROOT_DIR, ROW_GROUP_SIZE, READ_BATCH_SIZE, COMPRESSION
- Partitioning comes from each dataset's DatasetDescriptor, not from settings.

Import DAG discipline
- Depends only on stdlib, strata.core.constants and strata.io.errors.

Notes
- Precedence: environment > TOML > defaults (see IoSettings.load).
- Compression applies to Parquet writes via pyarrow in strata.io.write.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Literal

from strata.core.constants import COMPRESSION as CORE_COMPRESSION
from strata.core.constants import READ_BATCH_SIZE as CORE_READ_BATCH_SIZE
from strata.core.constants import ROOT_DIR as CORE_ROOT_DIR
from strata.core.constants import ROW_GROUP_SIZE as CORE_ROW_GROUP_SIZE

from .errors import IoConfigError

Compression = Literal["zstd", "lz4", "snappy"]

_COMPRESSIONS: frozenset[str] = frozenset({"zstd", "lz4", "snappy"})
_SUPPORTED_PROTOCOLS: frozenset[str] = frozenset({"file"})


def _bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        return v.strip().lower() in {"1", "true", "t", "yes", "y", "on"}
    return False


@dataclass(frozen=True)
class IoSettings:
    """
    Runtime settings for the strata.io layer.

    Attributes:
        root_dir (str): Directory under which datasets are rooted (<root_dir>/<name>).
        compression (Literal["zstd","lz4","snappy"]): Parquet compression codec.
        row_group_size (int): Rows buffered per partition before a row group is written.
        read_batch_size (int): Rows decoded per batch when streaming records.
        fs_protocol (str): Filesystem protocol (only "file" is supported).
        fs_options (dict[str, Any]): Options for the filesystem (ignored for "file").
        strict_schema (bool): If True and the descriptor declares columns, records are
            cast to the declared schema and conversion failures raise IoSchemaError.
            If False, the Arrow schema is inferred from each part's first batch.

    Examples:
        >>> from strata.io import IoSettings
        >>> IoSettings(root_dir="out", row_group_size=1000)  # doctest: +ELLIPSIS
        IoSettings(...)
    """

    root_dir: str = CORE_ROOT_DIR
    compression: Compression = CORE_COMPRESSION  # type: ignore[assignment]
    row_group_size: int = CORE_ROW_GROUP_SIZE
    read_batch_size: int = CORE_READ_BATCH_SIZE
    fs_protocol: str = "file"
    fs_options: dict[str, Any] = field(default_factory=dict)
    strict_schema: bool = True

    def validate(self) -> IoSettings:
        """
        Check value ranges and supported options.

        Returns:
            IoSettings: self, for chaining.

        Raises:
            IoConfigError: On an unsupported protocol/codec or a size < 1.
        """
        if self.fs_protocol not in _SUPPORTED_PROTOCOLS:
            raise IoConfigError(f"unsupported fs_protocol {self.fs_protocol!r}; supported: {sorted(_SUPPORTED_PROTOCOLS)}")
        if self.compression not in _COMPRESSIONS:
            raise IoConfigError(f"unsupported compression {self.compression!r}")
        if self.row_group_size < 1:
            raise IoConfigError("row_group_size must be >= 1")
        if self.read_batch_size < 1:
            raise IoConfigError("read_batch_size must be >= 1")
        return self

    # Configuration loaders (env/TOML) with precedence: env > TOML > defaults.

    @classmethod
    def _apply_mapping(cls, base: IoSettings, cfg: dict[str, Any] | None) -> IoSettings:
        """Apply a loose config mapping onto IoSettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base

        s = base

        if "root_dir" in cfg and isinstance(cfg["root_dir"], str):
            s = replace(s, root_dir=cfg["root_dir"])

        if "compression" in cfg and isinstance(cfg["compression"], str):
            comp = cfg["compression"].strip().lower()
            if comp in _COMPRESSIONS:
                s = replace(s, compression=comp)  # type: ignore[arg-type]

        for key in ("row_group_size", "read_batch_size"):
            if key in cfg:
                try:
                    s = replace(s, **{key: int(cfg[key])})
                except (TypeError, ValueError):
                    pass

        if "fs_protocol" in cfg and isinstance(cfg["fs_protocol"], str):
            s = replace(s, fs_protocol=cfg["fs_protocol"])
        if "fs_options" in cfg and isinstance(cfg["fs_options"], dict):
            s = replace(s, fs_options=dict(cfg["fs_options"]))

        if "strict_schema" in cfg:
            s = replace(s, strict_schema=_bool(cfg["strict_schema"]))

        return s

    @classmethod
    def from_env(cls, base: IoSettings | None = None, prefix: str = "STRATA_IO_") -> IoSettings:
        """
        Build IoSettings from environment variables. Precedence is env > base (if provided) > defaults.

        Recognized variables:
            - STRATA_IO_ROOT_DIR
            - STRATA_IO_COMPRESSION ("zstd" | "lz4" | "snappy")
            - STRATA_IO_ROW_GROUP_SIZE
            - STRATA_IO_READ_BATCH_SIZE
            - STRATA_IO_FS_PROTOCOL
            - STRATA_IO_STRICT_SCHEMA (1/0/true/false/yes/no/on/off)
        """
        s = base or cls()

        mapping: dict[str, Any] = {}
        for key in ("root_dir", "compression", "row_group_size", "read_batch_size", "fs_protocol", "strict_schema"):
            v = os.getenv(prefix + key.upper())
            if v:
                mapping[key] = v
        # FS_OPTIONS via env is skipped; provide it via TOML

        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> IoSettings:
        """
        Build IoSettings from a TOML file.

        Search order when `path` is None:
            1) ./strata.toml (with either top-level [io] or direct keys)
            2) ./pyproject.toml under [tool.strata.io]

        Returns defaults if no file is present.

        Raises:
            IoConfigError: If a candidate file exists but is not valid TOML.
        """
        s = cls()

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "strata.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        cfg: dict[str, Any] | None = None
        for p in cand:
            if not p.exists():
                continue
            try:
                with p.open("rb") as fh:
                    data = tomllib.load(fh)
            except tomllib.TOMLDecodeError as exc:
                raise IoConfigError(f"invalid TOML in {p}: {exc}") from exc
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                cfg = tool.get("strata", {}).get("io", {}) if isinstance(tool, dict) else None
            else:
                io_table = data.get("io")
                cfg = io_table if isinstance(io_table, dict) else data
            if cfg:
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> IoSettings:
        """
        Load IoSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults (strata.toml, pyproject.toml).

        Returns:
            IoSettings: Validated settings.

        Raises:
            IoConfigError: If the resulting settings are invalid.
        """
        s = cls.from_toml(path)
        s = cls.from_env(base=s)
        return s.validate()
