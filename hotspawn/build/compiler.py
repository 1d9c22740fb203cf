# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

"""In-memory build of a Python source tree.

Every included file under ``source_dir`` becomes an asset at the same
relative location under the virtual ``output_dir``. Python files are
compiled to catch syntax errors; nothing is written to disk.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import time
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from hotspawn.config import BuildConfig

logger = logging.getLogger("hotspawn.build")

# Directories never scanned for sources
EXCLUDED_DIRS = frozenset({
    "__pycache__", ".git", ".hg", ".hotspawn", ".mypy_cache",
    ".pytest_cache", ".tox", ".venv", "venv", "node_modules",
})

OUTPUT_DIRNAME = ".hotspawn"


@dataclass
class SourceAsset:
    """A build output file held in memory."""

    path: str
    text: str

    def source(self) -> str:
        return self.text


@dataclass
class BuildResult:
    """Stats for one finished build."""

    output_path: Path
    entry_filename: str
    assets: list[SourceAsset] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    watching: bool = False
    duration: float = 0.0

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


class PythonBuild:
    """Builds a source tree into memory."""

    def __init__(
        self,
        source_dir: Path,
        entry: str,
        output_dir: Path | None = None,
        include: Sequence[str] = ("*.py",),
    ):
        self.source_dir = Path(source_dir).resolve()
        self.entry = entry
        self.output_dir = (
            Path(output_dir).resolve() if output_dir else self.source_dir / OUTPUT_DIRNAME
        )
        self.include = tuple(include)

    @classmethod
    def from_config(cls, config: BuildConfig) -> PythonBuild:
        return cls(
            source_dir=Path(config.source_dir),
            entry=config.entry,
            output_dir=Path(config.output_dir) if config.output_dir else None,
            include=config.include,
        )

    def matches(self, path: str | os.PathLike[str]) -> bool:
        """True if *path* is a source file this build includes."""
        path = Path(path)
        try:
            rel = path.resolve().relative_to(self.source_dir)
        except ValueError:
            return False
        if any(part in EXCLUDED_DIRS for part in rel.parts[:-1]):
            return False
        return any(fnmatch.fnmatch(rel.name, pattern) for pattern in self.include)

    def _iter_sources(self) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(self.source_dir):
            dirnames[:] = sorted(d for d in dirnames if d not in EXCLUDED_DIRS)
            for filename in sorted(filenames):
                if any(fnmatch.fnmatch(filename, pattern) for pattern in self.include):
                    yield Path(dirpath) / filename

    def run(self, watching: bool = False) -> BuildResult:
        """Build the tree. Problems are collected in ``errors``, never raised."""
        started = time.monotonic()
        result = BuildResult(
            output_path=self.output_dir,
            entry_filename=self.entry,
            watching=watching,
        )

        for source_file in self._iter_sources():
            rel = source_file.relative_to(self.source_dir)
            virtual_path = str(self.output_dir / rel)
            try:
                text = source_file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                result.errors.append(f"{rel}: {e}")
                continue

            if source_file.suffix == ".py":
                try:
                    compile(text, virtual_path, "exec", dont_inherit=True)
                except SyntaxError as e:
                    result.errors.append(f"{rel}:{e.lineno}: {e.msg}")
                    continue

            result.assets.append(SourceAsset(path=virtual_path, text=text))

        entry_virtual = str(self.output_dir / self.entry)
        if not any(asset.path == entry_virtual for asset in result.assets) and not result.errors:
            result.errors.append(f"Entry '{self.entry}' not found in {self.source_dir}")

        result.duration = time.monotonic() - started
        logger.info(
            "Build finished in %.2fs: %d asset(s), %d error(s)",
            result.duration, len(result.assets), len(result.errors),
        )
        return result
