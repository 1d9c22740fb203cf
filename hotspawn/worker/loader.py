"""
Virtual module loader: serves build artifacts from memory inside the worker.

Installed once per worker process. Only paths present in the artifact
map are intercepted; everything else falls through to the real
import system and filesystem.
"""

# Hotspawn - In-memory build supervisor
# Copyright (C) 2026 Hotspawn Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import asyncio
import builtins
import importlib.abc
import importlib.util
import io
import logging
import os
import sys
from collections.abc import Callable, Mapping, Sequence
from types import MappingProxyType, ModuleType
from typing import Any

logger = logging.getLogger(__name__)

ReadCallback = Callable[[BaseException | None, str | None], None]

_READ_MODE_CHARS = frozenset("rbt")


class ArtifactSourceLoader(importlib.abc.SourceLoader):
    """Loader for one module whose source lives in the artifact map.

    No ``path_stats``, so no bytecode is ever cached to disk. Provides
    ``get_source`` through SourceLoader, which keeps tracebacks and
    ``linecache`` working.
    """

    def __init__(self, vfs: VirtualModuleLoader, path: str):
        self.vfs = vfs
        self.path = path

    def get_filename(self, fullname: str | None = None) -> str:
        return self.path

    def get_data(self, path: str) -> bytes:
        if self.vfs.is_virtual(path):
            return self.vfs.read_sync(path).encode("utf-8")
        with self.vfs.real_open(path, "rb") as f:
            return f.read()


class VirtualModuleLoader(importlib.abc.MetaPathFinder):
    """
    Import-system finder plus file-read interceptors for an artifact map.
    """

    def __init__(self, artifacts: Mapping[str, str]):
        self.artifacts: Mapping[str, str] = MappingProxyType({
            self._normalize(path): text for path, text in artifacts.items()
        })
        self._installed = False
        self.real_open = builtins.open
        self._real_io_open = io.open
        self._real_exists = os.path.exists
        self._real_isfile = os.path.isfile

    # ── Path helpers ──────────────────────────────────────────

    @staticmethod
    def _normalize(path: Any) -> str:
        return os.path.normpath(os.path.abspath(os.fspath(path)))

    def _key(self, path: Any) -> str | None:
        """Artifact key for *path*, or None if it is not a mapped path."""
        if isinstance(path, (int, bytes)):
            return None
        try:
            key = self._normalize(path)
        except TypeError:
            return None
        return key if key in self.artifacts else None

    def is_virtual(self, path: Any) -> bool:
        return self._key(path) is not None

    # ── Public contract ──────────────────────────────────────

    def resolve(self, path: str | os.PathLike[str]) -> str:
        """Resolve *path* to an existing file.

        Raises:
            FileNotFoundError: Neither mapped nor present on disk
        """
        key = self._key(path)
        if key is not None:
            return key
        real = os.path.realpath(path)
        if not self._real_exists(real):
            raise FileNotFoundError(f"No such file: {os.fspath(path)}")
        return real

    def read_sync(self, path: str | os.PathLike[str], encoding: str = "utf-8") -> str:
        key = self._key(path)
        if key is not None:
            return self.artifacts[key]
        with self.real_open(path, "r", encoding=encoding) as f:
            return f.read()

    def exists(self, path: Any) -> bool:
        return self.is_virtual(path) or self._real_exists(path)

    def isfile(self, path: Any) -> bool:
        return self.is_virtual(path) or self._real_isfile(path)

    def read_async(self, path: str | os.PathLike[str], callback: ReadCallback) -> None:
        """Read *path* and call ``callback(error, text)``.

        Mapped paths complete on the next event-loop iteration, never
        synchronously, same as a real read.
        """
        loop = asyncio.get_running_loop()
        key = self._key(path)
        if key is not None:
            loop.call_soon(callback, None, self.artifacts[key])
            return

        future = loop.run_in_executor(None, self.read_sync, path)

        def _done(f: asyncio.Future) -> None:
            if f.cancelled():
                callback(asyncio.CancelledError(), None)
            elif f.exception() is not None:
                callback(f.exception(), None)
            else:
                callback(None, f.result())

        future.add_done_callback(_done)

    # ── Import system ──────────────────────────────────────────

    def find_spec(
        self,
        fullname: str,
        path: Sequence[str] | None = None,
        target: ModuleType | None = None,
    ) -> importlib.machinery.ModuleSpec | None:
        name = fullname.rpartition(".")[2]
        search = sys.path if path is None else path
        for entry in search:
            if not isinstance(entry, str):
                continue
            base = self._normalize(entry or os.getcwd())
            package_dir = os.path.join(base, name)
            init_file = os.path.join(package_dir, "__init__.py")
            if init_file in self.artifacts:
                return importlib.util.spec_from_file_location(
                    fullname, init_file,
                    loader=ArtifactSourceLoader(self, init_file),
                    submodule_search_locations=[package_dir],
                )
            module_file = os.path.join(base, name + ".py")
            if module_file in self.artifacts:
                return importlib.util.spec_from_file_location(
                    fullname, module_file,
                    loader=ArtifactSourceLoader(self, module_file),
                )
        return None

    # ── Interception ──────────────────────────────────────────

    def _open(self, file: Any, mode: str = "r", *args: Any, **kwargs: Any) -> Any:
        if set(mode) <= _READ_MODE_CHARS:
            key = self._key(file)
            if key is not None:
                text = self.artifacts[key]
                if "b" in mode:
                    return io.BytesIO(text.encode("utf-8"))
                return io.StringIO(text)
        return self.real_open(file, mode, *args, **kwargs)

    def install(self) -> None:
        """Put the finder first on sys.meta_path and wrap the read primitives."""
        if self._installed:
            return
        sys.meta_path.insert(0, self)
        builtins.open = self._open
        io.open = self._open
        os.path.exists = self.exists
        os.path.isfile = self.isfile
        self._installed = True
        logger.debug("Virtual module loader installed (%d artifacts)", len(self.artifacts))

    def uninstall(self) -> None:
        """Restore the original primitives."""
        if not self._installed:
            return
        if self in sys.meta_path:
            sys.meta_path.remove(self)
        builtins.open = self.real_open
        io.open = self._real_io_open
        os.path.exists = self._real_exists
        os.path.isfile = self._real_isfile
        self._installed = False

    def load_entry(self, path: str | os.PathLike[str]) -> ModuleType:
        """Execute the mapped *path* as ``__main__``.

        Its directory goes first on sys.path, so sibling artifacts import
        like ordinary files.

        Raises:
            FileNotFoundError: *path* is not in the artifact map
        """
        key = self._key(path)
        if key is None:
            raise FileNotFoundError(f"Entry not in build output: {os.fspath(path)}")

        sys.path.insert(0, os.path.dirname(key))
        sys.argv[:1] = [key]

        loader = ArtifactSourceLoader(self, key)
        spec = importlib.util.spec_from_file_location("__main__", key, loader=loader)
        module = importlib.util.module_from_spec(spec)
        sys.modules["__main__"] = module
        logger.debug("Loading entry %s", key)
        loader.exec_module(module)
        return module
