"""
filesystem.py - Local file access for the import walker.

The walker reads local imports through a small protocol so that it can run
against the real disk or against an in-memory tree (restricted execution
environments, tests).
"""

from __future__ import annotations

import posixpath
from pathlib import Path
from typing import Dict, Optional, Protocol, Union


class FileSystem(Protocol):
    """Read-only file access used by the walker."""

    def read_bytes(self, path: str) -> bytes:
        """Return file contents. Raises FileNotFoundError when missing."""
        ...

    def exists(self, path: str) -> bool:
        ...


class LocalFileSystem:
    """FileSystem backed by the real disk."""

    def read_bytes(self, path: str) -> bytes:
        return Path(path).read_bytes()

    def exists(self, path: str) -> bool:
        return Path(path).is_file()


class MemoryFileSystem:
    """FileSystem backed by a dict of absolute POSIX paths to contents.

    Example:
        fs = MemoryFileSystem({"/repo/.github/workflows/a.md": "# A"})
        fs.read_bytes("/repo/.github/workflows/a.md")
    """

    def __init__(self, files: Optional[Dict[str, Union[str, bytes]]] = None):
        self._files: Dict[str, bytes] = {}
        for path, content in (files or {}).items():
            self.add(path, content)

    def add(self, path: str, content: Union[str, bytes]) -> None:
        if isinstance(content, str):
            content = content.encode("utf-8")
        self._files[posixpath.normpath(path)] = content

    def read_bytes(self, path: str) -> bytes:
        key = posixpath.normpath(path)
        if key not in self._files:
            raise FileNotFoundError(path)
        return self._files[key]

    def exists(self, path: str) -> bool:
        return posixpath.normpath(path) in self._files
