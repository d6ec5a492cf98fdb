"""
Test fixtures and utilities for workflow_imports tests.

This module provides reusable fixtures for testing the import resolver,
including temporary `.github` repositories, an in-memory content API client
and helper functions for writing workflow files.
"""

import base64
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import pytest

from workflow_imports.config.resolver_config import ResolverConfig, reset_config
from workflow_imports.remote.client import ContentAPIError, ContentEntry
from workflow_imports.resolver.filesystem import LocalFileSystem
from workflow_imports.resolver.walker import ImportResolver

# ============================================================================
# Fake Content API
# ============================================================================

_Key = Tuple[str, str, str, str]


class FakeContentClient:
    """In-memory ContentClient.

    Files, symlinks and injected failures are keyed by (owner, repo, ref, path).
    Any prefix of a stored path answers as a directory listing. Everything
    else is a 404. Every call is recorded in `calls`.
    """

    def __init__(self):
        self.files: Dict[_Key, bytes] = {}
        self.symlinks: Dict[_Key, str] = {}
        self.failures: Dict[_Key, Tuple[str, Optional[int]]] = {}
        self.calls: List[_Key] = []

    def add_file(self, owner: str, repo: str, path: str, content: Union[str, bytes], ref: str = "main"):
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.files[(owner, repo, ref, path)] = content

    def add_symlink(self, owner: str, repo: str, path: str, target: str, ref: str = "main"):
        self.symlinks[(owner, repo, ref, path)] = target

    def fail(self, owner: str, repo: str, path: str, message: str, status_code: Optional[int] = None, ref: str = "main"):
        self.failures[(owner, repo, ref, path)] = (message, status_code)

    def calls_for(self, path: str) -> int:
        return sum(1 for call in self.calls if call[3] == path)

    def _is_directory(self, owner: str, repo: str, ref: str, path: str) -> bool:
        prefix = path + "/"
        for o, r, f, p in list(self.files) + list(self.symlinks):
            if (o, r, f) == (owner, repo, ref) and p.startswith(prefix):
                return True
        return False

    def get_contents(self, owner: str, repo: str, path: str, ref: str):
        key = (owner, repo, ref, path)
        self.calls.append(key)

        if key in self.failures:
            message, status_code = self.failures[key]
            raise ContentAPIError(message, status_code=status_code)
        if key in self.symlinks:
            return ContentEntry(type="symlink", name=os.path.basename(path), path=path, target=self.symlinks[key])
        if key in self.files:
            return ContentEntry(
                type="file",
                name=os.path.basename(path),
                path=path,
                content=base64.b64encode(self.files[key]).decode("ascii"),
                encoding="base64",
            )
        if self._is_directory(owner, repo, ref, path):
            return [ContentEntry(type="dir", name="entry", path=f"{path}/entry")]
        raise ContentAPIError("HTTP 404: Not Found", status_code=404)


class RecordingFileSystem(LocalFileSystem):
    """LocalFileSystem that records every path it is asked about."""

    def __init__(self):
        self.accessed: List[str] = []

    def read_bytes(self, path: str) -> bytes:
        self.accessed.append(path)
        return super().read_bytes(path)

    def exists(self, path: str) -> bool:
        self.accessed.append(path)
        return super().exists(path)


# ============================================================================
# Helpers
# ============================================================================


def write_file(path: Path, content: str) -> Path:
    """Write content to path, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def norm(path: Path) -> str:
    """Normalized absolute path string, as the resolver keys local files."""
    return os.path.normpath(os.path.abspath(str(path)))


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _reset_resolver_config():
    """Make sure no test sees another test's cached configuration."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config():
    """Default resolver configuration, independent of the environment."""
    return ResolverConfig()


@pytest.fixture
def fake_client():
    return FakeContentClient()


@pytest.fixture
def github_repo(tmp_path):
    """
    Create a temporary repository with an empty `.github` layout.

    Returns a Path to the repository root with:
    - .github/workflows/
    - .github/workflows/shared/
    - .github/agents/
    """
    repo = tmp_path / "repo"
    (repo / ".github" / "workflows" / "shared").mkdir(parents=True)
    (repo / ".github" / "agents").mkdir(parents=True)
    return repo


@pytest.fixture
def workflows_dir(github_repo):
    return github_repo / ".github" / "workflows"


@pytest.fixture
def resolver(config, fake_client):
    """ImportResolver over the real disk and the fake content client."""
    return ImportResolver(config=config, client=fake_client)
