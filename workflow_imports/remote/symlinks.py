"""
symlinks.py - Resolve symlinked directories in remote repository paths.

The contents API does not follow symlinks in intermediate path components.
If `.github/workflows/shared` is a symlink to `../../library/shared`, then
fetching `.github/workflows/shared/tools.md` returns 404 even though the file
exists at `library/shared/tools.md`. The resolver walks the path prefixes,
finds the first symlinked component and rewrites the path through it.
"""

from __future__ import annotations

import logging
import posixpath

from workflow_imports.spec.errors import FetchError, NotFoundError, SecurityError

from .client import ContentAPIError, ContentClient, classify_api_error

logger = logging.getLogger(__name__)


def rewrite_through_symlink(parts: list, index: int, target: str) -> str:
    """Rebuild a path after the component at parts[index - 1] turned out to be a symlink.

    Args:
        parts: Path components of the original path.
        index: Length of the prefix that is the symlink.
        target: The symlink's target, relative to its parent directory.

    Returns:
        The rewritten path. Relative targets follow filesystem `..` rules.

    Raises:
        SecurityError: If the target resolves outside the repository root.

    Examples:
        >>> rewrite_through_symlink([".github", "workflows", "shared", "a.md"], 3, "../../lib/shared")
        'lib/shared/a.md'
    """
    parent = "/".join(parts[: index - 1])
    joined = posixpath.join(parent, target) if parent else target
    resolved_base = posixpath.normpath(joined)

    if (
        resolved_base in ("", ".")
        or resolved_base.startswith("/")
        or resolved_base == ".."
        or resolved_base.startswith("../")
    ):
        symlink = "/".join(parts[:index])
        raise SecurityError(symlink, resolved_base, "repository root")

    remaining = "/".join(parts[index:])
    return f"{resolved_base}/{remaining}"


class SymlinkResolver:
    """Find and rewrite a symlinked component of a remote path."""

    def __init__(self, client: ContentClient):
        self.client = client

    def resolve(self, owner: str, repo: str, path: str, ref: str) -> str:
        """Return `path` rewritten through its first symlinked directory.

        Raises:
            NotFoundError: If no component of the path is a symlink.
            FetchError: If the API fails for a reason other than 404.
            SecurityError: If a symlink points outside the repository.
        """
        parts = path.split("/")
        coordinate = f"{owner}/{repo}/{path}@{ref}"
        if len(parts) <= 1:
            raise NotFoundError(coordinate, "no directory components to resolve")

        logger.debug("Checking %d path components of %s for symlinks", len(parts) - 1, coordinate)

        for i in range(1, len(parts)):
            prefix = "/".join(parts[:i])
            try:
                entry = self.client.get_contents(owner, repo, prefix, ref)
            except ContentAPIError as e:
                classified = classify_api_error(e, f"{owner}/{repo}/{prefix}@{ref}")
                if isinstance(classified, NotFoundError):
                    logger.debug("Path component %s returned 404, skipping", prefix)
                    continue
                raise FetchError(
                    coordinate,
                    f"failed to check path component {prefix} for symlinks: {e}",
                    status_code=e.status_code,
                ) from e

            if isinstance(entry, list):
                logger.debug("Path component %s is a directory", prefix)
                continue

            if entry.is_symlink:
                resolved = rewrite_through_symlink(parts, i, entry.target)
                logger.info("Resolved symlink in remote path: %s -> %s (%s -> %s)", prefix, entry.target, path, resolved)
                return resolved

            logger.debug("Path component %s is type=%s", prefix, entry.type)

        raise NotFoundError(coordinate, "no symlinks found in path")
