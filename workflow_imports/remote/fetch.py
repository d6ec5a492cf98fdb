"""
fetch.py - Fetch remote file content through the cache.

RemoteFetcher is the only place the walker touches the content API. It turns
collaborator errors into NotFoundError / FetchError immediately, so nothing
past this module ever inspects error text.
"""

from __future__ import annotations

import logging
from typing import Optional

from workflow_imports.spec.errors import FetchError, NotFoundError
from workflow_imports.spec.types import WorkflowSpec

from .cache import CacheKey, ContentCache
from .client import ContentAPIError, ContentClient, classify_api_error
from .symlinks import SymlinkResolver

logger = logging.getLogger(__name__)

DEFAULT_MAX_SYMLINK_DEPTH = 5


class RemoteFetcher:
    """Fetch (owner, repo, path, ref) with caching and symlink fallback.

    Args:
        client: Content API collaborator.
        cache: Cache owned by the current resolution; a fresh one if omitted.
        max_symlink_depth: How many symlink rewrites one fetch may follow.
    """

    def __init__(
        self,
        client: ContentClient,
        cache: Optional[ContentCache] = None,
        max_symlink_depth: int = DEFAULT_MAX_SYMLINK_DEPTH,
    ):
        self.client = client
        self.cache = cache if cache is not None else ContentCache()
        self.max_symlink_depth = max_symlink_depth
        self.symlinks = SymlinkResolver(client)

    def fetch_spec(self, spec: WorkflowSpec) -> bytes:
        return self.fetch(spec.owner, spec.repo, spec.file_path, spec.ref)

    def fetch(self, owner: str, repo: str, path: str, ref: str) -> bytes:
        """Return file bytes.

        Raises:
            NotFoundError: The file does not exist (also after symlink resolution).
            FetchError: Auth, server or network failure.
            SecurityError: A symlink on the path points outside the repository.
        """
        key = CacheKey(owner, repo, ref, path)
        return self.cache.get_or_load(key, lambda: self._load(owner, repo, path, ref, 0))

    def _load(self, owner: str, repo: str, path: str, ref: str, depth: int) -> bytes:
        coordinate = f"{owner}/{repo}/{path}@{ref}"
        logger.debug("Fetching %s", coordinate)

        try:
            entry = self.client.get_contents(owner, repo, path, ref)
        except ContentAPIError as e:
            classified = classify_api_error(e, coordinate)
            if isinstance(classified, NotFoundError) and depth < self.max_symlink_depth:
                resolved = self._try_symlinks(owner, repo, path, ref)
                if resolved is not None and resolved != path:
                    logger.debug("Retrying with symlink-resolved path: %s -> %s", path, resolved)
                    key = CacheKey(owner, repo, ref, resolved)
                    return self.cache.get_or_load(
                        key, lambda: self._load(owner, repo, resolved, ref, depth + 1)
                    )
            raise classified from e

        if isinstance(entry, list):
            raise FetchError(coordinate, "path is a directory, not a file")

        try:
            content = entry.decoded_content()
        except ContentAPIError as e:
            raise FetchError(coordinate, str(e)) from e

        logger.debug("Fetched %s: %d bytes", coordinate, len(content))
        return content

    def _try_symlinks(self, owner: str, repo: str, path: str, ref: str) -> Optional[str]:
        try:
            return self.symlinks.resolve(owner, repo, path, ref)
        except NotFoundError as e:
            logger.debug("Symlink resolution found nothing for %s: %s", path, e)
            return None
