"""
workflow_imports/remote - Remote repository content access.

- ContentClient: protocol for the contents API collaborator
- GitHubContentClient: httpx implementation of the protocol
- ContentCache: per-resolution read-through cache
- RemoteFetcher: cached fetch with error classification and symlink fallback
- SymlinkResolver: rewrites paths that traverse symlinked directories
"""

from .cache import CacheKey, ContentCache
from .client import (
    ContentAPIError,
    ContentClient,
    ContentEntry,
    GitHubContentClient,
    classify_api_error,
    is_not_found_error,
    parse_contents_payload,
)
from .fetch import RemoteFetcher
from .symlinks import SymlinkResolver, rewrite_through_symlink

__all__ = [
    "CacheKey",
    "ContentCache",
    "ContentAPIError",
    "ContentClient",
    "ContentEntry",
    "GitHubContentClient",
    "classify_api_error",
    "is_not_found_error",
    "parse_contents_payload",
    "RemoteFetcher",
    "SymlinkResolver",
    "rewrite_through_symlink",
]
