"""
client.py - Content API collaborator for remote repositories.

The resolver only needs one primitive from a remote host: "give me the
contents entry at (owner, repo, path, ref)". For a file or symlink that is a
JSON object; for a directory it is a JSON array of entries.

GitHubContentClient implements it against the REST contents endpoint with
httpx. Anything else that satisfies ContentClient (an in-memory fake, a
cached mirror) can be handed to the resolver instead.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, List, Optional, Protocol, Union
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from workflow_imports.config.resolver_config import ResolverConfig, get_config
from workflow_imports.spec.errors import FetchError, NotFoundError

logger = logging.getLogger(__name__)


class ContentAPIError(Exception):
    """Raised by a content client when the API call fails.

    The message text is what the not-found classifier inspects, so clients
    should keep the upstream wording (e.g. "HTTP 404: Not Found").
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ContentEntry(BaseModel):
    """One entry returned by the contents endpoint."""

    type: str = "file"
    name: str = ""
    path: str = ""
    content: Optional[str] = None
    encoding: Optional[str] = None
    target: Optional[str] = None

    @property
    def is_symlink(self) -> bool:
        return self.type == "symlink" and bool(self.target)

    def decoded_content(self) -> bytes:
        """Decode the entry's content (base64 on the wire)."""
        if self.content is None:
            return b""
        if self.encoding in (None, "", "base64"):
            try:
                return base64.b64decode(self.content)
            except (binascii.Error, ValueError) as e:
                raise ContentAPIError(f"failed to decode base64 content: {e}") from e
        return self.content.encode("utf-8")


ContentsPayload = Union[ContentEntry, List[ContentEntry]]


def is_not_found_error(message: str) -> bool:
    """Check if an error message indicates a 404 Not Found response.

    Collaborator error text is not a typed contract, so the match is a
    case-insensitive substring test.
    """
    lower = message.lower()
    return "404" in lower or "not found" in lower


def classify_api_error(error: ContentAPIError, coordinate: str) -> Exception:
    """Convert a collaborator error into NotFoundError or FetchError."""
    message = str(error)
    if error.status_code == 404 or is_not_found_error(message):
        return NotFoundError(coordinate, message)
    return FetchError(coordinate, message, status_code=error.status_code)


class ContentClient(Protocol):
    """Protocol for anything that can answer contents queries."""

    def get_contents(self, owner: str, repo: str, path: str, ref: str) -> ContentsPayload:
        ...


def parse_contents_payload(raw: Any) -> ContentsPayload:
    """Validate a decoded contents response into ContentEntry models.

    Raises:
        ContentAPIError: If the payload is neither an object nor an array.
    """
    try:
        if isinstance(raw, list):
            return [ContentEntry.model_validate(item) for item in raw]
        if isinstance(raw, dict):
            return ContentEntry.model_validate(raw)
    except ValidationError as e:
        raise ContentAPIError(f"failed to parse contents response: {e}") from e
    raise ContentAPIError(f"unexpected contents response type: {type(raw).__name__}")


class GitHubContentClient:
    """Contents API client over httpx.

    Args:
        config: Resolver configuration (api_url, token, timeout).
        http_client: Optional pre-built httpx.Client (tests pass one with a
            MockTransport).
    """

    def __init__(self, config: Optional[ResolverConfig] = None, http_client: Optional[httpx.Client] = None):
        self.config = config or get_config()
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            base_url=self.config.api_url,
            timeout=self.config.timeout_seconds,
            headers=self._headers(),
        )

    def _headers(self) -> dict:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": self.config.user_agent,
        }
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    def get_contents(self, owner: str, repo: str, path: str, ref: str) -> ContentsPayload:
        endpoint = f"/repos/{owner}/{repo}/contents/{quote(path)}"
        logger.debug("GET %s?ref=%s", endpoint, ref)

        try:
            response = self._client.get(endpoint, params={"ref": ref}, headers=self._headers())
        except httpx.HTTPError as e:
            raise ContentAPIError(f"request to {endpoint} failed: {e}") from e

        if response.status_code >= 400:
            reason = response.reason_phrase or "error"
            detail = ""
            try:
                payload = response.json()
                if isinstance(payload, dict):
                    detail = str(payload.get("message", ""))
            except ValueError:
                detail = response.text[:200]
            message = f"HTTP {response.status_code}: {reason}"
            if detail and detail != reason:
                message += f" ({detail})"
            raise ContentAPIError(message, status_code=response.status_code)

        try:
            raw = response.json()
        except ValueError as e:
            raise ContentAPIError(f"invalid JSON from {endpoint}: {e}") from e

        return parse_contents_payload(raw)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "GitHubContentClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
