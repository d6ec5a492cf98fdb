"""Resolver configuration registry.

Provides the repository-layout conventions and remote-access settings used
by the import walker. Environment variables take precedence over YAML config.

Usage:
    from workflow_imports.config.resolver_config import get_config

    config = get_config()
    config.workflows_dir      # ".github/workflows"
    config.api_url            # "https://api.github.com"

Environment overrides:
    WORKFLOW_IMPORTS_WORKFLOWS_DIR      fallback directory for nested remote imports
    WORKFLOW_IMPORTS_ROOT_FOLDER        security boundary folder name
    WORKFLOW_IMPORTS_API_URL            content API base URL
    GH_HOST                             enterprise host (api URL derived from it)
    WORKFLOW_IMPORTS_MAX_SYMLINK_DEPTH  symlink rewrites per fetch
    WORKFLOW_IMPORTS_TIMEOUT_SECONDS    HTTP timeout
    GH_TOKEN / GITHUB_TOKEN             bearer token for the content API
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

_CONFIG_PATH = Path(__file__).parent / "resolver.yaml"
_cached_config: Optional["ResolverConfig"] = None

ENV_PREFIX = "WORKFLOW_IMPORTS_"
TOKEN_ENV_KEYS: Tuple[str, ...] = ("GH_TOKEN", "GITHUB_TOKEN")

SYMLINK_DEPTH_MIN = 0
SYMLINK_DEPTH_MAX = 20
TIMEOUT_MIN_SECONDS = 1.0
TIMEOUT_MAX_SECONDS = 600.0


def _clamp(value: float, name: str, min_val: float, max_val: float) -> float:
    """Clamp a numeric setting to sanity bounds with logging."""
    if value < min_val:
        logger.warning(
            "Setting '%s' value %s is below minimum %s. Clamping to %s.",
            name, value, min_val, min_val,
        )
        return min_val
    if value > max_val:
        logger.warning(
            "Setting '%s' value %s exceeds maximum %s. Clamping to %s.",
            name, value, max_val, max_val,
        )
        return max_val
    return value


def _env_number(env: Dict[str, str], key: str, default: Any, cast: Callable[[Any], float]) -> float:
    """Read a numeric override, falling back to default when it does not parse."""
    raw = env.get(key)
    if raw is None:
        return cast(default)
    try:
        return cast(raw)
    except ValueError:
        logger.warning(
            "Setting '%s' value %r is not a valid number. Using %s.",
            key, raw, default,
        )
        return cast(default)


@dataclass(frozen=True)
class ResolverConfig:
    """Resolved configuration for one resolver instance.

    workflows_dir is the repository-layout convention used when a remote
    file at the repository root imports a relative path. It is a policy,
    not a structural rule, so it is configurable.
    """

    workflows_dir: str = ".github/workflows"
    root_folder: str = ".github"
    agents_dir: str = ".github/agents"
    api_url: str = "https://api.github.com"
    token: Optional[str] = field(default=None, repr=False)
    max_symlink_depth: int = 5
    timeout_seconds: float = 30.0
    user_agent: str = "workflow-imports"

    def with_overrides(self, **changes: Any) -> "ResolverConfig":
        """Return a copy with selected fields replaced."""
        return replace(self, **changes)


def _default_config() -> Dict[str, Any]:
    """Return default configuration if resolver.yaml doesn't exist."""
    return {
        "version": "1.0",
        "layout": {
            "workflows_dir": ".github/workflows",
            "root_folder": ".github",
            "agents_dir": ".github/agents",
        },
        "remote": {
            "api_url": "https://api.github.com",
            "max_symlink_depth": 5,
            "timeout_seconds": 30,
        },
    }


def _load_yaml() -> Dict[str, Any]:
    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data:
            return data
    return _default_config()


def _api_url_for_host(host: str) -> str:
    host = host.strip().rstrip("/")
    if host in ("github.com", "api.github.com"):
        return "https://api.github.com"
    return f"https://{host}/api/v3"


def build_config(data: Optional[Dict[str, Any]] = None, env: Optional[Dict[str, str]] = None) -> ResolverConfig:
    """Build a ResolverConfig from YAML data and environment.

    Args:
        data: Parsed YAML mapping; the packaged resolver.yaml when omitted.
        env: Environment mapping; os.environ when omitted.

    Returns:
        Frozen ResolverConfig with environment overrides applied.
    """
    if data is None:
        data = _load_yaml()
    if env is None:
        env = dict(os.environ)

    layout = data.get("layout", {}) or {}
    remote = data.get("remote", {}) or {}

    api_url = remote.get("api_url", "https://api.github.com")
    if env.get("GH_HOST"):
        api_url = _api_url_for_host(env["GH_HOST"])
    api_url = env.get(f"{ENV_PREFIX}API_URL", api_url)

    depth = _env_number(env, f"{ENV_PREFIX}MAX_SYMLINK_DEPTH", remote.get("max_symlink_depth", 5), int)
    timeout = _env_number(env, f"{ENV_PREFIX}TIMEOUT_SECONDS", remote.get("timeout_seconds", 30), float)

    token = None
    for key in TOKEN_ENV_KEYS:
        if env.get(key):
            token = env[key]
            break

    return ResolverConfig(
        workflows_dir=env.get(f"{ENV_PREFIX}WORKFLOWS_DIR", layout.get("workflows_dir", ".github/workflows")),
        root_folder=env.get(f"{ENV_PREFIX}ROOT_FOLDER", layout.get("root_folder", ".github")),
        agents_dir=layout.get("agents_dir", ".github/agents"),
        api_url=api_url.rstrip("/"),
        token=token,
        max_symlink_depth=int(_clamp(depth, "max_symlink_depth", SYMLINK_DEPTH_MIN, SYMLINK_DEPTH_MAX)),
        timeout_seconds=_clamp(timeout, "timeout_seconds", TIMEOUT_MIN_SECONDS, TIMEOUT_MAX_SECONDS),
    )


def get_config() -> ResolverConfig:
    """Load resolver configuration, with caching."""
    global _cached_config
    if _cached_config is None:
        _cached_config = build_config()
    return _cached_config


def reset_config() -> None:
    """Reset cached config (for testing)."""
    global _cached_config
    _cached_config = None
