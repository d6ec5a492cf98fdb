"""Configuration for the import resolver."""

from .resolver_config import (
    ResolverConfig,
    build_config,
    get_config,
    reset_config,
)

__all__ = [
    "ResolverConfig",
    "build_config",
    "get_config",
    "reset_config",
]
