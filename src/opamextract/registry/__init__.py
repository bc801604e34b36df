"""Repository lookup and source URL handling."""

from .repository import fallback_version, load_direct, lookup_all_versions, lookup_exact
from .source import Source, resolve_url

__all__ = [
    "fallback_version",
    "load_direct",
    "lookup_all_versions",
    "lookup_exact",
    "Source",
    "resolve_url",
]
