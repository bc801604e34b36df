"""Classification of package source URLs.

opam URLs have the shape ``[backend+]transport://path[#fragment]``. Plain
``http``, ``https`` and ``ftp`` URLs are archives unless they end in
``.git`` (an explicit ``http+`` prefix always means an archive); ``git`` URLs are repositories pinned by their fragment. Other
backends (hg, darcs, rsync, local paths) cannot be turned into a buildable
source.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from opamextract.constants import Constants
from opamextract.errors import UnsupportedArchive
from opamextract.opamfile.metadata import UrlSpec

logger = logging.getLogger(__name__)

__all__ = ["Source", "resolve_url", "split_url"]

ARCHIVE = "archive"
GIT = "git"


@dataclass(frozen=True)
class Source:
    """A resolved, supported source location."""
    kind: str
    url: str
    checksums: Tuple[str, ...] = ()
    rev: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind, "url": self.url}
        if self.kind == ARCHIVE:
            data["checksums"] = list(self.checksums)
        if self.rev is not None:
            data["rev"] = self.rev
        return data


def split_url(src: str) -> Tuple[Optional[str], Optional[str], str, Optional[str]]:
    """Split ``src`` into (backend, transport, address, fragment).

    ``address`` keeps the transport, e.g. ``https://host/path``; backend and
    transport are None for scheme-less paths.
    """
    fragment = None
    if "#" in src:
        src, fragment = src.split("#", 1)
    if "://" not in src:
        return None, None, src, fragment
    scheme, rest = src.split("://", 1)
    backend = None
    transport = scheme
    if "+" in scheme:
        backend, transport = scheme.split("+", 1)
    elif scheme in (GIT, *Constants.UNSUPPORTED_BACKENDS):
        backend = scheme
    return backend, transport, f"{transport}://{rest}", fragment


def resolve_url(spec: UrlSpec) -> Source:
    """Turn a raw url into a :class:`Source`.

    Raises:
        UnsupportedArchive: If the URL's backend or transport is not handled.
    """
    backend, transport, address, fragment = split_url(spec.src)
    if backend in Constants.ARCHIVE_TRANSPORTS and transport in Constants.ARCHIVE_TRANSPORTS:
        return Source(ARCHIVE, address, spec.checksums)
    if backend is None and transport in Constants.ARCHIVE_TRANSPORTS:
        if address.endswith(".git"):
            backend = GIT
        else:
            return Source(ARCHIVE, address, spec.checksums)
    if backend == GIT and transport in (GIT, *Constants.GIT_TRANSPORTS):
        return Source(GIT, address, rev=fragment)
    logger.debug("Rejecting source %s (backend=%s, transport=%s)", spec.src, backend, transport)
    raise UnsupportedArchive(f"Unsupported archive: {spec.src}")
