"""Lookup of package metadata in local opam repositories.

Repositories use the opam 2 layout::

    <repo>/packages/<name>/<name>.<version>/opam
    <repo>/packages/<name>/<name>.<version>/url      (optional, legacy)

The version of a repository package is taken from its directory name.
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional

from opamextract.constants import Constants
from opamextract.opamfile.metadata import PackageMetadata, load_opam
from opamextract.versioning.models import PackageId, Repository
from opamextract.versioning.version import OpamVersion

logger = logging.getLogger(__name__)

__all__ = ["lookup_exact", "lookup_all_versions", "load_direct", "fallback_version"]


def _package_dir(repo: Repository, name: str) -> str:
    return os.path.join(repo.path, Constants.PACKAGES_DIR, name)


def _load(path: str, name: str, version: OpamVersion) -> PackageMetadata:
    metadata = load_opam(path)
    metadata.name = name
    metadata.version = version
    return metadata


def lookup_exact(repo: Repository, package_id: PackageId) -> Optional[PackageMetadata]:
    """Metadata for exactly ``package_id`` in ``repo``, or None."""
    path = os.path.join(_package_dir(repo, package_id.name), str(package_id), Constants.OPAM_FILE)
    if not os.path.isfile(path):
        return None
    return _load(path, package_id.name, package_id.version)


def lookup_all_versions(repo: Repository, name: str) -> List[PackageMetadata]:
    """Every version of ``name`` that ``repo`` knows about, in no particular order."""
    package_dir = _package_dir(repo, name)
    if not os.path.isdir(package_dir):
        return []
    prefix = name + "."
    found: List[PackageMetadata] = []
    for entry in os.listdir(package_dir):
        if not entry.startswith(prefix) or len(entry) == len(prefix):
            continue
        path = os.path.join(package_dir, entry, Constants.OPAM_FILE)
        if not os.path.isfile(path):
            continue
        found.append(_load(path, name, OpamVersion(entry[len(prefix):])))
    logger.debug("Repository %s has %d versions of %s", repo.id, len(found), name)
    return found


def fallback_version(name: str, path: str) -> OpamVersion:
    """Version implied by a path named ``<name>.<version>[.opam]``, else ``dev``."""
    base = os.path.basename(os.path.normpath(path))
    prefix = name + "."
    if base.startswith(prefix) and len(base) > len(prefix):
        stripped = base[len(prefix):]
        if stripped.endswith(Constants.OPAM_SUFFIX):
            stripped = stripped[:-len(Constants.OPAM_SUFFIX)]
        return OpamVersion(stripped)
    return OpamVersion(Constants.DEV_VERSION)


def load_direct(name: str, path: str) -> PackageMetadata:
    """Load a package from an opam file or a directory containing one."""
    opam_path = os.path.join(path, Constants.OPAM_FILE) if os.path.isdir(path) else path
    metadata = load_opam(opam_path)
    metadata.name = name
    if metadata.version is None:
        metadata.version = fallback_version(name, path)
    return metadata
