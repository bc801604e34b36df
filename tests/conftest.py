"""Shared fixtures: small opam repositories written under tmp_path."""

import os
import textwrap

import pytest

from opamextract.filters.environment import EnvironmentConfig
from opamextract.versioning.models import Repository


class RepoBuilder:
    """Writes ``packages/<name>/<name>.<version>/opam`` trees."""

    def __init__(self, root):
        self.root = root

    def repository(self, repo_id):
        path = os.path.join(str(self.root), repo_id)
        os.makedirs(os.path.join(path, "packages"), exist_ok=True)
        return Repository(repo_id, path)

    def add(self, repo, name, version, opam="", url=None):
        pkg_dir = os.path.join(repo.path, "packages", name, f"{name}.{version}")
        os.makedirs(pkg_dir, exist_ok=True)
        with open(os.path.join(pkg_dir, "opam"), "w", encoding="utf-8") as f:
            f.write('opam-version: "2.0"\n' + textwrap.dedent(opam))
        if url is not None:
            with open(os.path.join(pkg_dir, "url"), "w", encoding="utf-8") as f:
                f.write(textwrap.dedent(url))
        return pkg_dir


@pytest.fixture
def repos(tmp_path):
    """Factory for on-disk opam repositories."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def linux_config():
    """A fixed variable configuration independent of the host."""
    return EnvironmentConfig({
        "os": "linux",
        "arch": "x86_64",
        "os-family": "debian",
        "os-distribution": "debian",
        "make": "make",
        "with-test": False,
        "with-doc": False,
        "dev": False,
    })
