"""Tests for candidate enumeration."""

from unittest.mock import patch

from opamextract.resolver.candidates import (
    CandidateEnumerator,
    Unavailable,
    UnsupportedArchiveReason,
)
from opamextract.versioning.models import Direct
from opamextract.versioning.version import OpamVersion

ARCHIVE_URL = 'url { src: "https://example.com/pkg.tar.gz" checksum: "sha256=00" }\n'
HG_URL = 'url { src: "hg+https://example.com/pkg" }\n'


def versions(candidates):
    return [str(c.version) for c in candidates]


class TestCandidateEnumerator:
    """Tests for ordering, deduplication and rejections."""

    def test_sorted_descending(self, repos, linux_config):
        repo = repos.repository("main")
        for version in ("1.0", "1.10", "1.2", "1.2~rc1"):
            repos.add(repo, "foo", version, ARCHIVE_URL)
        result = CandidateEnumerator([repo], {}, linux_config).candidates("foo")
        assert versions(result) == ["1.10", "1.2", "1.2~rc1", "1.0"]
        assert all(c.ok for c in result)

    def test_duplicates_across_repositories(self, repos, linux_config):
        """A version offered twice appears once, from the first repository."""
        first = repos.repository("first")
        second = repos.repository("second")
        repos.add(first, "foo", "1.0")
        repos.add(second, "foo", "1.0")
        repos.add(second, "foo", "2.0")
        result = CandidateEnumerator([first, second], {}, linux_config).candidates("foo")
        assert versions(result) == ["2.0", "1.0"]
        assert result[1].repository.id == "first"

    def test_later_copies_not_evaluated(self, repos, linux_config):
        """Once a version is accepted, later copies are not checked."""
        first = repos.repository("first")
        second = repos.repository("second")
        repos.add(first, "foo", "1.0")
        repos.add(second, "foo", "1.0", 'available: os = "macos"\n')
        with patch("opamextract.resolver.candidates.check_usable", return_value=None) as check:
            CandidateEnumerator([first, second], {}, linux_config).candidates("foo")
        assert check.call_count == 1

    def test_rejected_copy_falls_back_to_lower_priority(self, repos, linux_config):
        """An unavailable copy does not hide a usable one elsewhere."""
        first = repos.repository("first")
        second = repos.repository("second")
        repos.add(first, "bar", "2.0", 'available: os = "macos"\n')
        repos.add(second, "bar", "2.0", 'available: os = "linux"\n')
        (candidate,) = CandidateEnumerator([first, second], {}, linux_config).candidates("bar")
        assert candidate.ok
        assert candidate.repository.id == "second"

    def test_first_rejection_is_reported(self, repos, linux_config):
        first = repos.repository("first")
        second = repos.repository("second")
        repos.add(first, "bar", "2.0", 'available: os = "macos"\n')
        repos.add(second, "bar", "2.0", HG_URL)
        (candidate,) = CandidateEnumerator([first, second], {}, linux_config).candidates("bar")
        assert not candidate.ok
        assert candidate.rejection == Unavailable('os = "macos"')
        assert str(candidate.rejection) == 'Unavailable: os = "macos"'

    def test_archive_checked_before_availability(self, repos, linux_config):
        repo = repos.repository("main")
        repos.add(repo, "foo", "1.0", HG_URL + 'available: false\n')
        (candidate,) = CandidateEnumerator([repo], {}, linux_config).candidates("foo")
        assert candidate.rejection == UnsupportedArchiveReason("hg+https://example.com/pkg")

    def test_undefined_availability_is_rejected(self, repos, linux_config):
        repo = repos.repository("main")
        repos.add(repo, "foo", "1.0", "available: ocaml:installed | undefined_var\n")
        (candidate,) = CandidateEnumerator([repo], {}, linux_config).candidates("foo")
        assert isinstance(candidate.rejection, Unavailable)

    def test_unknown_package(self, repos, linux_config):
        repo = repos.repository("main")
        assert CandidateEnumerator([repo], {}, linux_config).candidates("nothing") == []

    def test_direct_input(self, repos, tmp_path, linux_config):
        """A package given by path yields exactly that metadata."""
        repo = repos.repository("main")
        repos.add(repo, "foo", "1.0")
        local = tmp_path / "foo.3.0.opam"
        local.write_text('opam-version: "2.0"\n', encoding="utf-8")
        enumerator = CandidateEnumerator([repo], {"foo": Direct(str(local))}, linux_config)
        (candidate,) = enumerator.candidates("foo")
        assert candidate.version == OpamVersion("3.0")
        assert candidate.repository is None

    def test_memoized(self, repos, linux_config):
        repo = repos.repository("main")
        repos.add(repo, "foo", "1.0")
        enumerator = CandidateEnumerator([repo], {}, linux_config)
        assert enumerator.candidates("foo") is enumerator.candidates("foo")
