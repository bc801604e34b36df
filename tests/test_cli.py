"""Tests for the command line entry point."""

import io
import json
import os

import pytest

from opamextract.cli import main
from opamextract.constants import ExitCodes


def run_main(monkeypatch, document, *argv):
    text = document if isinstance(document, str) else json.dumps(document)
    monkeypatch.setattr("sys.stdin", io.StringIO(text))
    with pytest.raises(SystemExit) as excinfo:
        main(list(argv))
    return excinfo.value.code


class TestMain:
    """End-to-end runs through main()."""

    def test_exact_request(self, repos, monkeypatch, capsys):
        repo = repos.repository("main")
        repos.add(repo, "foo", "1.0", 'build: [["make"]]\n')
        code = run_main(monkeypatch, {
            "repositories": [{"id": "main", "path": repo.path}],
            "selection": [{"name": "foo", "version": "1.0"}],
        })
        assert code == ExitCodes.SUCCESS.value
        assert json.loads(capsys.readouterr().out) == {
            "foo": {
                "name": "foo",
                "version": "1.0",
                "repository": "main",
                "build_commands": [["make"]],
                "install_commands": [],
            }
        }

    def test_output_is_indented(self, repos, monkeypatch, capsys):
        repo = repos.repository("main")
        repos.add(repo, "foo", "1.0")
        run_main(monkeypatch, {
            "repositories": [{"id": "main", "path": repo.path}],
            "selection": {"foo": "1.0"},
        })
        assert '\n  "foo": {\n' in capsys.readouterr().out

    def test_search_failure(self, repos, monkeypatch, capsys):
        """An unsatisfiable request exits non-zero and prints nothing."""
        repo = repos.repository("main")
        repos.add(repo, "baz", "0.5")
        code = run_main(monkeypatch, {
            "repositories": [{"id": "main", "path": repo.path}],
            "spec": [{"name": "baz", "constraints": [{"op": ">=", "value": "1.0"}]}],
        })
        captured = capsys.readouterr()
        assert code == ExitCodes.SEARCH_FAILED.value
        assert captured.out == ""
        assert "baz" in captured.err

    @pytest.mark.parametrize("document", [
        "not json",
        {"repositories": []},
        {"repositories": [], "spec": [], "selection": []},
    ])
    def test_malformed_request(self, monkeypatch, capsys, document):
        code = run_main(monkeypatch, document)
        assert code == ExitCodes.REQUEST_ERROR.value
        assert capsys.readouterr().out == ""

    def test_package_not_found(self, repos, monkeypatch, capsys):
        repo = repos.repository("main")
        code = run_main(monkeypatch, {
            "repositories": [{"id": "main", "path": repo.path}],
            "selection": [{"name": "ghost", "version": "1.0"}],
        })
        assert code == ExitCodes.PACKAGE_ERROR.value
        assert capsys.readouterr().out == ""

    def test_input_and_output_files(self, repos, tmp_path, capsys):
        repo = repos.repository("main")
        repos.add(repo, "foo", "1.0", 'build: ["make" "PREFIX=%{prefix}%" "-j%{jobs}%"]\n')
        request = tmp_path / "request.json"
        response = tmp_path / "response.json"
        request.write_text(json.dumps({
            "repositories": [{"id": "main", "path": repo.path}],
            "selection": [{"name": "foo", "version": "1.0"}],
        }), encoding="utf-8")
        with pytest.raises(SystemExit) as excinfo:
            main(["--input", str(request), "--output", str(response), "--set", "prefix=/nix/store/x"])
        assert excinfo.value.code == 0
        assert capsys.readouterr().out == ""
        data = json.loads(response.read_text(encoding="utf-8"))
        assert data["foo"]["build_commands"] == [["make", "PREFIX=/nix/store/x", "-j%{jobs}%"]]

    def test_request_with_invalid_utf8(self, tmp_path, capsys):
        request = tmp_path / "request.json"
        request.write_bytes(b'{"repositories": [], "spec": [{"name": "\xff"}]}')
        with pytest.raises(SystemExit) as excinfo:
            main(["--input", str(request)])
        assert excinfo.value.code == ExitCodes.REQUEST_ERROR.value
        assert capsys.readouterr().out == ""

    def test_opam_file_with_invalid_utf8(self, repos, monkeypatch, capsys):
        repo = repos.repository("main")
        pkg_dir = repos.add(repo, "foo", "1.0")
        with open(os.path.join(pkg_dir, "opam"), "wb") as f:
            f.write(b'opam-version: "2.0"\nsynopsis: "\xff"\n')
        code = run_main(monkeypatch, {
            "repositories": [{"id": "main", "path": repo.path}],
            "spec": [{"name": "foo"}],
        })
        captured = capsys.readouterr()
        assert code == ExitCodes.REQUEST_ERROR.value
        assert captured.out == ""
        assert "invalid UTF-8" in captured.err

    def test_unwritable_output(self, repos, monkeypatch, tmp_path, capsys):
        """A response that cannot be written is a logged request error."""
        repo = repos.repository("main")
        repos.add(repo, "foo", "1.0")
        code = run_main(monkeypatch, {
            "repositories": [{"id": "main", "path": repo.path}],
            "selection": [{"name": "foo", "version": "1.0"}],
        }, "--output", str(tmp_path / "missing" / "response.json"))
        captured = capsys.readouterr()
        assert code == ExitCodes.REQUEST_ERROR.value
        assert captured.out == ""
        assert "Cannot write response" in captured.err
