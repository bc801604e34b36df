"""Tests for variable configuration and CLI arguments."""

from unittest.mock import patch

import pytest

from opamextract.args import parse_args
from opamextract.config import build_environment_config, default_variables, load_config, parse_overrides
from opamextract.errors import ConfigError


class TestDefaults:
    """Tests for host detection."""

    def test_macos(self):
        with patch("platform.system", return_value="Darwin"), patch("platform.machine", return_value="arm64"):
            variables = default_variables()
        assert variables["os"] == "macos"
        assert variables["arch"] == "arm64"
        assert variables["os-family"] == "macos"

    def test_linux_distribution(self):
        release = {"ID": "ubuntu", "ID_LIKE": "debian"}
        with patch("platform.system", return_value="Linux"), \
                patch("platform.machine", return_value="x86_64"), \
                patch("platform.freedesktop_os_release", return_value=release):
            variables = default_variables()
        assert variables["os"] == "linux"
        assert variables["os-family"] == "debian"
        assert variables["os-distribution"] == "ubuntu"

    def test_linux_without_os_release(self):
        with patch("platform.system", return_value="Linux"), \
                patch("platform.freedesktop_os_release", side_effect=OSError):
            variables = default_variables()
        assert variables["os-distribution"] == "linux"

    def test_jobs_is_not_defined(self):
        """%{jobs}% must survive expansion for downstream builders."""
        variables = default_variables()
        assert "jobs" not in variables
        assert variables["with-test"] is False


class TestConfigFile:
    """Tests for YAML/JSON config files."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("variables:\n  os-distribution: nixos\n  jobs: 4\n  ocaml:native: true\n  make: null\n",
                        encoding="utf-8")
        assert load_config(str(path)) == {
            "os-distribution": "nixos",
            "jobs": "4",
            "ocaml:native": True,
            "make": None,
        }

    def test_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"variables": {"os": "freebsd"}}', encoding="utf-8")
        assert load_config(str(path)) == {"os": "freebsd"}

    def test_no_path(self):
        assert load_config(None) == {}

    @pytest.mark.parametrize("content", ["- a\n- b\n", "variables: [1, 2]\n", "variables: {a: {b: c}}\n", "a: [\n"])
    def test_invalid(self, tmp_path, content):
        path = tmp_path / "config.yml"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "missing.yml"))

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_bytes(b"variables:\n  os: \xff\n")
        with pytest.raises(ConfigError):
            load_config(str(path))


class TestEnvironmentConfig:
    """Tests for merging defaults, files and overrides."""

    def test_overrides(self):
        assert parse_overrides(["with-test=true", "prefix=/usr=x", "dev=False"]) == {
            "with-test": True,
            "prefix": "/usr=x",
            "dev": False,
        }
        with pytest.raises(ConfigError):
            parse_overrides(["novalue"])

    def test_precedence(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("variables:\n  os: freebsd\n  make: null\n  lwt:enabled: yes\n", encoding="utf-8")
        config = build_environment_config(
            str(path), ["os=openbsd", "ocaml:native=true"], defaults={"os": "linux", "make": "make", "arch": "x86_64"},
        )
        assert dict(config.variables) == {"os": "openbsd", "arch": "x86_64"}
        assert dict(config.package_variables) == {("lwt", "enabled"): True, ("ocaml", "native"): True}

    def test_config_is_immutable(self):
        config = build_environment_config(defaults={"os": "linux"})
        with pytest.raises(TypeError):
            config.variables["os"] = "macos"


class TestArgs:
    """Tests for argument parsing."""

    def test_defaults(self):
        ns = parse_args([])
        assert ns.INPUT is None
        assert ns.OUTPUT is None
        assert ns.LOG_LEVEL is None
        assert ns.VARIABLE_SET == []

    def test_options(self):
        ns = parse_args(["-i", "req.json", "-o", "out.json", "--loglevel", "debug", "-c", "vars.yml",
                         "--set", "os=linux", "--set", "jobs=8"])
        assert ns.INPUT == "req.json"
        assert ns.OUTPUT == "out.json"
        assert ns.LOG_LEVEL == "DEBUG"
        assert ns.CONFIG == "vars.yml"
        assert ns.VARIABLE_SET == ["os=linux", "jobs=8"]
