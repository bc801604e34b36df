"""Request-wide variable configuration.

Global opam variables (``os``, ``arch``, ...) are detected from the host,
then overridden by a YAML/JSON config file and finally by ``--set``
options. The result is frozen into an :class:`EnvironmentConfig` once per
request.

Config file format::

    variables:
      os-distribution: nixos
      with-test: false
      jobs: "4"
      ocaml:native: true     # package-scoped binding
      make: null             # remove a default
"""

from __future__ import annotations

import logging
import os
import platform
from typing import Any, Dict, Iterable, Optional, Tuple

import yaml

from opamextract.constants import Constants
from opamextract.errors import ConfigError
from opamextract.filters.environment import EnvironmentConfig, VariableValue

logger = logging.getLogger(__name__)

__all__ = [
    "default_variables",
    "load_config",
    "parse_overrides",
    "build_environment_config",
]

_OS_NAMES = {"darwin": "macos", "windows": "win32"}
_ARCH_NAMES = {
    "x86_64": "x86_64", "amd64": "x86_64",
    "i386": "x86_32", "i486": "x86_32", "i586": "x86_32", "i686": "x86_32", "x86": "x86_32",
    "aarch64": "arm64", "arm64": "arm64",
    "armv7l": "arm32", "armv6l": "arm32", "armhf": "arm32",
    "ppc64le": "ppc64", "ppc64": "ppc64",
}


def _host_os() -> str:
    system = platform.system().lower()
    return _OS_NAMES.get(system, system or "unknown")


def _host_arch() -> str:
    machine = platform.machine().lower()
    return _ARCH_NAMES.get(machine, machine or "unknown")


def _host_distribution(os_name: str) -> Tuple[str, str]:
    """Return (os-family, os-distribution) for the host."""
    if os_name != "linux":
        return os_name, os_name
    try:
        release = platform.freedesktop_os_release()
    except OSError:
        logger.debug("No os-release file, using generic linux")
        return "linux", "linux"
    distribution = release.get("ID", "linux")
    family = (release.get("ID_LIKE") or distribution).split()[0]
    return family, distribution


def default_variables() -> Dict[str, VariableValue]:
    """Global variables every request starts from.

    ``jobs`` is left undefined so that ``%{jobs}%`` survives expansion.
    """
    os_name = _host_os()
    family, distribution = _host_distribution(os_name)
    return {
        "os": os_name,
        "arch": _host_arch(),
        "os-family": family,
        "os-distribution": distribution,
        "make": "make",
        "opam-version": Constants.OPAM_VERSION,
        "with-test": False,
        "with-doc": False,
        "dev": False,
    }


def _coerce(value: Any) -> Optional[VariableValue]:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ConfigError(f"Unsupported variable value: {value!r}")


def load_config(path: Optional[str]) -> Dict[str, Optional[VariableValue]]:
    """Load variable bindings from a YAML or JSON file.

    Returns a mapping of variable keys (``var`` or ``pkg:var``) to values;
    None marks a variable to remove.

    Raises:
        ConfigError: If the file is missing, unparsable or badly shaped.
    """
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    variables = data.get("variables") or {}
    if not isinstance(variables, dict):
        raise ConfigError(f"'variables' in {path} must be a mapping")
    logger.info("Loaded config from: %s", path)
    return {str(key): _coerce(value) for key, value in variables.items()}


def parse_overrides(pairs: Optional[Iterable[str]]) -> Dict[str, VariableValue]:
    """Parse ``KEY=VALUE`` options; ``true``/``false`` become booleans.

    Raises:
        ConfigError: If an option has no ``=``.
    """
    overrides: Dict[str, VariableValue] = {}
    for item in pairs or []:
        if "=" not in item:
            raise ConfigError(f"Invalid --set value {item!r}, expected KEY=VALUE")
        key, value = item.split("=", 1)
        value = value.strip()
        lowered = value.lower()
        if lowered in ("true", "false"):
            overrides[key.strip()] = lowered == "true"
        else:
            overrides[key.strip()] = value
    return overrides


def build_environment_config(
    config_path: Optional[str] = None,
    overrides: Optional[Iterable[str]] = None,
    defaults: Optional[Dict[str, VariableValue]] = None,
) -> EnvironmentConfig:
    """Combine defaults, config file and ``--set`` options, in that order."""
    merged: Dict[str, Optional[VariableValue]] = dict(default_variables() if defaults is None else defaults)
    merged.update(load_config(config_path))
    merged.update(parse_overrides(overrides))

    variables: Dict[str, VariableValue] = {}
    package_variables: Dict[Tuple[str, str], VariableValue] = {}
    for key, value in merged.items():
        if value is None:
            continue
        if ":" in key:
            package, variable = key.split(":", 1)
            package_variables[(package, variable)] = value
        else:
            variables[key] = value
    logger.debug("Global variables: %s", ", ".join(f"{k}={v}" for k, v in sorted(variables.items())))
    return EnvironmentConfig(variables, package_variables)
