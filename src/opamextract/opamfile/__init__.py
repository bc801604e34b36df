"""Reader for opam package descriptors."""

from .metadata import PackageMetadata, UrlSpec, load_opam, load_url, metadata_of_file
from .parser import parse

__all__ = [
    "PackageMetadata",
    "UrlSpec",
    "load_opam",
    "load_url",
    "metadata_of_file",
    "parse",
]
