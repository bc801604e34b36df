"""Candidate enumeration and dependency resolution."""

from .candidates import Candidate, CandidateEnumerator, Unavailable, UnsupportedArchiveReason, check_usable
from .service import solve_specs

__all__ = [
    "Candidate",
    "CandidateEnumerator",
    "Unavailable",
    "UnsupportedArchiveReason",
    "check_usable",
    "solve_specs",
]
