"""Resolve opam package requests into buildable descriptions."""

__version__ = "0.1.0"
