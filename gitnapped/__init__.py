"""Commit history analysis across local git repositories."""

__version__ = "0.1.0"
