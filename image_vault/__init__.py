"""Validation and consistency layer in front of a remote image store."""

__version__ = "0.1.0"
