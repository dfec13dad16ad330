"""Trusted HTTP backend for contract analysis."""

from .main import create_app

__all__ = ["create_app"]
