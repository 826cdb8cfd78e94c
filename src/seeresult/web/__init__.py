"""HTTP surface of the relay."""

from __future__ import annotations

from .main import create_app, get_extractor, get_upstream

__all__ = ["create_app", "get_extractor", "get_upstream"]
