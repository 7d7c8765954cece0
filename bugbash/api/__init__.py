"""Falcon ASGI surface: health probes and admin endpoints."""

from __future__ import annotations

from bugbash.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
