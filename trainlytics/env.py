from __future__ import annotations

import os

PRIMARY_PREFIX = "TRAINLYTICS_"


def get_env(name: str, default: str | None = None) -> str | None:
    """
    Resolve configuration environment variables.

    Only the ``TRAINLYTICS_`` prefix is consulted so that the dashboard and
    the command line tooling share a single namespace.
    """
    value = os.getenv(f"{PRIMARY_PREFIX}{name}")
    if value is not None:
        return value
    return default
