"""trainlytics package."""

from importlib import metadata
from typing import Any

try:
    __version__ = metadata.version("trainlytics")
except metadata.PackageNotFoundError:  # pragma: no cover - fallback for local edits
    __version__ = "0.0.0"

__all__ = ["app", "__version__", "PerformanceAggregator"]


def __getattr__(name: str) -> Any:  # pragma: no cover - exercised indirectly
    if name == "app":
        from .cli import app

        return app
    if name == "PerformanceAggregator":
        from .services import PerformanceAggregator

        return PerformanceAggregator
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
