"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Read-through loading with single-flight de-duplication.
"""

from .coordinator import FetchCoordinator
from .source import DataSource, DataSourceOptions
from .types import CancelToken, FetchOutcome, FetchStatus, Fetcher, LoadOptions

__all__ = [
    "CancelToken",
    "DataSource",
    "DataSourceOptions",
    "FetchCoordinator",
    "FetchOutcome",
    "FetchStatus",
    "Fetcher",
    "LoadOptions",
]
