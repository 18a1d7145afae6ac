from __future__ import annotations

from .indexer import IndexerClient

__all__ = ["IndexerClient"]
