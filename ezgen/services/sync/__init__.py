"""Platform sync with manual fallback."""

from .service import SyncEngine, SyncMethod

__all__ = ["SyncEngine", "SyncMethod"]
