"""npm web build stages."""

from .service import WebBuildService, server_started

__all__ = ["WebBuildService", "server_started"]
