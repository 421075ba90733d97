"""Session progress reporting."""

from .service import ProgressReporter, SessionLogger

__all__ = ["ProgressReporter", "SessionLogger"]
