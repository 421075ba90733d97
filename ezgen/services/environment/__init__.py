"""Build environment pre-flight checks."""

from .service import BuildEnvironmentChecker, EnvironmentReport, ToolVersion

__all__ = ["BuildEnvironmentChecker", "EnvironmentReport", "ToolVersion"]
