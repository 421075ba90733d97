"""Signed release builds through the Gradle wrapper."""

from .service import ReleaseBuildDriver, extract_key_lines, locate_build_output

__all__ = ["ReleaseBuildDriver", "extract_key_lines", "locate_build_output"]
