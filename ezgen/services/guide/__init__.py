"""Play Store submission guide."""

from .service import GuideWriter, render_guide

__all__ = ["GuideWriter", "render_guide"]
