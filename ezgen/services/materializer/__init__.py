"""Template materialization."""

from .patches import FileRole, PatchContext, Substitution, build_patch_table
from .service import TemplateMaterializer

__all__ = [
    "FileRole",
    "PatchContext",
    "Substitution",
    "TemplateMaterializer",
    "build_patch_table",
]
