"""Pipeline orchestration for EZ-GEN."""

from .pipeline import GenerationPipeline, PipelineResult

__all__ = ["GenerationPipeline", "PipelineResult"]
