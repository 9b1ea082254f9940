"""Try-on pipeline."""

from .tryon_pipeline import TryOnPipeline

__all__ = ["TryOnPipeline"]
