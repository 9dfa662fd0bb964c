"""Try-on orchestration."""

from .tryon_pipeline import StageListener, TryOnPipeline

__all__ = ["StageListener", "TryOnPipeline"]
