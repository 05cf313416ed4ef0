"""
Entry points that compose the image operations.

- pipeline
    analyze() / analyze_scene() and the CancellationToken.
- continuous
    LatestFrameAnalyser, the latest-wins scheduler for live frames.
- tools
    Image loading, folder discovery and result writing for batch use.
"""
from .continuous import LatestFrameAnalyser
from .pipeline import CancellationToken, SceneAnalysis, analyze, analyze_scene

__all__ = [
    "analyze",
    "analyze_scene",
    "SceneAnalysis",
    "CancellationToken",
    "LatestFrameAnalyser",
]
