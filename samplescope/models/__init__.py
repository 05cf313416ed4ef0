"""
SampleScope samplescope.models package.

Core data structures shared by the segmentation, classification and
aggregation stages.

Classes
-------
MaterialDefinition
    Validated optical (HSV) signature of one catalog material.
MaterialCatalog
    Immutable metals / crystals / gems partition of MaterialDefinitions.
SampleMask
    Boolean foreground mask plus the threshold and background statistics
    used to build it.
PixelLabels
    Classifier output as index/score/HSV arrays; iterates as PixelLabel.
AnalysisResult
    Per-material coverage (MaterialResult) and DiagnosticsResult.

Notes
-----
All of these are frozen dataclasses. They are built once per analysis (or
once per session for the catalog) and handed to callers read-only.
"""

from .material import MaterialCatalog, MaterialDefinition, load_catalog
from .results import (
    BACKGROUND,
    UNCLASSIFIED,
    AnalysisResult,
    DiagnosticsResult,
    MaterialResult,
    PixelLabel,
    PixelLabels,
)
from .sample_mask import BackgroundStats, SampleMask

__all__ = [
    "MaterialDefinition",
    "MaterialCatalog",
    "load_catalog",
    "SampleMask",
    "BackgroundStats",
    "PixelLabel",
    "PixelLabels",
    "MaterialResult",
    "DiagnosticsResult",
    "AnalysisResult",
    "UNCLASSIFIED",
    "BACKGROUND",
]
