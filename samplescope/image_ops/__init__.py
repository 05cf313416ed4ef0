"""
Array-level image operations.

Every function here is pure: it takes numpy arrays and configuration
records and returns new arrays or result records. Nothing touches disk.

Modules
-------
- colour
    Image validation, grayscale and HSV conversion.
- masking
    Background ring statistics, gradient field and the adaptive threshold.
- topology
    Connected-component clean-up of the raw mask.
- classification
    Gold / PGM heuristics and catalog range scoring per pixel.
- aggregation
    Per-material pixel counts, shares and scores.
- diagnostics
    Focus, clipping and coverage indicators.
- consistency
    Rule-based alerts and a suggested report status.
- visualisation
    Mask overlays and tab20 phase maps.
"""
