"""Stretching open active contours, tip linking and tracks for curvilinear network extraction."""

__version__ = "0.1.0"
__all__ = [
    "forces",
    "metrics",
    "parameters",
    "snake",
    "tip_set",
    "tips",
    "track",
    "util",
    "viewpoint",
]