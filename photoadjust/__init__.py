"""
PhotoAdjust: non-destructive image adjustment engine

Renders named filter presets and continuous adjustments onto a pristine
source image and keeps a linear undo/redo history of the results.
"""

__version__ = "0.1.0"

# Core imports for easy access
from .config import load_config
from .processing import (
    AdjustmentKind,
    AdjustmentState,
    AdjustmentPipeline,
    EditHistory,
    EditImage,
    EditSession,
    FilterPreset,
    PresetRegistry,
)

__all__ = [
    "load_config",
    "AdjustmentKind",
    "AdjustmentState",
    "AdjustmentPipeline",
    "EditHistory",
    "EditImage",
    "EditSession",
    "FilterPreset",
    "PresetRegistry",
]
