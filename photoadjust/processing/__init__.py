"""
Image adjustment engine: adjustment model, presets, operators, pipeline,
history and the editing session.
"""

from .adjustments import AdjustmentCatalog, AdjustmentKind, AdjustmentSpec, AdjustmentState
from .history import EditHistory, HistoryEntry
from .image import EditImage
from .operators import OperatorBackend, default_backend
from .pipeline import AdjustmentPipeline, render
from .recipe import EditRecipe
from .presets import BUILTIN_PRESETS, FilterPreset, PresetRegistry, get_default_registry
from .session import EditSession

__all__ = [
    'AdjustmentCatalog',
    'AdjustmentKind',
    'AdjustmentSpec',
    'AdjustmentState',
    'EditHistory',
    'HistoryEntry',
    'EditImage',
    'OperatorBackend',
    'default_backend',
    'AdjustmentPipeline',
    'render',
    'EditRecipe',
    'BUILTIN_PRESETS',
    'FilterPreset',
    'PresetRegistry',
    'get_default_registry',
    'EditSession',
]
