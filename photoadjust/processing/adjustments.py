"""
Adjustment model for PhotoAdjust.

Defines the closed set of adjustment kinds, the static catalog of their
defaults and ranges, and the clamped AdjustmentState value object consumed
by the rendering pipeline.
"""

import math
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)


class AdjustmentKind(Enum):
    """Available adjustment kinds, in display order."""
    EXPOSURE = "exposure"
    BRIGHTNESS = "brightness"
    CONTRAST = "contrast"
    HIGHLIGHTS = "highlights"
    SHADOWS = "shadows"
    SATURATION = "saturation"
    VIBRANCE = "vibrance"
    WARMTH = "warmth"
    SHARPNESS = "sharpness"
    CLARITY = "clarity"
    BLACK_POINT = "black_point"
    VIGNETTE = "vignette"

    @classmethod
    def parse(cls, text: Union[str, 'AdjustmentKind']) -> 'AdjustmentKind':
        """
        Resolve a kind from its value or member name.

        Accepts "black_point", "BLACK_POINT", "black-point" or "blackpoint".

        Raises:
            ValueError: If the text names no adjustment kind
        """
        if isinstance(text, cls):
            return text

        key = str(text).strip().lower().replace('-', '_').replace(' ', '_')
        for kind in cls:
            if key == kind.value or key == kind.value.replace('_', ''):
                return kind

        raise ValueError(f"Unknown adjustment kind: {text!r}")


@dataclass(frozen=True)
class AdjustmentSpec:
    """Immutable metadata for one adjustment kind."""
    default: float
    minimum: float
    maximum: float
    label: str
    display_format: str = "%.2f"

    @property
    def range(self) -> Tuple[float, float]:
        return (self.minimum, self.maximum)


_CATALOG: Dict[AdjustmentKind, AdjustmentSpec] = {
    AdjustmentKind.EXPOSURE: AdjustmentSpec(0.0, -2.0, 2.0, "Exposure"),
    AdjustmentKind.BRIGHTNESS: AdjustmentSpec(0.0, -1.0, 1.0, "Brightness"),
    AdjustmentKind.CONTRAST: AdjustmentSpec(1.0, 0.0, 2.0, "Contrast"),
    AdjustmentKind.HIGHLIGHTS: AdjustmentSpec(0.0, -1.0, 1.0, "Highlights"),
    AdjustmentKind.SHADOWS: AdjustmentSpec(0.0, -1.0, 1.0, "Shadows"),
    AdjustmentKind.SATURATION: AdjustmentSpec(1.0, 0.0, 2.0, "Saturation"),
    AdjustmentKind.VIBRANCE: AdjustmentSpec(1.0, 0.0, 2.0, "Vibrance"),
    AdjustmentKind.WARMTH: AdjustmentSpec(0.0, -50.0, 50.0, "Warmth", "%.0f"),
    AdjustmentKind.SHARPNESS: AdjustmentSpec(0.0, 0.0, 1.0, "Sharpness"),
    AdjustmentKind.CLARITY: AdjustmentSpec(0.0, 0.0, 1.0, "Clarity"),
    AdjustmentKind.BLACK_POINT: AdjustmentSpec(0.0, -1.0, 1.0, "Black Point"),
    AdjustmentKind.VIGNETTE: AdjustmentSpec(0.0, 0.0, 1.0, "Vignette"),
}


class AdjustmentCatalog:
    """
    Process-wide lookup of adjustment defaults and ranges.

    All methods are pure; the kind enumeration is closed so every lookup
    succeeds.
    """

    @staticmethod
    def kinds() -> List[AdjustmentKind]:
        """Return all kinds in display order."""
        return list(AdjustmentKind)

    @staticmethod
    def spec_of(kind: AdjustmentKind) -> AdjustmentSpec:
        return _CATALOG[kind]

    @staticmethod
    def default_of(kind: AdjustmentKind) -> float:
        return _CATALOG[kind].default

    @staticmethod
    def range_of(kind: AdjustmentKind) -> Tuple[float, float]:
        return _CATALOG[kind].range

    @staticmethod
    def clamp(kind: AdjustmentKind, value: float) -> float:
        """
        Clamp a value into the inclusive range of a kind.

        NaN has no nearest bound, so it maps to the kind's default.

        Args:
            kind: Adjustment kind
            value: Requested value

        Returns:
            Value limited to range_of(kind)
        """
        spec = _CATALOG[kind]
        value = float(value)
        if math.isnan(value):
            return spec.default
        if value < spec.minimum:
            return spec.minimum
        if value > spec.maximum:
            return spec.maximum
        return value

    @staticmethod
    def format_value(kind: AdjustmentKind, value: float) -> str:
        """Format a value the way the adjustment is displayed."""
        return _CATALOG[kind].display_format % value


class AdjustmentState:
    """
    Total mapping from every AdjustmentKind to its current value.

    Values are clamped on write and never rejected. A fresh state holds
    each kind's catalog default. Instances are plain mutable values owned
    by one editing session; they are not shared across threads.
    """

    def __init__(self, values: Optional[Mapping[AdjustmentKind, float]] = None):
        self._values: Dict[AdjustmentKind, float] = {
            kind: spec.default for kind, spec in _CATALOG.items()
        }
        if values:
            for kind, value in values.items():
                self.set(kind, value)

    @classmethod
    def defaults(cls) -> 'AdjustmentState':
        """Create a state with every kind at its default."""
        return cls()

    @classmethod
    def merge_overrides(cls, base: 'AdjustmentState',
                        overrides: Mapping[AdjustmentKind, float]) -> 'AdjustmentState':
        """
        Create a new state equal to base with override keys clamped-set.

        Args:
            base: State to start from (left untouched)
            overrides: Partial mapping of kind to value

        Returns:
            New AdjustmentState
        """
        merged = base.copy()
        for kind, value in overrides.items():
            merged.set(kind, value)
        return merged

    @classmethod
    def from_preset(cls, preset) -> 'AdjustmentState':
        """Defaults with the preset's overrides applied on top."""
        if preset is None:
            return cls.defaults()
        return cls.merge_overrides(cls.defaults(), preset.overrides)

    @classmethod
    def coerce(cls, value: Union['AdjustmentState', Mapping, None]) -> 'AdjustmentState':
        """Accept a state, a kind/string keyed mapping, or None (defaults)."""
        if value is None:
            return cls.defaults()
        if isinstance(value, cls):
            return value
        return cls.from_dict(value)

    @classmethod
    def from_dict(cls, data: Mapping) -> 'AdjustmentState':
        """Build a state from a mapping keyed by kind or kind name."""
        state = cls()
        for key, value in data.items():
            state.set(AdjustmentKind.parse(key), value)
        return state

    def to_dict(self) -> Dict[str, float]:
        """Serialize to a JSON-friendly dict keyed by kind value."""
        return {kind.value: value for kind, value in self._values.items()}

    def set(self, kind: AdjustmentKind, value: float) -> float:
        """
        Store a clamped value for a kind.

        Returns:
            The value actually stored
        """
        kind = AdjustmentKind.parse(kind)
        clamped = AdjustmentCatalog.clamp(kind, value)
        if clamped != value and not (isinstance(value, float) and math.isnan(value)):
            logger.debug(f"Clamped {kind.value} from {value} to {clamped}")
        self._values[kind] = clamped
        return clamped

    def get(self, kind: AdjustmentKind) -> float:
        return self._values[AdjustmentKind.parse(kind)]

    def __getitem__(self, kind: AdjustmentKind) -> float:
        return self.get(kind)

    def __setitem__(self, kind: AdjustmentKind, value: float) -> None:
        self.set(kind, value)

    def __iter__(self) -> Iterator[AdjustmentKind]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def items(self):
        return self._values.items()

    def copy(self) -> 'AdjustmentState':
        clone = AdjustmentState()
        clone._values = dict(self._values)
        return clone

    def is_default(self, kind: AdjustmentKind) -> bool:
        return self._values[kind] == _CATALOG[kind].default

    def changed(self) -> Dict[AdjustmentKind, float]:
        """Return the kinds whose value differs from the default."""
        return {kind: value for kind, value in self._values.items()
                if not self.is_default(kind)}

    def as_tuple(self) -> Tuple[float, ...]:
        """Hashable snapshot of all values in catalog order."""
        return tuple(self._values[kind] for kind in AdjustmentKind)

    def __eq__(self, other) -> bool:
        if not isinstance(other, AdjustmentState):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        changed = ", ".join(f"{k.value}={v:g}" for k, v in self.changed().items())
        return f"AdjustmentState({changed})"
