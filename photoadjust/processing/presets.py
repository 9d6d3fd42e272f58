"""
Filter presets for PhotoAdjust.

A preset bundles an optional whole-image style transform with a partial set
of adjustment overrides. The registry is static once built: list order is
display order and "Original" always comes first.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from ..exceptions import PresetRegistryError
from .adjustments import AdjustmentCatalog, AdjustmentKind

logger = logging.getLogger(__name__)

ORIGINAL_PRESET_NAME = "Original"


@dataclass(frozen=True)
class FilterPreset:
    """A named preset: optional style transform plus adjustment overrides."""
    name: str
    style_transform: Optional[str] = None
    overrides: Mapping[AdjustmentKind, float] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        if not self.name:
            raise PresetRegistryError("Preset name must not be empty")
        overrides = {}
        try:
            for key, value in dict(self.overrides).items():
                kind = AdjustmentKind.parse(key)
                overrides[kind] = AdjustmentCatalog.clamp(kind, value)
        except (TypeError, ValueError) as e:
            raise PresetRegistryError(f"Invalid overrides for preset '{self.name}': {e}") from e
        # Frozen so a shared preset can't be edited through a caller
        object.__setattr__(self, 'overrides', MappingProxyType(overrides))

    @property
    def is_identity(self) -> bool:
        """True when applying the preset leaves the source untouched."""
        return self.style_transform is None and not self.overrides

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'style_transform': self.style_transform,
            'overrides': {kind.value: value for kind, value in self.overrides.items()},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'FilterPreset':
        """Create from a config/JSON dictionary."""
        if not isinstance(data, Mapping):
            raise PresetRegistryError(f"Preset definition must be a mapping, got {data!r}")
        if 'name' not in data:
            raise PresetRegistryError(f"Preset definition is missing a name: {dict(data)}")
        return cls(
            name=str(data['name']),
            style_transform=data.get('style_transform') or None,
            overrides=data.get('overrides') or {},
        )


K = AdjustmentKind

BUILTIN_PRESETS: List[FilterPreset] = [
    FilterPreset(ORIGINAL_PRESET_NAME),
    FilterPreset("富士NC", overrides={
        K.EXPOSURE: 0.25,
        K.VIBRANCE: 1.05,
        K.HIGHLIGHTS: -0.45,
        K.SHADOWS: 0.30,
        K.CONTRAST: 1.10,
        K.SATURATION: 1.10,
        K.WARMTH: 10,
        K.SHARPNESS: 0.20,
        K.CLARITY: 0.10,
    }),
    FilterPreset("富士CC", overrides={
        K.EXPOSURE: -0.10,
        K.VIBRANCE: 1.10,
        K.HIGHLIGHTS: 0.20,
        K.SHADOWS: -0.17,
        K.BRIGHTNESS: 0.08,
        K.BLACK_POINT: 0.15,
        K.SATURATION: 0.88,
        K.WARMTH: -15,
        K.VIGNETTE: 0.12,
    }),
    FilterPreset("Mono", style_transform="mono"),
    FilterPreset("Noir", style_transform="noir"),
    FilterPreset("Fade", style_transform="fade"),
    FilterPreset("Chrome", style_transform="chrome"),
    FilterPreset("Process", style_transform="process"),
    FilterPreset("Transfer", style_transform="transfer"),
    FilterPreset("Instant", style_transform="instant"),
    FilterPreset("Sepia", style_transform="sepia"),
]

del K


class PresetRegistry:
    """
    Ordered, read-only collection of filter presets.

    Features:
    - Stable display order (insertion order)
    - Unique names, checked at construction
    - "Original" identity preset pinned first
    """

    def __init__(self, presets: Optional[Iterable[FilterPreset]] = None):
        """
        Build a registry.

        Args:
            presets: Presets in display order. Defaults to the built-ins.
                An "Original" identity preset is prepended when missing.

        Raises:
            PresetRegistryError: On duplicate names or a misplaced "Original"
        """
        presets = list(BUILTIN_PRESETS if presets is None else presets)

        if not presets or presets[0].name != ORIGINAL_PRESET_NAME:
            if any(p.name == ORIGINAL_PRESET_NAME for p in presets):
                raise PresetRegistryError(f"'{ORIGINAL_PRESET_NAME}' preset must be listed first")
            presets.insert(0, FilterPreset(ORIGINAL_PRESET_NAME))

        if not presets[0].is_identity:
            raise PresetRegistryError(
                f"'{ORIGINAL_PRESET_NAME}' preset must have no style transform or overrides"
            )

        seen = set()
        for preset in presets:
            if preset.name in seen:
                raise PresetRegistryError(f"Duplicate preset name: {preset.name}")
            seen.add(preset.name)

        self._presets = tuple(presets)
        self._by_name = {preset.name: preset for preset in self._presets}
        logger.debug(f"Initialized preset registry with {len(self._presets)} presets")

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]] = None) -> 'PresetRegistry':
        """
        Build the built-in registry extended with presets.custom from config.

        Args:
            config: Configuration dictionary (see photoadjust.config)

        Returns:
            PresetRegistry with user presets after the built-ins
        """
        from ..config import get_config_value

        custom = get_config_value(config or {}, 'presets.custom', []) or []
        presets = list(BUILTIN_PRESETS)
        for definition in custom:
            presets.append(FilterPreset.from_dict(definition))

        if custom:
            logger.info(f"Loaded {len(custom)} custom presets from configuration")
        return cls(presets)

    def list(self) -> List[FilterPreset]:
        """Return presets in display order."""
        return list(self._presets)

    def find(self, name: str) -> Optional[FilterPreset]:
        """Return the preset with this name, or None if there is none."""
        return self._by_name.get(name)

    def names(self) -> List[str]:
        return [preset.name for preset in self._presets]

    @property
    def original(self) -> FilterPreset:
        return self._presets[0]

    def __iter__(self) -> Iterator[FilterPreset]:
        return iter(self._presets)

    def __len__(self) -> int:
        return len(self._presets)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name


_default_registry: Optional[PresetRegistry] = None


def get_default_registry() -> PresetRegistry:
    """Return the shared registry of built-in presets."""
    global _default_registry
    if _default_registry is None:
        _default_registry = PresetRegistry()
    return _default_registry
