"""
Adjustment pipeline for PhotoAdjust.

Renders a preset and an AdjustmentState onto a source image through a fixed
sequence of operator stages:

1. Preset style transform (on the untouched source)
2. Exposure
3. Brightness / contrast / saturation (single color-controls call)
4. Black point (second, smaller contrast push)
5. Highlights / shadows
6. Vibrance
7. Warmth
8. Vignette
9. Sharpness
10. Clarity

Stages at their neutral value are skipped. A stage whose operator is
missing or fails passes its input through, so render() always returns an
image.
"""

import logging
import threading
from collections import OrderedDict
from typing import Mapping, Optional, Tuple, Union

from .adjustments import AdjustmentKind, AdjustmentState
from .image import EditImage
from .operators import (
    COLOR_CONTROLS,
    EXPOSURE_ADJUST,
    HIGHLIGHT_SHADOW,
    SHARPEN_LUMINANCE,
    TEMPERATURE_TINT,
    UNSHARP_MASK,
    VIBRANCE,
    VIGNETTE,
    OperatorBackend,
    default_backend,
)
from .presets import FilterPreset, PresetRegistry, get_default_registry

logger = logging.getLogger(__name__)

NEUTRAL_TEMPERATURE = 6500.0
KELVIN_PER_WARMTH_UNIT = 100.0
BLACK_POINT_CONTRAST_SCALE = 0.1
VIBRANCE_AMOUNT_SCALE = 2.0
VIGNETTE_INTENSITY_SCALE = 2.0
VIGNETTE_RADIUS_SCALE = 1.5
SHARPNESS_SCALE = 0.7
CLARITY_RADIUS = 3.0
CLARITY_INTENSITY_SCALE = 0.7

PresetLike = Union[FilterPreset, str, None]
StateLike = Union[AdjustmentState, Mapping, None]


class AdjustmentPipeline:
    """
    Pure renderer from (source, preset, state) to a new image.

    Every render starts from the pristine source; nothing is carried over
    between calls except the optional memo cache, which only short-circuits
    identical requests.
    """

    def __init__(self, backend: Optional[OperatorBackend] = None,
                 registry: Optional[PresetRegistry] = None,
                 cache_size: int = 0):
        """
        Initialize pipeline.

        Args:
            backend: Operator backend, defaults to the built-in operators
            registry: Registry used to resolve preset names
            cache_size: Number of rendered results to memoize (0 disables)
        """
        self.backend = backend or default_backend()
        self.registry = registry or get_default_registry()
        self.cache_size = max(0, int(cache_size))

        self._cache: "OrderedDict[Tuple, EditImage]" = OrderedDict()
        self._cache_lock = threading.Lock()

        logger.debug(f"Initialized adjustment pipeline: cache_size={self.cache_size}")

    @classmethod
    def from_config(cls, config: Optional[Mapping] = None,
                    backend: Optional[OperatorBackend] = None) -> 'AdjustmentPipeline':
        """Build a pipeline from the pipeline/presets config sections."""
        from ..config import get_config_value

        config = config or {}
        return cls(
            backend=backend,
            registry=PresetRegistry.from_config(config),
            cache_size=get_config_value(config, 'pipeline.cache_size', 0) or 0,
        )

    def render(self, source: EditImage, preset: PresetLike = None,
               state: StateLike = None) -> EditImage:
        """
        Render a preset and adjustments onto the source image.

        Args:
            source: Pristine source image (never modified)
            preset: FilterPreset, preset name, or None
            state: Adjustment values; None means all defaults

        Returns:
            Rendered image (the source itself when every stage is skipped)
        """
        preset = self._resolve_preset(preset)
        state = AdjustmentState.coerce(state)
        style = preset.style_transform if preset else None

        cache_key = None
        if self.cache_size:
            cache_key = (source.fingerprint, style, state.as_tuple())
            with self._cache_lock:
                cached = self._cache.get(cache_key)
                if cached is not None:
                    self._cache.move_to_end(cache_key)
                    logger.debug("Render cache hit")
                    return cached

        result = source
        if style:
            result = self._apply_stage(result, "style", style)

        result = self._exposure_stage(result, state)
        result = self._color_controls_stage(result, state)
        result = self._black_point_stage(result, state)
        result = self._highlight_shadow_stage(result, state)
        result = self._vibrance_stage(result, state)
        result = self._warmth_stage(result, state)
        result = self._vignette_stage(result, state)
        result = self._sharpness_stage(result, state)
        result = self._clarity_stage(result, state)

        if cache_key is not None:
            with self._cache_lock:
                self._cache[cache_key] = result
                self._cache.move_to_end(cache_key)
                while len(self._cache) > self.cache_size:
                    self._cache.popitem(last=False)

        return result

    def clear_cache(self) -> None:
        """Drop memoized renders."""
        with self._cache_lock:
            self._cache.clear()
        logger.debug("Cleared render cache")

    def _resolve_preset(self, preset: PresetLike) -> Optional[FilterPreset]:
        if preset is None or isinstance(preset, FilterPreset):
            return preset

        found = self.registry.find(preset)
        if found is None:
            logger.warning(f"Unknown preset '{preset}', rendering without a preset")
        return found

    def _apply_stage(self, image: EditImage, stage: str, operator: str, **params) -> EditImage:
        """Run one operator, passing the input through if it yields nothing."""
        try:
            output = self.backend.apply(operator, image, **params)
        except Exception as e:
            logger.warning(f"Stage '{stage}' ({operator}) failed: {e}")
            return image

        if output is None:
            logger.debug(f"Stage '{stage}' skipped: {operator} produced no output")
            return image
        return output

    # Stages

    def _exposure_stage(self, image: EditImage, state: AdjustmentState) -> EditImage:
        exposure = state[AdjustmentKind.EXPOSURE]
        if exposure == 0:
            return image
        return self._apply_stage(image, "exposure", EXPOSURE_ADJUST, ev=exposure)

    def _color_controls_stage(self, image: EditImage, state: AdjustmentState) -> EditImage:
        params = {}
        brightness = state[AdjustmentKind.BRIGHTNESS]
        contrast = state[AdjustmentKind.CONTRAST]
        saturation = state[AdjustmentKind.SATURATION]

        if brightness != 0:
            params['brightness'] = brightness
        if contrast != 1:
            params['contrast'] = contrast
        if saturation != 1:
            params['saturation'] = saturation

        if not params:
            return image
        return self._apply_stage(image, "color_controls", COLOR_CONTROLS, **params)

    def _black_point_stage(self, image: EditImage, state: AdjustmentState) -> EditImage:
        black_point = state[AdjustmentKind.BLACK_POINT]
        if black_point == 0:
            return image
        return self._apply_stage(
            image, "black_point", COLOR_CONTROLS,
            contrast=1.0 + black_point * BLACK_POINT_CONTRAST_SCALE,
        )

    def _highlight_shadow_stage(self, image: EditImage, state: AdjustmentState) -> EditImage:
        highlights = state[AdjustmentKind.HIGHLIGHTS]
        shadows = state[AdjustmentKind.SHADOWS]
        if highlights == 0 and shadows == 0:
            return image
        return self._apply_stage(
            image, "highlight_shadow", HIGHLIGHT_SHADOW,
            highlight_amount=1.0 + highlights,
            shadow_amount=1.0 + shadows,
        )

    def _vibrance_stage(self, image: EditImage, state: AdjustmentState) -> EditImage:
        vibrance = state[AdjustmentKind.VIBRANCE]
        if vibrance == 1:
            return image
        return self._apply_stage(
            image, "vibrance", VIBRANCE,
            amount=(vibrance - 1.0) * VIBRANCE_AMOUNT_SCALE,
        )

    def _warmth_stage(self, image: EditImage, state: AdjustmentState) -> EditImage:
        warmth = state[AdjustmentKind.WARMTH]
        if warmth == 0:
            return image
        return self._apply_stage(
            image, "warmth", TEMPERATURE_TINT,
            neutral=(NEUTRAL_TEMPERATURE, 0.0),
            target_neutral=(NEUTRAL_TEMPERATURE + warmth * KELVIN_PER_WARMTH_UNIT, 0.0),
        )

    def _vignette_stage(self, image: EditImage, state: AdjustmentState) -> EditImage:
        amount = state[AdjustmentKind.VIGNETTE]
        if amount <= 0:
            return image
        return self._apply_stage(
            image, "vignette", VIGNETTE,
            intensity=amount * VIGNETTE_INTENSITY_SCALE,
            radius=amount * VIGNETTE_RADIUS_SCALE,
        )

    def _sharpness_stage(self, image: EditImage, state: AdjustmentState) -> EditImage:
        sharpness = state[AdjustmentKind.SHARPNESS]
        if sharpness <= 0:
            return image
        return self._apply_stage(
            image, "sharpness", SHARPEN_LUMINANCE,
            sharpness=sharpness * SHARPNESS_SCALE,
        )

    def _clarity_stage(self, image: EditImage, state: AdjustmentState) -> EditImage:
        clarity = state[AdjustmentKind.CLARITY]
        if clarity <= 0:
            return image
        return self._apply_stage(
            image, "clarity", UNSHARP_MASK,
            radius=CLARITY_RADIUS,
            intensity=clarity * CLARITY_INTENSITY_SCALE,
        )


_default_pipeline: Optional[AdjustmentPipeline] = None


def render(source: EditImage, preset: PresetLike = None, state: StateLike = None) -> EditImage:
    """Render with a shared default pipeline."""
    global _default_pipeline
    if _default_pipeline is None:
        _default_pipeline = AdjustmentPipeline()
    return _default_pipeline.render(source, preset, state)
