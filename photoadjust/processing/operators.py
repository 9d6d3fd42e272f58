"""
Image operator backend for PhotoAdjust.

Operators are plain functions taking a float32 RGB array (0-1 range) plus
named numeric parameters and returning a new array. The backend looks them
up by name and wraps them for EditImage values; a missing or failing
operator yields None so the caller can skip that stage.

Tone and color operators:
    exposure_adjust, color_controls, highlight_shadow, vibrance,
    temperature_tint, vignette
Detail operators:
    sharpen_luminance, unsharp_mask
Whole-image style transforms:
    mono, noir, fade, chrome, process, transfer, instant, sepia
"""

import logging
import math
from typing import Callable, Dict, List, Mapping, Optional, Tuple

import cv2
import numpy as np
from scipy import ndimage

from .image import EditImage

logger = logging.getLogger(__name__)

Operator = Callable[..., np.ndarray]

EXPOSURE_ADJUST = "exposure_adjust"
COLOR_CONTROLS = "color_controls"
HIGHLIGHT_SHADOW = "highlight_shadow"
VIBRANCE = "vibrance"
TEMPERATURE_TINT = "temperature_tint"
VIGNETTE = "vignette"
SHARPEN_LUMINANCE = "sharpen_luminance"
UNSHARP_MASK = "unsharp_mask"

# Rec. 709 luma weights
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)

SEPIA_MATRIX = np.array([
    [0.393, 0.769, 0.189],
    [0.349, 0.686, 0.168],
    [0.272, 0.534, 0.131],
], dtype=np.float32)

_DEFAULT_OPERATORS: Dict[str, Operator] = {}


def _operator(name: str):
    """Register a function as a default operator."""
    def decorator(func: Operator) -> Operator:
        _DEFAULT_OPERATORS[name] = func
        return func
    return decorator


def _luminance(rgb: np.ndarray) -> np.ndarray:
    return rgb @ LUMA_WEIGHTS


def _blend_saturation(rgb: np.ndarray, factor) -> np.ndarray:
    """Scale chroma around per-pixel luma; factor may be scalar or H x W."""
    gray = _luminance(rgb)[:, :, np.newaxis]
    if isinstance(factor, np.ndarray) and factor.ndim == 2:
        factor = factor[:, :, np.newaxis]
    return gray + (rgb - gray) * factor


def _smoothstep(edge0: float, edge1: float, x: np.ndarray) -> np.ndarray:
    t = np.clip((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def _s_curve(rgb: np.ndarray, strength: float) -> np.ndarray:
    """Tanh S-curve around mid-grey, normalised so 0 and 1 stay fixed."""
    scale = math.tanh(strength)
    return 0.5 + 0.5 * np.tanh((rgb - 0.5) * 2.0 * strength) / scale


def kelvin_to_rgb(kelvin: float) -> np.ndarray:
    """
    Approximate the RGB color of a black-body light source.

    Uses the Tanner Helland curve fit, valid roughly 1000K-40000K.

    Args:
        kelvin: Color temperature

    Returns:
        RGB triple in the 0-1 range (never exactly zero)
    """
    temp = min(max(kelvin, 1000.0), 40000.0) / 100.0

    if temp <= 66:
        red = 255.0
        green = 99.4708025861 * math.log(temp) - 161.1195681661
    else:
        red = 329.698727446 * math.pow(temp - 60, -0.1332047592)
        green = 288.1221695283 * math.pow(temp - 60, -0.0755148492)

    if temp >= 66:
        blue = 255.0
    elif temp <= 19:
        blue = 0.0
    else:
        blue = 138.5177312231 * math.log(temp - 10) - 305.0447927307

    rgb = np.clip(np.array([red, green, blue], dtype=np.float32), 1.0, 255.0)
    return rgb / 255.0


# ---------------------------------------------------------------------------
# Tone and color
# ---------------------------------------------------------------------------

@_operator(EXPOSURE_ADJUST)
def exposure_adjust(rgb: np.ndarray, ev: float = 0.5) -> np.ndarray:
    """Linear gain of 2 ** ev (exposure value in stops)."""
    return rgb * (2.0 ** ev)


@_operator(COLOR_CONTROLS)
def color_controls(rgb: np.ndarray, brightness: float = 0.0,
                   contrast: float = 1.0, saturation: float = 1.0) -> np.ndarray:
    """
    Saturation, brightness and contrast in one pass.

    Saturation blends against luma, brightness is an additive offset and
    contrast scales around mid-grey, applied in that order.
    """
    result = rgb
    if saturation != 1.0:
        result = _blend_saturation(result, saturation)
    if brightness != 0.0:
        result = result + brightness
    if contrast != 1.0:
        result = (result - 0.5) * contrast + 0.5
    return result


@_operator(HIGHLIGHT_SHADOW)
def highlight_shadow(rgb: np.ndarray, highlight_amount: float = 1.0,
                     shadow_amount: float = 1.0, radius: Optional[float] = None) -> np.ndarray:
    """
    Recover highlights and lift or deepen shadows.

    Both amounts are neutral at 1.0. A highlight amount below 1 darkens
    bright regions; a shadow amount above 1 opens up dark regions and below
    1 deepens them. Regions are found from blurred luminance so local
    contrast survives.

    Args:
        rgb: Float RGB image
        highlight_amount: Gain applied to highlight regions
        shadow_amount: 1 + shadow lift
        radius: Gaussian sigma for the region mask, defaults to 1% of the
            short side
    """
    luminance = _luminance(rgb)
    if radius is None:
        radius = max(1.0, min(rgb.shape[:2]) * 0.01)
    smoothed = ndimage.gaussian_filter(luminance, sigma=radius, mode='reflect')

    highlight_mask = _smoothstep(0.5, 1.0, smoothed)[:, :, np.newaxis]
    shadow_mask = (1.0 - _smoothstep(0.0, 0.5, smoothed))[:, :, np.newaxis]

    result = rgb * (1.0 + (highlight_amount - 1.0) * highlight_mask)

    lift = (shadow_amount - 1.0) * shadow_mask
    lifted = result + lift * (1.0 - result) * 0.5
    deepened = result * (1.0 + lift * 0.5)
    return np.where(lift >= 0, lifted, deepened)


@_operator(VIBRANCE)
def vibrance(rgb: np.ndarray, amount: float = 0.0) -> np.ndarray:
    """Saturation change weighted toward muted colors (amount -2..2)."""
    current = rgb.max(axis=2) - rgb.min(axis=2)
    factor = 1.0 + amount * (1.0 - np.clip(current, 0.0, 1.0))
    return _blend_saturation(rgb, np.maximum(factor, 0.0))


@_operator(TEMPERATURE_TINT)
def temperature_tint(rgb: np.ndarray,
                     neutral: Tuple[float, float] = (6500.0, 0.0),
                     target_neutral: Tuple[float, float] = (6500.0, 0.0)) -> np.ndarray:
    """
    Re-balance white from a neutral to a target (kelvin, tint) pair.

    A target temperature above the neutral warms the image. Positive tint
    moves toward magenta. Gains are normalised to preserve luma.
    """
    gains = kelvin_to_rgb(neutral[0]) / kelvin_to_rgb(target_neutral[0])

    tint_shift = float(target_neutral[1]) - float(neutral[1])
    if tint_shift:
        gains[1] *= max(0.0, 1.0 - tint_shift * 0.002)

    gains = gains / float(gains @ LUMA_WEIGHTS)
    return rgb * gains


@_operator(VIGNETTE)
def vignette(rgb: np.ndarray, intensity: float = 0.0, radius: float = 1.0) -> np.ndarray:
    """Darken toward the corners; radius widens the falloff."""
    h, w = rgb.shape[:2]
    y, x = np.ogrid[:h, :w]
    center_y, center_x = (h - 1) / 2.0, (w - 1) / 2.0

    # 0 at the centre, 1 at the corners
    dist = np.sqrt(((x - center_x) / max(center_x, 1.0)) ** 2 +
                   ((y - center_y) / max(center_y, 1.0)) ** 2) / math.sqrt(2.0)

    falloff = np.clip(dist * radius, 0.0, 1.0) ** 2
    gain = np.clip(1.0 - intensity * 0.5 * falloff, 0.0, 1.0).astype(np.float32)
    return rgb * gain[:, :, np.newaxis]


# ---------------------------------------------------------------------------
# Detail
# ---------------------------------------------------------------------------

@_operator(SHARPEN_LUMINANCE)
def sharpen_luminance(rgb: np.ndarray, sharpness: float = 0.4,
                      radius: float = 1.69) -> np.ndarray:
    """Add back luma high-pass detail; chroma is left alone."""
    luminance = _luminance(rgb)
    blurred = cv2.GaussianBlur(luminance, (0, 0), radius)
    detail = luminance - blurred
    return rgb + sharpness * detail[:, :, np.newaxis]


@_operator(UNSHARP_MASK)
def unsharp_mask(rgb: np.ndarray, radius: float = 2.5, intensity: float = 0.5) -> np.ndarray:
    """Classic unsharp mask across all channels."""
    blurred = cv2.GaussianBlur(rgb, (0, 0), radius)
    return rgb + intensity * (rgb - blurred)


# ---------------------------------------------------------------------------
# Style transforms
# ---------------------------------------------------------------------------

@_operator("mono")
def mono(rgb: np.ndarray) -> np.ndarray:
    """Neutral black and white."""
    gray = _luminance(rgb)
    return np.repeat(gray[:, :, np.newaxis], 3, axis=2)


@_operator("noir")
def noir(rgb: np.ndarray) -> np.ndarray:
    """High contrast black and white."""
    return _s_curve(mono(rgb), strength=1.6)


@_operator("fade")
def fade(rgb: np.ndarray) -> np.ndarray:
    """Muted color with lifted blacks."""
    result = _blend_saturation(rgb, 0.6)
    return result * 0.85 + 0.08


@_operator("chrome")
def chrome(rgb: np.ndarray) -> np.ndarray:
    """Punchy saturation and contrast."""
    result = _blend_saturation(rgb, 1.35)
    return _s_curve(result, strength=0.9)


@_operator("process")
def process(rgb: np.ndarray) -> np.ndarray:
    """Cool cast with lifted shadows."""
    result = rgb * np.array([0.92, 1.0, 1.08], dtype=np.float32)
    result = _blend_saturation(result, 0.85)
    return result * 0.92 + 0.05


@_operator("transfer")
def transfer(rgb: np.ndarray) -> np.ndarray:
    """Warm vintage print."""
    result = rgb * np.array([1.08, 1.0, 0.86], dtype=np.float32)
    result = _s_curve(result, strength=0.6)
    return result * 0.9 + 0.06


@_operator("instant")
def instant(rgb: np.ndarray) -> np.ndarray:
    """Instant-film look: warm, soft and slightly faded."""
    result = rgb * np.array([1.06, 1.02, 0.9], dtype=np.float32)
    result = _blend_saturation(result, 0.8)
    return result * 0.88 + 0.07


@_operator("sepia")
def sepia(rgb: np.ndarray, intensity: float = 1.0) -> np.ndarray:
    """Sepia tone blended with the source by intensity."""
    toned = cv2.transform(np.ascontiguousarray(rgb), SEPIA_MATRIX)
    return rgb + (toned - rgb) * intensity


class OperatorBackend:
    """
    Registry of named image operators.

    apply() never raises: unknown operators, exceptions and malformed
    results all come back as None.
    """

    def __init__(self, operators: Optional[Mapping[str, Operator]] = None):
        """
        Initialize backend.

        Args:
            operators: Name to operator mapping. Defaults to every built-in
                operator.
        """
        self._operators: Dict[str, Operator] = dict(
            _DEFAULT_OPERATORS if operators is None else operators
        )

    def register(self, name: str, operator: Operator) -> None:
        self._operators[name] = operator

    def unregister(self, name: str) -> None:
        self._operators.pop(name, None)

    def has_operator(self, name: str) -> bool:
        return name in self._operators

    def names(self) -> List[str]:
        return sorted(self._operators)

    def apply(self, name: str, image: EditImage, **params) -> Optional[EditImage]:
        """
        Run a named operator on an image.

        Args:
            name: Operator name
            image: Input image (left untouched)
            **params: Operator parameters

        Returns:
            New image, or None if the operator is unavailable or failed
        """
        operator = self._operators.get(name)
        if operator is None:
            logger.debug(f"Operator not available: {name}")
            return None

        rgb = np.ascontiguousarray(image.to_array()[:, :, :3])
        try:
            result = operator(rgb, **params)
        except Exception as e:
            logger.warning(f"Operator '{name}' failed: {e}")
            return None

        if result is None:
            return None

        result = np.asarray(result, dtype=np.float32)
        if result.shape != rgb.shape:
            logger.warning(f"Operator '{name}' returned shape {result.shape}, expected {rgb.shape}")
            return None

        return image.with_pixels(np.clip(result, 0.0, 1.0))


def default_backend() -> OperatorBackend:
    """Backend with every built-in operator registered."""
    return OperatorBackend()
