"""
Exception types for PhotoAdjust.

The rendering core never raises for bad adjustment values or missing
operators; these cover the edges around it (preset registration, image
decoding).
"""


class PhotoAdjustError(Exception):
    """Base exception for PhotoAdjust."""
    pass


class PresetRegistryError(PhotoAdjustError):
    """Raised when a preset registry is built from inconsistent definitions."""
    pass


class ImageDecodeError(PhotoAdjustError):
    """Raised when image bytes or files cannot be decoded."""
    pass


class RecipeError(PhotoAdjustError):
    """Raised when an edit recipe file is malformed."""
    pass
