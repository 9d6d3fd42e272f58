"""
Immutable image value used throughout PhotoAdjust.

Pixels are held as a read-only float32 array (H x W x 3, or x 4 with alpha)
in the 0-1 range. Decoding and encoding go through Pillow; resizing uses
OpenCV.
"""

import hashlib
import io
import logging
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Optional, Tuple, Union

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from ..exceptions import ImageDecodeError

logger = logging.getLogger(__name__)

# Greyscale modes Pillow can only convert to RGB by truncating to 8 bits
HIGH_DEPTH_INTEGER_MODES = ('I;16', 'I;16L', 'I;16B', 'I;16N', 'I')


@dataclass(frozen=True, eq=False)
class EditImage:
    """
    Immutable RGB(A) image.

    Equality is pixel equality. Operators always build a new EditImage;
    the underlying buffer is flagged read-only so nothing can edit a shared
    image in place.
    """
    pixels: np.ndarray

    def __post_init__(self):
        pixels = np.asarray(self.pixels)
        if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
            raise ValueError(f"Expected an H x W x 3/4 array, got shape {pixels.shape}")
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise ValueError("Image must have non-zero dimensions")

        pixels = np.array(pixels, dtype=np.float32, copy=True)
        np.clip(pixels, 0.0, 1.0, out=pixels)
        pixels.setflags(write=False)
        object.__setattr__(self, 'pixels', pixels)

    @classmethod
    def from_array(cls, array: np.ndarray) -> 'EditImage':
        """
        Create from a numpy array of any common dtype.

        uint8 and uint16 are rescaled to 0-1, floats are taken as 0-1, and a
        single channel image is promoted to RGB.
        """
        array = np.asarray(array)
        if array.dtype == np.uint8:
            array = array.astype(np.float32) / 255.0
        elif array.dtype == np.uint16:
            array = array.astype(np.float32) / 65535.0
        else:
            array = array.astype(np.float32)

        if array.ndim == 2:
            array = np.stack([array] * 3, axis=-1)
        elif array.ndim == 3 and array.shape[2] == 1:
            array = np.concatenate([array] * 3, axis=-1)

        return cls(array)

    @classmethod
    def from_pil(cls, image: Image.Image) -> 'EditImage':
        """
        Create from a Pillow image, keeping alpha when present.

        16-bit and 32-bit greyscale modes are read at full depth instead of
        going through Pillow's 8-bit RGB conversion.
        """
        if image.mode in HIGH_DEPTH_INTEGER_MODES:
            return cls.from_array(np.clip(np.asarray(image), 0, 65535).astype(np.uint16))
        if image.mode == 'F':
            return cls.from_array(np.asarray(image, dtype=np.float32))

        has_alpha = image.mode in ('RGBA', 'LA', 'PA') or (
            image.mode == 'P' and 'transparency' in image.info
        )
        converted = image.convert('RGBA' if has_alpha else 'RGB')
        return cls.from_array(np.asarray(converted))

    @classmethod
    def from_bytes(cls, data: bytes) -> 'EditImage':
        """
        Decode encoded image bytes (PNG, JPEG, TIFF, ...).

        Raises:
            ImageDecodeError: If Pillow cannot decode the data
        """
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.load()
                return cls.from_pil(image)
        except Image.DecompressionBombError as e:
            raise ImageDecodeError(f"Image data exceeds the pixel limit: {e}") from e
        except (UnidentifiedImageError, OSError) as e:
            raise ImageDecodeError(f"Could not decode image data: {e}") from e

    @classmethod
    def open(cls, path: Union[str, Path]) -> 'EditImage':
        """
        Load an image file from disk.

        Raises:
            ImageDecodeError: If the file is missing or not an image
        """
        path = Path(path)
        try:
            with Image.open(path) as image:
                image.load()
                result = cls.from_pil(image)
        except FileNotFoundError as e:
            raise ImageDecodeError(f"Image file not found: {path}") from e
        except Image.DecompressionBombError as e:
            raise ImageDecodeError(f"Image file {path} exceeds the pixel limit: {e}") from e
        except (UnidentifiedImageError, OSError) as e:
            raise ImageDecodeError(f"Could not decode image file {path}: {e}") from e

        logger.debug(f"Loaded {path} ({result.width}x{result.height}, {result.channels} channels)")
        return result

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) in pixels."""
        return (self.width, self.height)

    @property
    def channels(self) -> int:
        return self.pixels.shape[2]

    @property
    def has_alpha(self) -> bool:
        return self.channels == 4

    @cached_property
    def fingerprint(self) -> str:
        """Content hash of shape and pixel data."""
        digest = hashlib.sha1()
        digest.update(str(self.pixels.shape).encode())
        digest.update(self.pixels.tobytes())
        return digest.hexdigest()

    def to_array(self, dtype=np.float32) -> np.ndarray:
        """Return a writable copy of the pixels in the requested dtype."""
        if dtype == np.uint8:
            return np.round(self.pixels * 255.0).astype(np.uint8)
        if dtype == np.uint16:
            return np.round(self.pixels * 65535.0).astype(np.uint16)
        return self.pixels.astype(dtype, copy=True)

    def to_pil(self) -> Image.Image:
        return Image.fromarray(self.to_array(np.uint8))

    def to_bytes(self, format: str = "PNG", quality: int = 95) -> bytes:
        """Encode with Pillow; alpha is dropped for formats without it."""
        buffer = io.BytesIO()
        image = self.to_pil()
        if format.upper() in ('JPEG', 'JPG') and image.mode != 'RGB':
            image = image.convert('RGB')
        if format.upper() in ('JPEG', 'JPG'):
            image.save(buffer, format='JPEG', quality=quality)
        else:
            image.save(buffer, format=format)
        return buffer.getvalue()

    def save(self, path: Union[str, Path], format: Optional[str] = None,
             quality: int = 95) -> Path:
        """
        Write the image to disk.

        Args:
            path: Destination file
            format: Pillow format name; inferred from the suffix if omitted
            quality: JPEG quality

        Returns:
            The path written
        """
        path = Path(path)
        if format is None:
            format = Image.registered_extensions().get(path.suffix.lower(), 'PNG')
        path.write_bytes(self.to_bytes(format, quality=quality))
        logger.debug(f"Saved {self.width}x{self.height} image to {path}")
        return path

    def thumbnail(self, max_size: int) -> 'EditImage':
        """
        Scaled-down copy whose longest side is at most max_size.

        Images already within the bound are returned as-is.
        """
        if max_size <= 0:
            raise ValueError("max_size must be positive")

        longest = max(self.width, self.height)
        if longest <= max_size:
            return self

        scale = max_size / longest
        new_size = (max(1, round(self.width * scale)), max(1, round(self.height * scale)))
        resized = cv2.resize(self.to_array(), new_size, interpolation=cv2.INTER_AREA)
        return EditImage(resized)

    def with_pixels(self, rgb: np.ndarray) -> 'EditImage':
        """New image with replaced RGB data, carrying this image's alpha over."""
        if self.has_alpha and rgb.shape[2] == 3:
            rgb = np.concatenate([rgb, self.pixels[:, :, 3:]], axis=-1)
        return EditImage(rgb)

    def __eq__(self, other) -> bool:
        if not isinstance(other, EditImage):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and np.array_equal(self.pixels, other.pixels)

    def __hash__(self) -> int:
        return hash(self.fingerprint)

    def __repr__(self) -> str:
        return f"EditImage({self.width}x{self.height}, channels={self.channels})"
