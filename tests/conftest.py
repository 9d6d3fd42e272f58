"""
Shared fixtures for PhotoAdjust tests.
"""

import numpy as np
import pytest

from photoadjust.processing import EditImage, OperatorBackend


class RecordingBackend(OperatorBackend):
    """Backend that records every operator call and returns its input unchanged."""

    def __init__(self, available=None):
        super().__init__(operators={})
        self.calls = []
        self.available = available

    def has_operator(self, name):
        return self.available is None or name in self.available

    def apply(self, name, image, **params):
        self.calls.append((name, params))
        if not self.has_operator(name):
            return None
        return image

    @property
    def names_called(self):
        return [name for name, _ in self.calls]


def make_gradient(height=32, width=48):
    """Color gradient with distinct values in every channel."""
    y, x = np.mgrid[0:height, 0:width].astype(np.float32)
    red = x / (width - 1)
    green = y / (height - 1)
    blue = 1.0 - (x + y) / (width + height - 2)
    return np.stack([red, green, blue], axis=-1) * 0.8 + 0.1


@pytest.fixture
def gradient_image():
    return EditImage(make_gradient())


@pytest.fixture
def grey_image():
    return EditImage(np.full((16, 16, 3), 0.5, dtype=np.float32))


@pytest.fixture
def rgba_image():
    rgba = np.zeros((20, 30, 4), dtype=np.float32)
    rgba[:, :, :3] = make_gradient(20, 30)
    rgba[:, :, 3] = 0.25
    return EditImage(rgba)


@pytest.fixture
def recording_backend():
    return RecordingBackend()
