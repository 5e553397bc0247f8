"""
Image model helpers: validation, luminance conversion and loading.

Images are OpenCV-style ``uint8`` numpy arrays, either ``(H, W)`` grayscale,
``(H, W, 3)`` BGR or ``(H, W, 4)`` BGRA.
"""

import logging
import os
from typing import Any

# pylint: disable=no-member
import cv2
import numpy as np

__all__ = [
    "InvalidImageError",
    "ImageToolkit",
    "validate_image",
    "to_gray",
    "decode_image",
    "load_image",
]

logger = logging.getLogger("qr-recovery.image-toolkit")

_SUPPORTED_CHANNELS = (3, 4)


class InvalidImageError(ValueError):
    """Raised when a caller passes something that is not a usable image."""


class ImageToolkit:
    @staticmethod
    def validate_image(image: Any) -> np.ndarray:
        """
        Checks that ``image`` is a non-empty 8-bit image and returns it.
        """
        if image is None:
            raise InvalidImageError("Image is required")
        if not isinstance(image, np.ndarray):
            raise InvalidImageError(
                f"Image must be a numpy array, got {type(image).__name__}"
            )
        if image.dtype != np.uint8:
            raise InvalidImageError(f"Image must be uint8, got {image.dtype}")
        if image.ndim == 3 and image.shape[2] not in _SUPPORTED_CHANNELS:
            raise InvalidImageError(
                f"Unsupported channel count: {image.shape[2]}"
            )
        if image.ndim not in (2, 3):
            raise InvalidImageError(f"Unsupported image shape: {image.shape}")
        height, width = image.shape[:2]
        if width <= 0 or height <= 0:
            raise InvalidImageError(f"Image has zero size: {width}x{height}")
        return image

    @staticmethod
    def to_gray(image: np.ndarray) -> np.ndarray:
        """
        Returns the luminance channel. Grayscale input is returned as is.
        """
        if image.ndim == 2:
            return image
        if image.shape[2] == 4:
            return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

    @staticmethod
    def decode_image(image_bytes: bytes) -> np.ndarray:
        """
        Decodes raw encoded image bytes (PNG, JPEG, ...) into a BGR array.
        """
        if not image_bytes:
            raise InvalidImageError("Empty image content")
        nparr = np.frombuffer(image_bytes, np.uint8)
        img = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
        if img is None:
            logger.error("Failed to decode image bytes.")
            raise InvalidImageError("Invalid image bytes")
        return img

    @staticmethod
    def load_image(image_path: str) -> np.ndarray:
        """Reads an image file from disk."""
        if not os.path.exists(image_path):
            raise FileNotFoundError(image_path)
        img = cv2.imread(image_path, cv2.IMREAD_COLOR)
        if img is None:
            raise InvalidImageError(f"Could not load image from {image_path}")
        return img


def validate_image(image: Any) -> np.ndarray:
    """Wrapper for ImageToolkit.validate_image"""
    return ImageToolkit.validate_image(image)


def to_gray(image: np.ndarray) -> np.ndarray:
    """Wrapper for ImageToolkit.to_gray"""
    return ImageToolkit.to_gray(image)


def decode_image(image_bytes: bytes) -> np.ndarray:
    """Wrapper for ImageToolkit.decode_image"""
    return ImageToolkit.decode_image(image_bytes)


def load_image(image_path: str) -> np.ndarray:
    """Wrapper for ImageToolkit.load_image"""
    return ImageToolkit.load_image(image_path)
