"""
Image transform helpers: rotation, scaling, shear, contrast, denoising,
sharpening and binarization.
Provides the ImageTransformer class and functional wrappers.

Every transform returns a new image and never writes into its input.
"""

import math
from enum import Enum

# pylint: disable=no-member
import cv2
import numpy as np

from .image_toolkit import to_gray
from .models import BinarizerKind

__all__ = [
    "TransformError",
    "ContrastMethod",
    "ImageTransformer",
    "rotate",
    "scale",
    "shear",
    "enhance_contrast",
    "denoise_median",
    "sharpen",
    "binarize",
]

SHARPEN_KERNEL = np.array([[0, -1, 0], [-1, 5, -1], [0, -1, 0]], dtype=np.float32)

# Absorbs float error in cos/sin so right-angle rotations keep exact sizes.
_SIZE_EPSILON = 1e-6


class TransformError(ValueError):
    """Raised when a transform cannot produce a valid image."""


class ContrastMethod(str, Enum):
    LINEAR = "linear"
    HISTOGRAM_EQUALIZATION = "histogram-equalization"
    ADAPTIVE = "adaptive"
    GAMMA_CORRECTION = "gamma-correction"


def _border_value(fill: int) -> tuple:
    return (fill, fill, fill, fill)


def _color_view(image: np.ndarray) -> np.ndarray:
    """Colour channels only; alpha is never remapped."""
    if image.ndim == 3 and image.shape[2] == 4:
        return image[:, :, :3]
    return image


class ImageTransformer:
    """
    Stateless image transforms used by the recovery strategies.
    """

    @staticmethod
    def rotate(image: np.ndarray, angle: float, fill: int = 255) -> np.ndarray:
        """
        Rotates counter-clockwise about the image centre onto a canvas that
        holds the whole rotated rectangle. Uncovered background is ``fill``.
        """
        height, width = image.shape[:2]
        theta = math.radians(angle)
        sin, cos = abs(math.sin(theta)), abs(math.cos(theta))
        new_width = int(width * cos + height * sin + _SIZE_EPSILON)
        new_height = int(width * sin + height * cos + _SIZE_EPSILON)
        if new_width <= 0 or new_height <= 0:
            raise TransformError(f"Rotation by {angle} gives an empty canvas")

        matrix = cv2.getRotationMatrix2D(
            ((width - 1) / 2.0, (height - 1) / 2.0), angle, 1.0
        )
        matrix[0, 2] += (new_width - width) / 2.0
        matrix[1, 2] += (new_height - height) / 2.0
        return cv2.warpAffine(
            image,
            matrix,
            (new_width, new_height),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=_border_value(fill),
        )

    @staticmethod
    def scale(image: np.ndarray, factor: float) -> np.ndarray:
        """
        Bilinear resample to (W*factor, H*factor), truncating the result size.
        """
        if not math.isfinite(factor) or factor <= 0:
            raise TransformError(f"Scale factor must be positive, got {factor}")
        height, width = image.shape[:2]
        new_width, new_height = int(width * factor), int(height * factor)
        if new_width <= 0 or new_height <= 0:
            raise TransformError(
                f"Scaling {width}x{height} by {factor} gives an empty image"
            )
        return cv2.resize(
            image, (new_width, new_height), interpolation=cv2.INTER_LINEAR
        )

    @staticmethod
    def shear(image: np.ndarray, angle: float, fill: int = 255) -> np.ndarray:
        """
        Horizontal shear x' = x + (y - cy) * tan(angle) about the centre.
        Approximates perspective skew; the canvas size is unchanged.
        """
        if abs(angle) >= 90:
            raise TransformError(f"Shear angle must be within (-90, 90): {angle}")
        height, width = image.shape[:2]
        shx = math.tan(math.radians(angle))
        center_y = (height - 1) / 2.0
        matrix = np.array([[1.0, shx, -shx * center_y], [0.0, 1.0, 0.0]])
        return cv2.warpAffine(
            image,
            matrix,
            (width, height),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=_border_value(fill),
        )

    @staticmethod
    def enhance_contrast(image: np.ndarray, factor: float) -> np.ndarray:
        """
        Linear stretch around mid-gray: clamp((v - 128) * factor + 128).
        """
        if not math.isfinite(factor) or factor < 0:
            raise TransformError(f"Contrast factor must be >= 0, got {factor}")
        result = image.copy()
        channels = _color_view(result)
        stretched = (channels.astype(np.float32) - 128.0) * factor + 128.0
        channels[...] = np.clip(stretched, 0, 255).astype(np.uint8)
        return result

    @staticmethod
    def denoise_median(image: np.ndarray, window_size: int = 3) -> np.ndarray:
        """
        Median of the luminance in a window_size x window_size neighbourhood.

        Only interior pixels change; the outer window_size // 2 rows and
        columns are copied from the input. Colour input receives the
        median in every colour channel.
        """
        if window_size < 3 or window_size % 2 == 0:
            raise TransformError(f"Window size must be odd and >= 3: {window_size}")
        offset = window_size // 2
        height, width = image.shape[:2]
        result = image.copy()
        if height <= 2 * offset or width <= 2 * offset:
            return result

        median = cv2.medianBlur(to_gray(image), window_size)
        interior = median[offset : height - offset, offset : width - offset]
        if result.ndim == 2:
            result[offset : height - offset, offset : width - offset] = interior
        else:
            result[offset : height - offset, offset : width - offset, :3] = interior[
                ..., np.newaxis
            ]
        return result

    @staticmethod
    def sharpen(image: np.ndarray) -> np.ndarray:
        """
        3x3 sharpening convolution. Border pixels pass through unmodified.
        """
        result = cv2.filter2D(image, -1, SHARPEN_KERNEL)
        result[0, ...] = image[0, ...]
        result[-1, ...] = image[-1, ...]
        result[:, 0, ...] = image[:, 0, ...]
        result[:, -1, ...] = image[:, -1, ...]
        return result

    @staticmethod
    def binarize(image: np.ndarray, kind: BinarizerKind) -> np.ndarray:
        """
        Black/white bitmap of the luminance channel.

        ADAPTIVE thresholds each pixel against its local mean,
        GLOBAL_HISTOGRAM uses one Otsu threshold for the whole image.
        """
        gray = to_gray(image)
        if kind is BinarizerKind.GLOBAL_HISTOGRAM:
            _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
            return binary
        block_size = min(51, max(3, (min(gray.shape[:2]) // 4) | 1))
        return cv2.adaptiveThreshold(
            gray, 255, cv2.ADAPTIVE_THRESH_MEAN_C, cv2.THRESH_BINARY, block_size, 2
        )

    @staticmethod
    def equalize_histogram(image: np.ndarray) -> np.ndarray:
        """
        Histogram equalization of the luminance; returns a grayscale image.
        """
        return cv2.equalizeHist(to_gray(image))

    @staticmethod
    def gamma_correct(image: np.ndarray, gamma: float) -> np.ndarray:
        """Applies v' = 255 * (v / 255) ** (1 / gamma) per channel."""
        if not math.isfinite(gamma) or gamma <= 0:
            raise TransformError(f"Gamma must be positive, got {gamma}")
        levels = np.arange(256, dtype=np.float64) / 255.0
        table = np.clip(np.rint(255.0 * np.power(levels, 1.0 / gamma)), 0, 255)
        table = table.astype(np.uint8)
        result = image.copy()
        channels = _color_view(result)
        channels[...] = table[channels]
        return result

    @staticmethod
    def enhance_local_contrast(
        image: np.ndarray, factor: float, window_size: int = 7
    ) -> np.ndarray:
        """
        Stretches each pixel around the mean luminance of its neighbourhood.
        The window is clipped at the image edges.
        """
        gray = to_gray(image).astype(np.float32)
        kernel = (window_size, window_size)
        sums = cv2.boxFilter(
            gray, -1, kernel, normalize=False, borderType=cv2.BORDER_CONSTANT
        )
        counts = cv2.boxFilter(
            np.ones_like(gray), -1, kernel, normalize=False, borderType=cv2.BORDER_CONSTANT
        )
        local_mean = np.floor(sums / counts)
        if image.ndim == 3:
            local_mean = local_mean[..., np.newaxis]

        result = image.copy()
        channels = _color_view(result)
        stretched = (channels.astype(np.float32) - local_mean) * factor + local_mean
        channels[...] = np.clip(stretched, 0, 255).astype(np.uint8)
        return result

    @staticmethod
    def recommend_contrast_method(image: np.ndarray) -> ContrastMethod:
        """
        Picks a contrast method from the normalised brightness range,
        sampled on a 10-pixel grid.
        """
        grid = to_gray(image)[::10, ::10]
        contrast = (int(grid.max()) - int(grid.min())) / 255.0
        if contrast < 0.2:
            return ContrastMethod.HISTOGRAM_EQUALIZATION
        if contrast < 0.5:
            return ContrastMethod.ADAPTIVE
        if contrast < 0.8:
            return ContrastMethod.LINEAR
        return ContrastMethod.GAMMA_CORRECTION

    @classmethod
    def apply_contrast_method(
        cls, image: np.ndarray, method: ContrastMethod, factor: float = 1.5
    ) -> np.ndarray:
        """Dispatches to the transform implementing ``method``."""
        if method is ContrastMethod.HISTOGRAM_EQUALIZATION:
            return cls.equalize_histogram(image)
        if method is ContrastMethod.ADAPTIVE:
            return cls.enhance_local_contrast(image, factor)
        if method is ContrastMethod.GAMMA_CORRECTION:
            return cls.gamma_correct(image, factor)
        return cls.enhance_contrast(image, factor)


def rotate(image: np.ndarray, angle: float, fill: int = 255) -> np.ndarray:
    """Wrapper for ImageTransformer.rotate"""
    return ImageTransformer.rotate(image, angle, fill)


def scale(image: np.ndarray, factor: float) -> np.ndarray:
    """Wrapper for ImageTransformer.scale"""
    return ImageTransformer.scale(image, factor)


def shear(image: np.ndarray, angle: float, fill: int = 255) -> np.ndarray:
    """Wrapper for ImageTransformer.shear"""
    return ImageTransformer.shear(image, angle, fill)


def enhance_contrast(image: np.ndarray, factor: float) -> np.ndarray:
    """Wrapper for ImageTransformer.enhance_contrast"""
    return ImageTransformer.enhance_contrast(image, factor)


def denoise_median(image: np.ndarray, window_size: int = 3) -> np.ndarray:
    """Wrapper for ImageTransformer.denoise_median"""
    return ImageTransformer.denoise_median(image, window_size)


def sharpen(image: np.ndarray) -> np.ndarray:
    """Wrapper for ImageTransformer.sharpen"""
    return ImageTransformer.sharpen(image)


def binarize(image: np.ndarray, kind: BinarizerKind) -> np.ndarray:
    """Wrapper for ImageTransformer.binarize"""
    return ImageTransformer.binarize(image, kind)
