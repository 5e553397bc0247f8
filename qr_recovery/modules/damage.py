"""
Damage assessment heuristics: finder-pattern presence, contrast and noise,
combined into a single severity estimate.

Assessment never decodes; UI and CLI layers use it to explain why a
recovery attempt failed.
"""

import logging
from typing import Optional

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from ..config import get_settings
from .image_toolkit import to_gray, validate_image
from .models import DamageLevel, DamageReport

__all__ = [
    "DamageAssessor",
    "assess",
    "count_finder_candidates",
    "estimate_contrast",
    "estimate_noise_level",
    "calculate_damage_score",
    "classify_damage",
]

logger = logging.getLogger("qr-recovery.damage")

BINARY_THRESHOLD = 128

FINDER_WINDOW = 15
FINDER_LINE_STEP = 10
FINDER_WINDOW_STEP = 5
# Windows start strictly before (length - FINDER_MARGIN).
FINDER_MARGIN = 20
FINDER_MIN_TRANSITIONS = 4
FINDER_MAX_TRANSITIONS = 8
FINDER_MIN_CANDIDATES = 3

CONTRAST_SAMPLE_SIZE = 1000
LOW_CONTRAST_THRESHOLD = 50.0
HIGH_NOISE_THRESHOLD = 0.3

MISSING_FINDER_WEIGHT = 0.4
LOW_CONTRAST_WEIGHT = 0.3
HIGH_NOISE_WEIGHT = 0.3


def _count_line_windows(lines: np.ndarray) -> int:
    """
    Counts finder-like windows along axis 1 of a (lines, length) dark mask.
    """
    count, length = lines.shape
    starts = len(range(0, length - FINDER_MARGIN, FINDER_WINDOW_STEP))
    if count == 0 or starts == 0:
        return 0
    windows = sliding_window_view(lines, FINDER_WINDOW, axis=1)
    windows = windows[:, ::FINDER_WINDOW_STEP][:, :starts]
    transitions = np.count_nonzero(np.diff(windows, axis=-1), axis=-1)
    matches = (transitions >= FINDER_MIN_TRANSITIONS) & (
        transitions <= FINDER_MAX_TRANSITIONS
    )
    return int(np.count_nonzero(matches))


def count_finder_candidates(gray: np.ndarray) -> int:
    """
    Scans every 10th row and column with 15-pixel windows every 5 pixels and
    counts windows whose dark/light sequence has 4-8 transitions.

    A coarse stand-in for the 1:1:3:1:1 finder ratio, no geometric matching.
    """
    dark = (gray < BINARY_THRESHOLD).astype(np.int8)
    horizontal = _count_line_windows(dark[::FINDER_LINE_STEP, :])
    vertical = _count_line_windows(dark[:, ::FINDER_LINE_STEP].T)
    return horizontal + vertical


def estimate_contrast(
    gray: np.ndarray,
    sample_size: Optional[int] = CONTRAST_SAMPLE_SIZE,
    rng: Optional[np.random.Generator] = None,
) -> float:
    """
    Luminance range (max - min) over uniformly sampled pixels.
    ``sample_size=None`` scans the whole image instead.
    """
    if sample_size is None:
        values = gray
    else:
        rng = rng if rng is not None else np.random.default_rng()
        height, width = gray.shape[:2]
        ys = rng.integers(0, height, size=sample_size)
        xs = rng.integers(0, width, size=sample_size)
        values = gray[ys, xs]
    return float(int(values.max()) - int(values.min()))


def estimate_noise_level(gray: np.ndarray) -> float:
    """
    Mean |center - mean(4-neighbours)| over interior pixels, scaled to [0, 1].
    Images without interior pixels report 0.0.
    """
    height, width = gray.shape[:2]
    if height < 3 or width < 3:
        return 0.0
    g = gray.astype(np.float64)
    center = g[1:-1, 1:-1]
    neighbours = (g[1:-1, :-2] + g[1:-1, 2:] + g[:-2, 1:-1] + g[2:, 1:-1]) / 4.0
    return float(np.mean(np.abs(center - neighbours)) / 255.0)


def calculate_damage_score(
    finder_patterns_detected: bool, contrast: float, noise_level: float
) -> float:
    score = 0.0
    if not finder_patterns_detected:
        score += MISSING_FINDER_WEIGHT
    if contrast < LOW_CONTRAST_THRESHOLD:
        score += LOW_CONTRAST_WEIGHT
    if noise_level > HIGH_NOISE_THRESHOLD:
        score += HIGH_NOISE_WEIGHT
    return min(round(score, 6), 1.0)


def classify_damage(score: float) -> DamageLevel:
    if score < 0.3:
        return DamageLevel.LOW
    if score < 0.6:
        return DamageLevel.MEDIUM
    if score < 0.8:
        return DamageLevel.HIGH
    return DamageLevel.SEVERE


def _describe_issues(
    finder_patterns_detected: bool, contrast: float, noise_level: float
) -> tuple[str, ...]:
    issues = []
    if not finder_patterns_detected:
        issues.append(
            "No finder patterns detected: the symbol may be cropped, "
            "occluded or out of focus."
        )
    if contrast < LOW_CONTRAST_THRESHOLD:
        issues.append(
            f"Low contrast ({contrast:.0f} < {LOW_CONTRAST_THRESHOLD:.0f}): "
            "dark and light modules are hard to separate."
        )
    if noise_level > HIGH_NOISE_THRESHOLD:
        issues.append(
            f"High noise level ({noise_level:.2f} > {HIGH_NOISE_THRESHOLD:.2f}): "
            "speckle breaks up module edges."
        )
    return tuple(issues)


class DamageAssessor:
    """
    Produces a DamageReport for an image.

    Contrast sampling is random; pass ``seed`` for reproducible reports or
    ``sample_size=None`` to scan every pixel. A fresh generator is created
    per call so one assessor can be shared between threads.
    """

    def __init__(
        self,
        sample_size: Optional[int] = CONTRAST_SAMPLE_SIZE,
        seed: Optional[int] = None,
    ):
        if sample_size is not None and sample_size < 1:
            raise ValueError("sample_size must be >= 1 or None")
        self.sample_size = sample_size
        self.seed = seed

    @classmethod
    def from_settings(cls, settings) -> "DamageAssessor":
        return cls(
            sample_size=settings.contrast_sample_size, seed=settings.contrast_seed
        )

    def assess(
        self, image: np.ndarray, rng: Optional[np.random.Generator] = None
    ) -> DamageReport:
        """
        Runs every heuristic on ``image`` and combines them.
        Raises InvalidImageError for missing or zero-size images.
        """
        validate_image(image)
        gray = to_gray(image)
        height, width = gray.shape[:2]

        candidates = count_finder_candidates(gray)
        finder_detected = candidates >= FINDER_MIN_CANDIDATES
        contrast = estimate_contrast(
            gray, self.sample_size, rng or np.random.default_rng(self.seed)
        )
        noise_level = estimate_noise_level(gray)
        score = calculate_damage_score(finder_detected, contrast, noise_level)

        report = DamageReport(
            finder_patterns_detected=finder_detected,
            finder_candidates=candidates,
            contrast=contrast,
            low_contrast=contrast < LOW_CONTRAST_THRESHOLD,
            noise_level=noise_level,
            high_noise=noise_level > HIGH_NOISE_THRESHOLD,
            damage_score=score,
            damage_level=classify_damage(score),
            width=width,
            height=height,
            issues=_describe_issues(finder_detected, contrast, noise_level),
        )
        logger.debug(
            "Damage assessment %dx%d: finder=%s (%d) contrast=%.0f noise=%.3f -> %s",
            width,
            height,
            finder_detected,
            candidates,
            contrast,
            noise_level,
            report.damage_level.value,
        )
        return report


def assess(image: np.ndarray) -> DamageReport:
    """Stand-alone function for assessing a single image with configured sampling."""
    return DamageAssessor.from_settings(get_settings()).assess(image)
