import numpy as np
import pytest

import qr_recovery
from qr_recovery.config import Settings
from qr_recovery.modules.damage import (
    DamageAssessor,
    assess,
    calculate_damage_score,
    classify_damage,
    count_finder_candidates,
    estimate_contrast,
    estimate_noise_level,
)
from qr_recovery.modules.image_toolkit import InvalidImageError
from qr_recovery.modules.models import DamageLevel


def _two_tone(dark, light, size=(60, 60)):
    image = np.full(size, light, dtype=np.uint8)
    image[: size[0] // 2] = dark
    return image


def _stripes(width, size=(100, 100)):
    """Vertical black/white stripes ``width`` pixels wide."""
    columns = np.where((np.arange(size[1]) // width) % 2, 0, 255).astype(np.uint8)
    return np.tile(columns, (size[0], 1))


def test_contrast_exactly_50_is_not_low():
    """Contrast of exactly 50 is not flagged as low."""
    report = DamageAssessor(sample_size=None).assess(_two_tone(100, 150))
    assert report.contrast == 50
    assert not report.low_contrast


def test_contrast_49_is_low():
    """Contrast of 49 is flagged as low."""
    report = DamageAssessor(sample_size=None).assess(_two_tone(101, 150))
    assert report.contrast == 49
    assert report.low_contrast


def test_sampled_contrast_is_reproducible_with_seed():
    """A seeded assessor produces identical reports."""
    rng = np.random.default_rng(3)
    image = rng.integers(0, 256, size=(120, 90), dtype=np.uint8)
    first = DamageAssessor(seed=11).assess(image)
    second = DamageAssessor(seed=11).assess(image)
    assert first == second


def test_estimate_contrast_uses_injected_generator():
    """Sampling uses the injected generator; None scans every pixel."""
    image = _two_tone(0, 200)
    rng = np.random.default_rng(0)
    assert estimate_contrast(image, 1000, rng) == 200
    assert estimate_contrast(image, None) == 200


def test_assessor_from_settings():
    """DamageAssessor picks sample size and seed from Settings."""
    assessor = DamageAssessor.from_settings(
        Settings(contrast_sample_size=25, contrast_seed=9)
    )
    assert assessor.sample_size == 25
    assert assessor.seed == 9


def test_assessor_rejects_bad_sample_size():
    """A sample size below one is rejected."""
    with pytest.raises(ValueError):
        DamageAssessor(sample_size=0)


def test_noise_threshold_is_strict():
    """Noise of exactly 0.3 does not count as high noise."""
    assert calculate_damage_score(True, 100, 0.3) == 0.0
    assert calculate_damage_score(True, 100, 0.3001) == 0.3


def test_noise_level_of_checkerboard_is_maximal():
    """A checkerboard has maximal noise, a flat image none."""
    checker = (np.indices((20, 20)).sum(axis=0) % 2 * 255).astype(np.uint8)
    assert estimate_noise_level(checker) == pytest.approx(1.0)
    assert estimate_noise_level(np.full((20, 20), 9, dtype=np.uint8)) == 0.0


def test_noise_level_of_tiny_image_is_zero():
    """Images without interior pixels report zero noise."""
    assert estimate_noise_level(np.array([[0, 255], [255, 0]], dtype=np.uint8)) == 0.0


@pytest.mark.parametrize(
    "score, level",
    [
        (0.0, DamageLevel.LOW),
        (0.29, DamageLevel.LOW),
        (0.3, DamageLevel.MEDIUM),
        (0.59, DamageLevel.MEDIUM),
        (0.6, DamageLevel.HIGH),
        (0.79, DamageLevel.HIGH),
        (0.8, DamageLevel.SEVERE),
        (1.0, DamageLevel.SEVERE),
    ],
)
def test_classify_damage_boundaries(score, level):
    """Scores map onto damage levels at 0.3, 0.6 and 0.8."""
    assert classify_damage(score) is level


@pytest.mark.parametrize(
    "finder, contrast, noise, expected",
    [
        (True, 200, 0.0, 0.0),
        (False, 200, 0.0, 0.4),
        (True, 10, 0.0, 0.3),
        (False, 10, 0.0, 0.7),
        (True, 10, 0.9, 0.6),
        (False, 10, 0.9, 1.0),
    ],
)
def test_damage_score_weights(finder, contrast, noise, expected):
    """Each heuristic adds its weight to the damage score."""
    assert calculate_damage_score(finder, contrast, noise) == expected


def test_finder_windows_need_four_to_eight_transitions():
    """Only windows with 4-8 transitions count as finder candidates."""
    # 2px stripes give 7 transitions per 15px window, 1px stripes give 14.
    assert count_finder_candidates(_stripes(2)) == 10 * 16
    assert count_finder_candidates(_stripes(1)) == 0
    assert count_finder_candidates(np.full((100, 100), 255, dtype=np.uint8)) == 0


def test_finder_scan_skips_images_smaller_than_margin():
    """Images too small for a window yield no candidates."""
    assert count_finder_candidates(_stripes(2, size=(20, 20))) == 0


def test_uniform_gray_is_high_damage(gray_image):
    """A uniform gray image has no finder and low contrast."""
    report = assess(gray_image)
    assert not report.finder_patterns_detected
    assert report.low_contrast
    assert not report.high_noise
    assert report.damage_score == 0.7
    assert report.damage_level is DamageLevel.HIGH
    assert len(report.issues) == 2


def test_striped_image_report():
    """A high-contrast striped image reports low damage and no issues."""
    report = DamageAssessor(sample_size=None).assess(_stripes(2))
    assert report.finder_patterns_detected
    assert report.contrast == 255
    assert report.damage_level is DamageLevel.LOW
    assert report.issues == ()


def test_colour_image_is_assessed_on_luminance():
    """Colour input is assessed on its luminance."""
    image = np.zeros((40, 40, 3), dtype=np.uint8)
    image[20:] = 255
    report = DamageAssessor(sample_size=None).assess(image)
    assert report.contrast == 255
    assert (report.width, report.height) == (40, 40)


def test_report_to_dict():
    """DamageReport.to_dict flattens level, issues and size."""
    data = assess(np.full((30, 50), 200, dtype=np.uint8)).to_dict()
    assert data["damage_level"] == "High"
    assert data["image_size"] == 1500
    assert isinstance(data["issues"], list)


@pytest.mark.parametrize(
    "image",
    [None, np.zeros((0, 10), dtype=np.uint8), np.zeros((5, 5), dtype=np.float32)],
)
def test_invalid_images_raise(image):
    """Missing, empty or non-uint8 images raise InvalidImageError."""
    with pytest.raises(InvalidImageError):
        assess(image)


def test_module_assess_uses_configured_sampler(monkeypatch):
    """qr_recovery.assess seeds and sizes its contrast sample from settings."""
    monkeypatch.setenv("QR_RECOVERY_CONTRAST_SEED", "7")
    monkeypatch.setenv("QR_RECOVERY_CONTRAST_SAMPLE_SIZE", "50")
    image = np.full((200, 200), 128, dtype=np.uint8)
    image[[5, 100, 190], [7, 60, 150]] = 0

    reports = {qr_recovery.assess(image) for _ in range(30)}

    assert len(reports) == 1
    assert reports == {DamageAssessor(sample_size=50, seed=7).assess(image)}
