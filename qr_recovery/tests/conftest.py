import logging

import numpy as np
import pytest
import segno

from qr_recovery.config import get_settings
from qr_recovery.modules.models import DecodeOutcome

HELLO_WORLD = "Hello World"


def render_qr(payload: str, size: int = 300, border: int = 4) -> np.ndarray:
    """Renders ``payload`` as a black-on-white grayscale QR code of size x size."""
    qr = segno.make(payload, error="m", micro=False)
    modules = np.array([list(row) for row in qr.matrix], dtype=np.uint8)
    modules = np.pad(modules, border, constant_values=0)
    module_px = size // modules.shape[0]
    image = np.where(modules == 1, 0, 255).astype(np.uint8)
    image = np.repeat(np.repeat(image, module_px, axis=0), module_px, axis=1)
    pad = size - image.shape[0]
    return np.pad(
        image, ((pad // 2, pad - pad // 2), (pad // 2, pad - pad // 2)),
        constant_values=255,
    )


class ScriptedDecoder:
    """Succeeds on the n-th decode call, fails with NOT_FOUND before that."""

    def __init__(self, succeed_on_call=None, text=HELLO_WORLD):
        self.succeed_on_call = succeed_on_call
        self.text = text
        self.calls = []

    def decode(self, image, binarizer):
        self.calls.append((image.shape, binarizer))
        if len(self.calls) == self.succeed_on_call:
            return DecodeOutcome.success(self.text)
        return DecodeOutcome.not_found()


class MatchingDecoder:
    """Decodes only images that closely match a reference orientation."""

    def __init__(self, reference: np.ndarray, text=HELLO_WORLD, tolerance=8.0):
        self.reference = reference.astype(np.int16)
        self.text = text
        self.tolerance = tolerance

    def decode(self, image, binarizer):
        if image.shape != self.reference.shape:
            return DecodeOutcome.not_found()
        diff = np.abs(image.astype(np.int16) - self.reference).mean()
        if diff < self.tolerance:
            return DecodeOutcome.success(self.text)
        return DecodeOutcome.not_found()


@pytest.fixture
def qr_image():
    return render_qr(HELLO_WORLD)


@pytest.fixture
def gray_image():
    return np.full((300, 300), 128, dtype=np.uint8)


@pytest.fixture
def gradient_image():
    row = np.linspace(0, 255, 64).astype(np.uint8)
    return np.tile(row, (64, 1))


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Each test sees settings built from its own environment."""
    for name in ("QR_RECOVERY_DECODER_BACKEND", "QR_RECOVERY_ENABLE_PROFILING"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def make_qr():
    return render_qr


@pytest.fixture
def scripted_decoder():
    return ScriptedDecoder


@pytest.fixture
def matching_decoder():
    return MatchingDecoder
