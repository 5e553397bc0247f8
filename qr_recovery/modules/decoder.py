"""
Thin wrappers around the single-shot symbol decoders.

A backend turns one image into one DecodeOutcome. Backends hold no per-call
state, so one instance can be shared by concurrent ``recover`` calls.
"""

import logging
from typing import Optional, Protocol, runtime_checkable

# pylint: disable=no-member
import cv2
import numpy as np
import zxingcpp

from .enhance import ImageTransformer
from .image_toolkit import to_gray
from .models import BinarizerKind, DecodeOutcome

__all__ = [
    "DecoderBackend",
    "ZXingDecoder",
    "OpenCVDecoder",
    "build_decoder",
    "DECODER_BACKENDS",
]

logger = logging.getLogger("qr-recovery.decoder")


@runtime_checkable
class DecoderBackend(Protocol):
    """Single-shot decoder consumed by the recovery pipeline."""

    def decode(
        self, image: np.ndarray, binarizer: BinarizerKind = BinarizerKind.ADAPTIVE
    ) -> DecodeOutcome:
        ...


class ZXingDecoder:
    """
    zxing-cpp backend restricted to QR codes. The binarizer choice maps onto
    zxing's LocalAverage (adaptive) and GlobalHistogram binarizers.
    """

    _BINARIZERS = {
        BinarizerKind.ADAPTIVE: zxingcpp.Binarizer.LocalAverage,
        BinarizerKind.GLOBAL_HISTOGRAM: zxingcpp.Binarizer.GlobalHistogram,
    }

    def __init__(self, formats=zxingcpp.BarcodeFormat.QRCode):
        self.formats = formats

    def decode(
        self, image: np.ndarray, binarizer: BinarizerKind = BinarizerKind.ADAPTIVE
    ) -> DecodeOutcome:
        gray = np.ascontiguousarray(to_gray(image))
        try:
            results = zxingcpp.read_barcodes(
                gray,
                formats=self.formats,
                binarizer=self._BINARIZERS[binarizer],
                return_errors=True,
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.debug("zxing-cpp raised during decode: %s", e)
            return DecodeOutcome.error(str(e))

        for result in results:
            if result.valid and result.text:
                return DecodeOutcome.success(result.text)

        for result in results:
            outcome = self._failure_from(result)
            if outcome is not None:
                return outcome
        return DecodeOutcome.not_found()

    @staticmethod
    def _failure_from(result) -> Optional[DecodeOutcome]:
        """Maps a located-but-invalid symbol to its failure variant."""
        error = result.error
        error_type = getattr(error, "type", None)
        if error_type == zxingcpp.ErrorType.Checksum:
            return DecodeOutcome.checksum_invalid(error.message)
        if error_type == zxingcpp.ErrorType.Format:
            return DecodeOutcome.format_invalid(error.message)
        if error_type == zxingcpp.ErrorType.Unsupported:
            return DecodeOutcome.error(error.message)
        return None


class OpenCVDecoder:
    """
    OpenCV QRCodeDetector backend. The image is binarized first with the
    requested policy; a detector is created per call.
    """

    def decode(
        self, image: np.ndarray, binarizer: BinarizerKind = BinarizerKind.ADAPTIVE
    ) -> DecodeOutcome:
        binary = ImageTransformer.binarize(image, binarizer)
        detector = cv2.QRCodeDetector()
        try:
            text, points, _ = detector.detectAndDecode(binary)
        except cv2.error as e:
            logger.debug("OpenCV QR detector raised: %s", e)
            return DecodeOutcome.error(str(e))

        if text:
            return DecodeOutcome.success(text)
        if points is not None:
            return DecodeOutcome.format_invalid("Symbol located but not decodable")
        return DecodeOutcome.not_found()


DECODER_BACKENDS = {
    "zxing": ZXingDecoder,
    "opencv": OpenCVDecoder,
}


def build_decoder(name: str = "zxing") -> DecoderBackend:
    """Instantiates the backend registered under ``name``."""
    try:
        backend_cls = DECODER_BACKENDS[name.lower()]
    except KeyError as e:
        raise ValueError(
            f"Unknown decoder backend '{name}'. "
            f"Expected one of: {', '.join(sorted(DECODER_BACKENDS))}"
        ) from e
    return backend_cls()
