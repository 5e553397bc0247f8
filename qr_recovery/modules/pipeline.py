"""
Recovery pipeline: runs an ordered table of transform + decode strategies
and returns the first successful decode.
"""

import logging
import time
from contextlib import nullcontext
from functools import partial
from typing import Callable, NamedTuple, Optional, Tuple

import numpy as np
from opentelemetry import trace

from ..config import Settings, get_settings
from .decoder import DecoderBackend, build_decoder
from .enhance import ImageTransformer
from .image_toolkit import decode_image, validate_image
from .models import BinarizerKind, RecoveryResult
from .profiler import PerformanceProfiler

logger = logging.getLogger("qr-recovery.pipeline")
tracer = trace.get_tracer("qr_recovery")

ROTATION_ANGLES = (90, 180, 270, 45, 135, 225, 315)
SCALE_FACTORS = (0.5, 1.5, 2.0, 0.75, 1.25, 0.25, 3.0)
SKEW_ANGLES = (-15, -10, -5, 5, 10, 15)

ENHANCE_CONTRAST_FACTOR = 2.0
DENOISE_WINDOW = 3

# (transformer, image, fill) -> image
Candidate = Callable[[ImageTransformer, np.ndarray, int], np.ndarray]


class Strategy(NamedTuple):
    label: str
    confidence: float
    candidates: Tuple[Candidate, ...]
    binarizers: Tuple[BinarizerKind, ...] = (BinarizerKind.ADAPTIVE,)


def _identity(transformer, image, fill):
    return image


def _enhanced(transformer, image, fill):
    denoised = transformer.denoise_median(image, DENOISE_WINDOW)
    return transformer.enhance_contrast(denoised, ENHANCE_CONTRAST_FACTOR)


def _rotated(transformer, image, fill, angle):
    return transformer.rotate(image, angle, fill)


def _scaled(transformer, image, fill, factor):
    return transformer.scale(image, factor)


def _sheared(transformer, image, fill, angle):
    return transformer.shear(image, angle, fill)


def _denoise_sharpen(transformer, image, fill):
    return transformer.sharpen(transformer.denoise_median(image, DENOISE_WINDOW))


STRATEGIES = (
    Strategy("direct", 1.0, (_identity,)),
    Strategy("enhanced", 0.9, (_enhanced,)),
    Strategy(
        "multi-binarizer",
        0.8,
        (_identity,),
        (BinarizerKind.ADAPTIVE, BinarizerKind.GLOBAL_HISTOGRAM),
    ),
    Strategy(
        "rotation", 0.7, tuple(partial(_rotated, angle=a) for a in ROTATION_ANGLES)
    ),
    Strategy(
        "scaling", 0.6, tuple(partial(_scaled, factor=f) for f in SCALE_FACTORS)
    ),
    Strategy(
        "perspective", 0.5, tuple(partial(_sheared, angle=a) for a in SKEW_ANGLES)
    ),
    Strategy("denoise-sharpen", 0.4, (_denoise_sharpen,)),
)


def _describe(candidate) -> str:
    if isinstance(candidate, partial):
        params = ", ".join(f"{k}={v}" for k, v in candidate.keywords.items())
        return f"{candidate.func.__name__.lstrip('_')}({params})"
    return candidate.__name__.lstrip("_")


class RecoveryPipeline:
    """
    Multi-strategy QR recovery.

    Strategies run strictly in table order and the first decode wins; the
    result's confidence is the fixed ceiling of the winning strategy. A
    pipeline holds no per-call state, so one instance can serve concurrent
    callers as long as its decoder can.
    """

    def __init__(
        self,
        decoder: Optional[DecoderBackend] = None,
        transformer: Optional[ImageTransformer] = None,
        profiler: Optional[PerformanceProfiler] = None,
        fill: Optional[int] = None,
        strategies: Tuple[Strategy, ...] = STRATEGIES,
        settings: Optional[Settings] = None,
    ):
        """
        Arguments left as None are taken from ``settings`` (default:
        ``get_settings()``): the decoder backend, the rotation/shear fill and,
        when profiling is enabled, a fresh PerformanceProfiler.
        """
        if decoder is None or fill is None or profiler is None:
            settings = settings if settings is not None else get_settings()
            if decoder is None:
                decoder = build_decoder(settings.decoder_backend)
            if fill is None:
                fill = settings.rotation_fill
            if profiler is None and settings.enable_profiling:
                profiler = PerformanceProfiler()
        self.decoder = decoder
        self.transformer = (
            transformer if transformer is not None else ImageTransformer()
        )
        self.profiler = profiler
        self.fill = fill
        self.strategies = strategies

    @classmethod
    def from_settings(
        cls, settings: Optional[Settings] = None, **kwargs
    ) -> "RecoveryPipeline":
        """Builds a pipeline from Settings; keyword arguments take precedence."""
        return cls(settings=settings, **kwargs)

    def _measure(self, operation: str):
        if self.profiler is None:
            return nullcontext()
        return self.profiler.measure(operation)

    def _run_strategy(
        self, strategy: Strategy, image: np.ndarray
    ) -> Tuple[Optional[str], int]:
        """
        Tries every candidate of ``strategy`` in order.
        Returns the decoded text (or None) and the number of decode calls made.
        """
        calls = 0
        for candidate in strategy.candidates:
            try:
                transformed = candidate(self.transformer, image, self.fill)
            except Exception as e:  # pylint: disable=broad-except
                logger.debug(
                    "Strategy %s: transform %s failed: %s",
                    strategy.label,
                    _describe(candidate),
                    e,
                )
                continue

            for binarizer in strategy.binarizers:
                calls += 1
                try:
                    outcome = self.decoder.decode(transformed, binarizer)
                except Exception as e:  # pylint: disable=broad-except
                    logger.debug(
                        "Strategy %s: decoder raised on %s: %s",
                        strategy.label,
                        _describe(candidate),
                        e,
                    )
                    continue
                if outcome.is_success:
                    return outcome.text, calls
                logger.debug(
                    "Strategy %s: %s with %s binarizer -> %s",
                    strategy.label,
                    _describe(candidate),
                    binarizer.value,
                    outcome.status.value,
                )
        return None, calls

    def recover(self, image: np.ndarray) -> RecoveryResult:
        """
        Attempts to decode ``image``, escalating through the strategy table.

        Raises InvalidImageError for missing or zero-size images; every other
        failure is reported through an empty RecoveryResult.
        """
        validate_image(image)
        start = time.perf_counter()
        decode_calls = 0

        with tracer.start_as_current_span("qr_recovery.recover") as span, \
                self._measure("recover"):
            span.set_attribute("qr_recovery.image.width", int(image.shape[1]))
            span.set_attribute("qr_recovery.image.height", int(image.shape[0]))

            for attempt, strategy in enumerate(self.strategies, start=1):
                with self._measure(f"strategy.{strategy.label}"):
                    text, calls = self._run_strategy(strategy, image)
                decode_calls += calls
                if text is None:
                    continue

                result = RecoveryResult(
                    content=text,
                    confidence=strategy.confidence,
                    method=strategy.label,
                    attempts_used=attempt,
                    processing_time_ms=self._elapsed_ms(start),
                    decode_calls=decode_calls,
                )
                self._annotate(span, result)
                logger.info(
                    "QR recovered via %s (attempt %d, %d decode calls, %dms)",
                    result.method,
                    result.attempts_used,
                    result.decode_calls,
                    result.processing_time_ms,
                )
                return result

            result = RecoveryResult.failed(
                attempts_used=len(self.strategies),
                processing_time_ms=self._elapsed_ms(start),
                decode_calls=decode_calls,
            )
            self._annotate(span, result)
            logger.info(
                "QR recovery exhausted %d strategies (%d decode calls, %dms)",
                result.attempts_used,
                result.decode_calls,
                result.processing_time_ms,
            )
            return result

    def recover_bytes(self, image_bytes: bytes) -> RecoveryResult:
        """Decodes an encoded image (PNG, JPEG, ...) and recovers it."""
        return self.recover(decode_image(image_bytes))

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return max(0, int((time.perf_counter() - start) * 1000))

    @staticmethod
    def _annotate(span, result: RecoveryResult):
        span.set_attribute("qr_recovery.method", result.method)
        span.set_attribute("qr_recovery.confidence", result.confidence)
        span.set_attribute("qr_recovery.attempts_used", result.attempts_used)
        span.set_attribute("qr_recovery.decode_calls", result.decode_calls)


def recover(image: np.ndarray) -> RecoveryResult:
    """Stand-alone function for recovering a single image."""
    return RecoveryPipeline.from_settings().recover(image)


def recover_bytes(image_bytes: bytes) -> RecoveryResult:
    """Stand-alone function for recovering an encoded image."""
    return RecoveryPipeline.from_settings().recover_bytes(image_bytes)
