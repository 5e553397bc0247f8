"""
Entry point for qr-recovery modules.
"""

from .damage import DamageAssessor, assess
from .decoder import DecoderBackend, OpenCVDecoder, ZXingDecoder, build_decoder
from .enhance import ImageTransformer, TransformError
from .image_toolkit import InvalidImageError
from .models import (
    BinarizerKind,
    DamageLevel,
    DamageReport,
    DecodeOutcome,
    DecodeStatus,
    RecoveryResult,
)
from .pipeline import STRATEGIES, RecoveryPipeline, recover, recover_bytes
from .profiler import PerformanceProfiler, PerformanceReport

__all__ = [
    "BinarizerKind",
    "DamageAssessor",
    "DamageLevel",
    "DamageReport",
    "DecodeOutcome",
    "DecodeStatus",
    "DecoderBackend",
    "ImageTransformer",
    "InvalidImageError",
    "OpenCVDecoder",
    "PerformanceProfiler",
    "PerformanceReport",
    "RecoveryPipeline",
    "RecoveryResult",
    "STRATEGIES",
    "TransformError",
    "ZXingDecoder",
    "assess",
    "build_decoder",
    "recover",
    "recover_bytes",
]
