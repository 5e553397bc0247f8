"""
Value objects shared across the recovery pipeline: decode outcomes,
recovery results and damage reports. All are immutable and created per call.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional

__all__ = [
    "BinarizerKind",
    "DecodeStatus",
    "DecodeOutcome",
    "RecoveryResult",
    "DamageLevel",
    "DamageReport",
]


class BinarizerKind(str, Enum):
    """Binarization policy requested from the decode backend."""

    ADAPTIVE = "adaptive"
    GLOBAL_HISTOGRAM = "global-histogram"


class DecodeStatus(str, Enum):
    SUCCESS = "success"
    NOT_FOUND = "not-found"
    CHECKSUM_INVALID = "checksum-invalid"
    FORMAT_INVALID = "format-invalid"
    ERROR = "error"


@dataclass(frozen=True)
class DecodeOutcome:
    """
    Result of a single decode attempt. Only SUCCESS carries text; the failure
    variants are all equivalent to the pipeline and only matter for logs.
    """

    status: DecodeStatus
    text: Optional[str] = None
    reason: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.status is DecodeStatus.SUCCESS

    @classmethod
    def success(cls, text: str) -> "DecodeOutcome":
        return cls(DecodeStatus.SUCCESS, text=text)

    @classmethod
    def not_found(cls, reason: Optional[str] = None) -> "DecodeOutcome":
        return cls(DecodeStatus.NOT_FOUND, reason=reason)

    @classmethod
    def checksum_invalid(cls, reason: Optional[str] = None) -> "DecodeOutcome":
        return cls(DecodeStatus.CHECKSUM_INVALID, reason=reason)

    @classmethod
    def format_invalid(cls, reason: Optional[str] = None) -> "DecodeOutcome":
        return cls(DecodeStatus.FORMAT_INVALID, reason=reason)

    @classmethod
    def error(cls, reason: str) -> "DecodeOutcome":
        return cls(DecodeStatus.ERROR, reason=reason)


@dataclass(frozen=True)
class RecoveryResult:
    """
    Outcome of ``RecoveryPipeline.recover``.

    Attributes:
        content: Decoded text, or None when every strategy failed.
        confidence: Fixed ceiling of the strategy tier that succeeded, 0.0 otherwise.
        method: Label of the successful strategy, or "none".
        attempts_used: Number of strategy tiers entered (1..7).
        processing_time_ms: Wall time spent in ``recover``.
        decode_calls: Number of backend invocations, sweep candidates included.
    """

    content: Optional[str]
    confidence: float
    method: str
    attempts_used: int
    processing_time_ms: int
    decode_calls: int = 0

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence out of range: {self.confidence}")
        if (self.content is not None) != (self.confidence > 0):
            raise ValueError("content must be set exactly when confidence > 0")
        if self.attempts_used < 1:
            raise ValueError("attempts_used must be >= 1")
        if self.processing_time_ms < 0:
            raise ValueError("processing_time_ms must be >= 0")

    @property
    def succeeded(self) -> bool:
        return self.content is not None

    @classmethod
    def failed(
        cls, attempts_used: int, processing_time_ms: int, decode_calls: int = 0
    ) -> "RecoveryResult":
        return cls(
            content=None,
            confidence=0.0,
            method="none",
            attempts_used=attempts_used,
            processing_time_ms=processing_time_ms,
            decode_calls=decode_calls,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class DamageLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    SEVERE = "Severe"


@dataclass(frozen=True)
class DamageReport:
    """
    Diagnostic assessment of an image, independent of any decode attempt.
    """

    finder_patterns_detected: bool
    finder_candidates: int
    contrast: float
    low_contrast: bool
    noise_level: float
    high_noise: bool
    damage_score: float
    damage_level: DamageLevel
    width: int
    height: int
    issues: tuple[str, ...] = field(default=())

    @property
    def image_size(self) -> int:
        return self.width * self.height

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["damage_level"] = self.damage_level.value
        data["issues"] = list(self.issues)
        data["image_size"] = self.image_size
        return data
