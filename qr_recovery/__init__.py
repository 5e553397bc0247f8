"""qr_recovery package: multi-strategy QR code recovery and damage
assessment as a standard importable package."""

from .modules.damage import DamageAssessor, assess
from .modules.image_toolkit import InvalidImageError
from .modules.models import DamageLevel, DamageReport, RecoveryResult
from .modules.pipeline import RecoveryPipeline, recover, recover_bytes

__all__ = [
    "DamageAssessor",
    "DamageLevel",
    "DamageReport",
    "InvalidImageError",
    "RecoveryPipeline",
    "RecoveryResult",
    "assess",
    "recover",
    "recover_bytes",
]
__version__ = "0.1.0"
