"""
Pipeline module - Session extraction and registration

Provides:
- PoseExtractor: per-frame detection with crop tracking
- Registrar: maps a complete session onto a target image
"""

from .extraction import PoseExtractor
from .registration import Registrar, RegistrationOutcome, RegistrationResult, rescale_session

__all__ = [
    "PoseExtractor",
    "Registrar",
    "RegistrationOutcome",
    "RegistrationResult",
    "rescale_session",
]
