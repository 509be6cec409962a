"""
Treatment tracking: regimens with side-effect and effectiveness logs.
"""

from sophera.treatments.models import (
    EffectivenessEntry,
    SideEffectEntry,
    Treatment,
    TreatmentCreate,
    TreatmentUpdate,
)
from sophera.treatments.repository import TreatmentRepository

__all__ = [
    "EffectivenessEntry",
    "SideEffectEntry",
    "Treatment",
    "TreatmentCreate",
    "TreatmentRepository",
    "TreatmentUpdate",
]
