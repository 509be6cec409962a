"""
Treatment timelines generated by an LLM from a treatment name and patient factors.
"""

from sophera.timeline.models import PatientFactors, TimelinePhase, TreatmentTimeline
from sophera.timeline.service import TimelineGenerationError, generate_timeline

__all__ = [
    "PatientFactors",
    "TimelineGenerationError",
    "TimelinePhase",
    "TreatmentTimeline",
    "generate_timeline",
]
