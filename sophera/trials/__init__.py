"""
Saved clinical trials: trials a patient wants to follow up on.
"""

from sophera.trials.models import SavedTrial, SavedTrialCreate
from sophera.trials.repository import SavedTrialRepository

__all__ = ["SavedTrial", "SavedTrialCreate", "SavedTrialRepository"]
