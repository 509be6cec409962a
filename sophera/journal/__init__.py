"""
Daily journal logs: free text plus mood, energy, sleep and pain scores.
"""

from sophera.journal.models import JournalLog, JournalLogCreate, JournalLogUpdate
from sophera.journal.repository import JournalLogRepository

__all__ = ["JournalLog", "JournalLogCreate", "JournalLogRepository", "JournalLogUpdate"]
