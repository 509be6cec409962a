"""
Patient profile: identity, diagnosis details and preferences.
"""

from sophera.users.models import ProfileUpdate, UserProfile
from sophera.users.repository import UserNotFoundError, UserRepository

__all__ = ["ProfileUpdate", "UserNotFoundError", "UserProfile", "UserRepository"]
