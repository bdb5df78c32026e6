"""SQLAlchemy models for the activation service."""

from .activation_code import ActivationCode
from .profile import Profile
from .activation_log import ActivationLog

__all__ = [
    "ActivationCode",
    "Profile",
    "ActivationLog",
]
