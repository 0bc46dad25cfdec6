"""Public schema exports."""

from .auth import ConfirmRequest, LoginRequest, RefreshRequest, SignupRequest
from .marketplace import HireRequest
from .profile import ProfileUpdateRequest

__all__ = [
    "ConfirmRequest",
    "HireRequest",
    "LoginRequest",
    "ProfileUpdateRequest",
    "RefreshRequest",
    "SignupRequest",
]
