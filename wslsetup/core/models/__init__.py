"""
Domain models — Pydantic types for setup runs.

All models are re-exported here for convenient access:

    from wslsetup.core.models import Profile, StepSpec, Action, Receipt
"""

from wslsetup.core.models.action import Action, Receipt
from wslsetup.core.models.profile import (
    AliasSpec,
    CompletionSpec,
    DetectRule,
    InstallMethod,
    Profile,
    ProfilePaths,
    ResolvedPaths,
    SectionSpec,
    StepSpec,
)

__all__ = [
    # action.py
    "Action",
    "AliasSpec",
    "CompletionSpec",
    "DetectRule",
    "InstallMethod",
    # profile.py
    "Profile",
    "ProfilePaths",
    "Receipt",
    "ResolvedPaths",
    "SectionSpec",
    "StepSpec",
]
