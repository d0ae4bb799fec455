"""Check-in flow state machine."""

from .orchestrator import (
    CheckInError,
    CheckInOrchestrator,
    CheckInStep,
    MissingPhotoError,
    NoPendingAnalysisError,
)

__all__ = [
    "CheckInError",
    "CheckInOrchestrator",
    "CheckInStep",
    "MissingPhotoError",
    "NoPendingAnalysisError",
]
