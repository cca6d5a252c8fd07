"""Orchestration layer - design status state machine and lifecycle manager."""

from src.orchestration.lifecycle import SubmissionLifecycleManager
from src.orchestration.state_machine import can_transition, valid_transitions
from src.kernel.models.design import DesignStatus

__all__ = [
    "SubmissionLifecycleManager",
    "can_transition",
    "valid_transitions",
    "DesignStatus",
]
