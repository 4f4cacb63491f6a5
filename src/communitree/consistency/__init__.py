"""Consistency validation and repair."""

from communitree.consistency.validator import (
    ConsistencyIssue,
    ConsistencyValidator,
    DanglingThreadReference,
    RepairSummary,
    ScoreOutOfBounds,
    UnknownParticipants,
    UnknownRsvpUsers,
    ValidationReport,
    apply_repair,
)

__all__ = [
    "ConsistencyIssue",
    "ConsistencyValidator",
    "DanglingThreadReference",
    "RepairSummary",
    "ScoreOutOfBounds",
    "UnknownParticipants",
    "UnknownRsvpUsers",
    "ValidationReport",
    "apply_repair",
]
