from __future__ import annotations

from lead_import.models.config_models import AssignmentConfig, AssignmentMode, TeamMember

"""Ownership assignment for created records."""

__all__ = [
    "AssignmentConfigError",
    "OwnerAssigner",
]


class AssignmentConfigError(Exception):
    """Assignment mode is missing the members it requires."""


class OwnerAssigner:
    """Hands out owners for newly created records.

    next_owner() is called once per *created* record only, so the round-robin
    cursor never moves for updates. Validation happens in __init__ so that a
    bad configuration fails before any write is attempted.
    """

    def __init__(self, config: AssignmentConfig) -> None:
        if config.mode is AssignmentMode.SPECIFIC_USER and len(config.members) != 1:
            raise AssignmentConfigError("Please select exactly one user for assignment.")
        if config.mode is AssignmentMode.ROUND_ROBIN and not config.members:
            raise AssignmentConfigError("Please select at least one user for Round Robin distribution.")
        self.mode = config.mode
        self.members = config.members
        self._cursor = 0

    def next_owner(self) -> TeamMember | None:
        if self.mode is AssignmentMode.UNASSIGNED:
            return None
        if self.mode is AssignmentMode.SPECIFIC_USER:
            return self.members[0]
        member = self.members[self._cursor % len(self.members)]
        self._cursor += 1
        return member
