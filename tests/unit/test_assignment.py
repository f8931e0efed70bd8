from __future__ import annotations

import pytest

from lead_import.models.config_models import AssignmentConfig, AssignmentMode, TeamMember
from lead_import.services.assignment import AssignmentConfigError, OwnerAssigner

ANA = TeamMember("u1", "Ana")
BEN = TeamMember("u2", "Ben")


def test_unassigned_returns_none():
    assigner = OwnerAssigner(AssignmentConfig())
    assert assigner.next_owner() is None


def test_specific_user():
    assigner = OwnerAssigner(AssignmentConfig(AssignmentMode.SPECIFIC_USER, (ANA,)))
    assert [assigner.next_owner() for _ in range(3)] == [ANA, ANA, ANA]


def test_round_robin_cycles_in_order():
    assigner = OwnerAssigner(AssignmentConfig(AssignmentMode.ROUND_ROBIN, (ANA, BEN)))
    assert [assigner.next_owner() for _ in range(5)] == [ANA, BEN, ANA, BEN, ANA]


def test_specific_user_requires_exactly_one():
    with pytest.raises(AssignmentConfigError, match="exactly one"):
        OwnerAssigner(AssignmentConfig(AssignmentMode.SPECIFIC_USER, ()))
    with pytest.raises(AssignmentConfigError):
        OwnerAssigner(AssignmentConfig(AssignmentMode.SPECIFIC_USER, (ANA, BEN)))


def test_round_robin_requires_members():
    with pytest.raises(AssignmentConfigError, match="Round Robin"):
        OwnerAssigner(AssignmentConfig(AssignmentMode.ROUND_ROBIN, ()))
