"""Tests for observation records."""

import pytest

from instructor_portal.domain.errors import ValidationError
from instructor_portal.domain.wrap_up import (
    CAPACITIES,
    Capacity,
    CapacityObservation,
    ObservationLevel,
    StudentObservations,
)


def test_build_defaults_to_not_observed() -> None:
    observations = StudentObservations.build("ana")

    assert len(observations.capacity_observations) == 6
    assert {o.level for o in observations.capacity_observations} == {
        ObservationLevel.NOT_OBSERVED
    }


def test_record_must_cover_each_capacity_once() -> None:
    five = tuple(
        CapacityObservation(capacity, ObservationLevel.STRONG)
        for capacity in CAPACITIES[:5]
    )
    with pytest.raises(ValidationError):
        StudentObservations(student_id="ana", capacity_observations=five)

    duplicated = (
        *five,
        CapacityObservation(Capacity.CURIOSITY, ObservationLevel.STRONG),
    )
    with pytest.raises(ValidationError):
        StudentObservations(student_id="ana", capacity_observations=duplicated)

    seven = (
        *five,
        CapacityObservation(Capacity.ADAPTABILITY, ObservationLevel.STRONG),
        CapacityObservation(Capacity.ADAPTABILITY, ObservationLevel.DEVELOPING),
    )
    with pytest.raises(ValidationError):
        StudentObservations(student_id="ana", capacity_observations=seven)


def test_with_level_returns_updated_copy() -> None:
    original = StudentObservations.build(
        "ana", {Capacity.FOCUS: ObservationLevel.DEVELOPING}, "Quiet today"
    )

    updated = original.with_level(Capacity.REASONING, ObservationLevel.STRONG)

    assert original.level_for(Capacity.REASONING) == ObservationLevel.NOT_OBSERVED
    assert updated.level_for(Capacity.REASONING) == ObservationLevel.STRONG
    assert updated.level_for(Capacity.FOCUS) == ObservationLevel.DEVELOPING
    assert updated.additional_notes == "Quiet today"
