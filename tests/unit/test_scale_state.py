"""Unit tests for the scale state holder."""

import pytest

from mdmath.contexts.rendering import Scale, ScaleState


@pytest.mark.unit
def test_defaults_are_one():
    assert ScaleState().snapshot() == Scale(internal=1, dynamic=1)


@pytest.mark.unit
def test_updates_are_independent():
    state = ScaleState()

    state.set_dynamic(2)
    state.set_internal(1.5)
    state.set_dynamic(3)

    assert state.snapshot() == Scale(internal=1.5, dynamic=3)


@pytest.mark.unit
def test_snapshot_is_not_affected_by_later_updates():
    state = ScaleState()
    before = state.snapshot()

    state.set_internal(2)

    assert before.internal == 1
    assert state.snapshot().internal == 2
