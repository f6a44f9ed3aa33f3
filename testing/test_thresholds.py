"""Unit tests for the in-cycle threshold nudges."""

import pytest

from workflows.edit_code.thresholds import (
    HIT_LIMIT_MESSAGE,
    NEARING_LIMIT_MESSAGE,
    ThresholdPolicy,
    threshold_message_for_counter,
)


class TestThresholdMessageForCounter:
    """Tests for threshold_message_for_counter()."""

    def test_sweep_cadence_ten(self):
        """F=10: warn at 8, hit limit at 9, nothing elsewhere."""
        fired = {}
        for since_last in range(1, 10):
            message, should_inject = threshold_message_for_counter(10, since_last)
            if should_inject:
                fired[since_last] = message

        assert fired == {8: NEARING_LIMIT_MESSAGE, 9: HIT_LIMIT_MESSAGE}

    def test_collision_hit_limit_wins(self):
        """F=2 collapses every threshold to 1; the hit-limit message wins."""
        message, should_inject = threshold_message_for_counter(2, 1)

        assert should_inject
        assert message == HIT_LIMIT_MESSAGE

    @pytest.mark.parametrize("feedback_every", [-1, 0, 1])
    def test_small_cadence_never_fires(self, feedback_every):
        for since_last in range(0, 5):
            assert threshold_message_for_counter(feedback_every, since_last) == ("", False)

    @pytest.mark.parametrize("feedback_every", [2, 3, 6, 10])
    def test_zero_counter_never_fires(self, feedback_every):
        assert threshold_message_for_counter(feedback_every, 0) == ("", False)

    @pytest.mark.parametrize("feedback_every", [2, 3, 6, 10])
    def test_cycle_boundary_never_fires(self, feedback_every):
        """The boundary itself belongs to guidance solicitation."""
        for cycle in range(1, 4):
            message, should_inject = threshold_message_for_counter(feedback_every, cycle * feedback_every)
            assert not should_inject
            assert message == ""

    def test_repeats_in_later_cycles(self):
        assert threshold_message_for_counter(10, 18) == (NEARING_LIMIT_MESSAGE, True)
        assert threshold_message_for_counter(10, 19) == (HIT_LIMIT_MESSAGE, True)

    def test_cadence_three(self):
        """F=3: t1=t2=2=t3, so 2 hits the limit and 1 is quiet."""
        assert threshold_message_for_counter(3, 1) == ("", False)
        assert threshold_message_for_counter(3, 2) == (HIT_LIMIT_MESSAGE, True)


class TestThresholdPolicy:
    """Tests for configurable fractions."""

    def test_default_fractions(self):
        policy = ThresholdPolicy()

        assert policy.message_for(10, 8) == (NEARING_LIMIT_MESSAGE, True)
        assert policy.message_for(10, 7) == ("", False)

    def test_alternate_fractions(self):
        """0.7/0.8 warns at 7 and 8 for F=10."""
        policy = ThresholdPolicy(fractions=(0.7, 0.8))

        assert policy.message_for(10, 7) == (NEARING_LIMIT_MESSAGE, True)
        assert policy.message_for(10, 8) == (NEARING_LIMIT_MESSAGE, True)
        assert policy.message_for(10, 9) == (HIT_LIMIT_MESSAGE, True)
        assert policy.message_for(10, 6) == ("", False)
