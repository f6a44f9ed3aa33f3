"""Escalating in-cycle nudges between guidance solicitations.

Within each feedback cycle of F iterations, the policy warns the model as
it nears the point where a human will be asked for guidance:

    F = 10:  S = 8 -> warn, S = 9 -> hit limit, S = 10 -> nothing
             (the cycle boundary itself is handled by guidance solicitation)

Thresholds are floor(f1 * F), floor(f2 * F) and F - 1. When they collide
(small F) the hit-limit message wins.
"""

import math
from dataclasses import dataclass

DEFAULT_THRESHOLD_FRACTIONS = (0.8, 0.9)

NEARING_LIMIT_MESSAGE = (
    "You are nearing the limit of attempts before a human is asked for help. "
    "If you have enough context, write the edit blocks now. Otherwise focus "
    "your remaining tool calls on the specific code you still need."
)
HIT_LIMIT_MESSAGE = (
    "You have hit the limit of attempts without producing edit blocks. "
    "Write the edit blocks now with the context you already have, or ask for "
    "help if you are truly stuck."
)


def threshold_message_for_counter(
    feedback_every: int,
    since_last: int,
    fractions: tuple[float, float] = DEFAULT_THRESHOLD_FRACTIONS,
) -> tuple[str, bool]:
    """Decide whether to nudge the model this iteration.

    Args:
        feedback_every: Feedback cadence F
        since_last: Iterations since the last feedback or edit block S
        fractions: Cycle fractions for the two warning thresholds

    Returns:
        (message, should_inject); message is empty when should_inject is False
    """
    if feedback_every <= 1 or since_last == 0:
        return "", False

    remainder = since_last % feedback_every
    if remainder == 0:
        return "", False

    warn_first = math.floor(fractions[0] * feedback_every)
    warn_second = math.floor(fractions[1] * feedback_every)
    hit_limit = feedback_every - 1

    def in_cycle(threshold: int) -> bool:
        return 1 <= threshold < feedback_every

    if in_cycle(hit_limit) and remainder == hit_limit:
        return HIT_LIMIT_MESSAGE, True
    if in_cycle(warn_second) and remainder == warn_second:
        return NEARING_LIMIT_MESSAGE, True
    if in_cycle(warn_first) and remainder == warn_first:
        return NEARING_LIMIT_MESSAGE, True
    return "", False


@dataclass(frozen=True)
class ThresholdPolicy:
    """Threshold policy with configurable cycle fractions."""

    fractions: tuple[float, float] = DEFAULT_THRESHOLD_FRACTIONS

    def message_for(self, feedback_every: int, since_last: int) -> tuple[str, bool]:
        return threshold_message_for_counter(feedback_every, since_last, self.fractions)
