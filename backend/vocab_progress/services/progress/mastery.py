"""Mastery label classification from repetition count and ease factor."""

from vocab_progress.enums import MasteryLevel

MASTERED_MIN_REPETITIONS = 5
MASTERED_MIN_EASE_FACTOR = 2.5
FAMILIAR_MIN_REPETITIONS = 3
LEARNING_MIN_REPETITIONS = 1


def classify(
    repetitions: int,
    ease_factor: float,
    current: MasteryLevel = MasteryLevel.NEW,
) -> MasteryLevel:
    """
    Derive the mastery label after a review.

    Labels follow the repetition thresholds on every review. Only a reset
    to zero repetitions keeps the current label, so a forgotten MASTERED
    item keeps its label until the next successful recall, which makes
    it LEARNING again.
    """
    if repetitions >= MASTERED_MIN_REPETITIONS and ease_factor >= MASTERED_MIN_EASE_FACTOR:
        return MasteryLevel.MASTERED
    if repetitions >= FAMILIAR_MIN_REPETITIONS:
        return MasteryLevel.FAMILIAR
    if repetitions >= LEARNING_MIN_REPETITIONS:
        return MasteryLevel.LEARNING
    return current
