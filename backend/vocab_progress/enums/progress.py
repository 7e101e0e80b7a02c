"""
Review Progress Enums

Defines enums for SM-2 review scheduling, mastery classification,
and the learning methods recorded with each review.
"""

from enum import Enum


class MasteryLevel(str, Enum):
    """
    Coarse mastery label derived from repetitions and ease factor.

    Set from the repetition thresholds after each successful recall; a
    failed review leaves the label as it was (see mastery.classify):
    - NEW → LEARNING (first successful recall)
    - LEARNING → FAMILIAR (3 consecutive recalls)
    - FAMILIAR → MASTERED (5 consecutive recalls with ease ≥ 2.5)
    - any label → LEARNING on the first recall after a failed review
    """

    NEW = "NEW"
    LEARNING = "LEARNING"
    FAMILIAR = "FAMILIAR"
    MASTERED = "MASTERED"


class LearningMethod(str, Enum):
    """How the item was presented when the learner rated it."""

    FLASHCARD = "FLASHCARD"
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    RHYME = "RHYME"
    MNEMONIC = "MNEMONIC"
    ETYMOLOGY = "ETYMOLOGY"
    QUIZ = "QUIZ"
    WRITING = "WRITING"
