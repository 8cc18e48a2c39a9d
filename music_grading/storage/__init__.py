"""
Storage Module.

Collaborator contracts for persisting grading methods and ratings, with
in-memory document stores implementing them.
"""

from music_grading.storage.base import GradingMethodStorage, RatingStorage
from music_grading.storage.memory import InMemoryGradingMethodStorage, InMemoryRatingStorage

__all__ = [
    "GradingMethodStorage",
    "InMemoryGradingMethodStorage",
    "InMemoryRatingStorage",
    "RatingStorage",
]
