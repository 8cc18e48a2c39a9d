"""
Base classes for grading storage.

Defines the abstract interfaces the grading service persists through. The
service only stores and fetches whole grading methods and ratings; any
querying or transactional behavior belongs to the implementation.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from music_grading.models import GradingMethod, Rating


class GradingMethodStorage(ABC):
    """Abstract store for grading method definitions."""

    @abstractmethod
    def create(self, method: GradingMethod) -> None:
        """
        Persist a new grading method.

        Args:
            method: The grading method to store.

        Raises:
            MethodAlreadyExists: If a method with the same id is stored.
        """
        ...

    @abstractmethod
    def get_by_id(self, method_id: UUID) -> GradingMethod:
        """
        Fetch a grading method.

        Raises:
            GradingMethodNotFound: If no method has this id.
        """
        ...

    @abstractmethod
    def list_public(self) -> list[GradingMethod]:
        """Return every public grading method, oldest first."""
        ...

    @abstractmethod
    def list_by_creator(self, user_id: str) -> list[GradingMethod]:
        """Return every grading method created by a user, oldest first."""
        ...

    @abstractmethod
    def update(self, method: GradingMethod) -> None:
        """
        Replace a stored grading method in place.

        Raises:
            GradingMethodNotFound: If no method has this id.
        """
        ...

    @abstractmethod
    def delete(self, method_id: UUID) -> None:
        """
        Delete a grading method.

        Raises:
            GradingMethodNotFound: If no method has this id.
        """
        ...


class RatingStorage(ABC):
    """Abstract store for ratings."""

    @abstractmethod
    def save(self, rating: Rating) -> None:
        """Persist a rating. Saving the same rating id twice replaces it."""
        ...

    @abstractmethod
    def get_by_id(self, rating_id: UUID) -> Rating:
        """
        Fetch a rating.

        Raises:
            RatingNotFound: If no rating has this id.
        """
        ...

    @abstractmethod
    def list_by_user(self, user_id: str) -> list[Rating]:
        ...

    @abstractmethod
    def list_by_item(self, item_id: str) -> list[Rating]:
        ...

    @abstractmethod
    def list_by_method(self, method_id: UUID) -> list[Rating]:
        """Return every rating made through a grading method."""
        ...
