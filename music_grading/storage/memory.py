"""
In-memory document stores.

Objects are kept as encoded documents, the way a document database would
hold them, and decoded on every read. Grading method bounds are therefore
re-derived from the stored definition each time a method is loaded.
"""

import threading
from typing import Any, Callable
from uuid import UUID

from loguru import logger

from music_grading.errors import GradingMethodNotFound, MethodAlreadyExists, RatingNotFound
from music_grading.grading.bounds import DEFAULT_TOLERANCE_RATIO
from music_grading.grading.codec import decode_method, decode_rating, encode_method, encode_rating
from music_grading.models import GradingMethod, Rating
from music_grading.storage.base import GradingMethodStorage, RatingStorage

Document = dict[str, Any]


class InMemoryGradingMethodStorage(GradingMethodStorage):
    """Thread-safe, process-local grading method store."""

    def __init__(self, tolerance_ratio: float = DEFAULT_TOLERANCE_RATIO):
        self._documents: dict[str, Document] = {}
        self._lock = threading.Lock()
        self._tolerance_ratio = tolerance_ratio

    def create(self, method: GradingMethod) -> None:
        key = str(method.id)
        with self._lock:
            if key in self._documents:
                raise MethodAlreadyExists(method.id)
            self._documents[key] = encode_method(method)
        logger.debug("Stored grading method {}", method.id)

    def get_by_id(self, method_id: UUID) -> GradingMethod:
        with self._lock:
            document = self._documents.get(str(method_id))
        if document is None:
            raise GradingMethodNotFound(method_id)
        return decode_method(document, self._tolerance_ratio)

    def list_public(self) -> list[GradingMethod]:
        return self._select(lambda doc: doc["isPublic"])

    def list_by_creator(self, user_id: str) -> list[GradingMethod]:
        return self._select(lambda doc: doc["creatorId"] == user_id)

    def update(self, method: GradingMethod) -> None:
        key = str(method.id)
        with self._lock:
            if key not in self._documents:
                raise GradingMethodNotFound(method.id)
            self._documents[key] = encode_method(method)

    def delete(self, method_id: UUID) -> None:
        with self._lock:
            if self._documents.pop(str(method_id), None) is None:
                raise GradingMethodNotFound(method_id)

    def is_empty(self) -> bool:
        with self._lock:
            return not self._documents

    def _select(self, predicate: Callable[[Document], bool]) -> list[GradingMethod]:
        with self._lock:
            documents = [doc for doc in self._documents.values() if predicate(doc)]
        methods = [decode_method(doc, self._tolerance_ratio) for doc in documents]
        return sorted(methods, key=lambda m: m.created_at)


class InMemoryRatingStorage(RatingStorage):
    """Thread-safe, process-local rating store."""

    def __init__(self, tolerance_ratio: float = DEFAULT_TOLERANCE_RATIO):
        self._documents: dict[str, Document] = {}
        self._lock = threading.Lock()
        self._tolerance_ratio = tolerance_ratio

    def save(self, rating: Rating) -> None:
        with self._lock:
            self._documents[str(rating.rating_id)] = encode_rating(rating)
        logger.debug("Stored rating {}", rating.rating_id)

    def get_by_id(self, rating_id: UUID) -> Rating:
        with self._lock:
            document = self._documents.get(str(rating_id))
        if document is None:
            raise RatingNotFound(rating_id)
        return decode_rating(document, self._tolerance_ratio)

    def list_by_user(self, user_id: str) -> list[Rating]:
        return self._select(lambda doc: doc["userId"] == user_id)

    def list_by_item(self, item_id: str) -> list[Rating]:
        return self._select(lambda doc: doc["itemId"] == item_id)

    def list_by_method(self, method_id: UUID) -> list[Rating]:
        return self._select(lambda doc: doc["gradingMethodId"] == str(method_id))

    def is_empty(self) -> bool:
        with self._lock:
            return not self._documents

    def _select(self, predicate: Callable[[Document], bool]) -> list[Rating]:
        with self._lock:
            documents = [doc for doc in self._documents.values() if predicate(doc)]
        ratings = [decode_rating(doc, self._tolerance_ratio) for doc in documents]
        return sorted(ratings, key=lambda r: r.created_at)
