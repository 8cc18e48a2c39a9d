"""
Error taxonomy for grading methods and ratings.

Every failure raised by the package derives from ``GradingError``. All of
them are deterministic for a given input: retrying without changing the
input never helps.
"""

from uuid import UUID


class GradingError(Exception):
    """Base class for all grading failures."""


# ==============================================================================
# Definition Errors
# ==============================================================================


class InvalidDefinition(GradingError):
    """Raised when an authored component tree is malformed."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


# ==============================================================================
# Path Resolution Errors
# ==============================================================================


class PathError(GradingError):
    """Base class for failures tied to one component path."""

    def __init__(self, message: str, path: str):
        self.path = path
        super().__init__(f"'{path}': {message}")


class ComponentNotFound(PathError):
    """Raised when a path does not lead to any component."""

    def __init__(self, path: str, message: str = "no component at this path"):
        super().__init__(message, path)


class AmbiguousPath(PathError):
    """Raised when a path leads to more than one component."""

    def __init__(self, path: str, message: str = "path matches more than one component"):
        super().__init__(message, path)


class NotALeaf(PathError):
    """Raised when a grade is addressed to a block instead of a grade."""

    def __init__(self, path: str):
        super().__init__("component is a block, not a grade", path)


# ==============================================================================
# Grade Application Errors
# ==============================================================================


class OutOfRange(PathError):
    """Raised when a value lies outside the grade's declared bounds."""

    def __init__(self, path: str, value: float, min_grade: float, max_grade: float):
        self.value = value
        self.min_grade = min_grade
        self.max_grade = max_grade
        super().__init__(f"value {value} is outside [{min_grade}, {max_grade}]", path)


class InvalidStep(PathError):
    """Raised when a value is not on the grade's step lattice."""

    def __init__(self, path: str, value: float, min_grade: float, step_amount: float):
        self.value = value
        self.min_grade = min_grade
        self.step_amount = step_amount
        super().__init__(
            f"value {value} is not {min_grade} plus a multiple of {step_amount}", path
        )


# ==============================================================================
# Normalization / Rating Errors
# ==============================================================================


class DegenerateRange(GradingError):
    """Raised when normalizing against bounds with zero width."""

    def __init__(self, min_possible: float, max_possible: float):
        self.min_possible = min_possible
        self.max_possible = max_possible
        super().__init__(
            f"Cannot normalize: possible grade range [{min_possible}, {max_possible}] is empty"
        )


class IncompleteRating(GradingError):
    """Raised when a rating without an overall grade is finalized."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            "Rating is incomplete, missing grades for: " + ", ".join(missing)
        )


# ==============================================================================
# Codec Errors
# ==============================================================================


class MalformedTree(GradingError):
    """Raised when a document cannot be decoded into a component tree."""

    def __init__(self, message: str, details: list[str] | None = None):
        self.details = details or []
        if self.details:
            message = message + ":\n" + "\n".join(f"  - {d}" for d in self.details)
        super().__init__(message)


# ==============================================================================
# Storage / Lifecycle Errors
# ==============================================================================


class MethodAlreadyExists(GradingError):
    """Raised when storing a grading method under an id that is taken."""

    def __init__(self, method_id: UUID):
        self.method_id = method_id
        super().__init__(f"Grading method {method_id} already exists")


class GradingMethodNotFound(GradingError):
    """Raised when no grading method has the requested id."""

    def __init__(self, method_id: UUID):
        self.method_id = method_id
        super().__init__(f"Grading method {method_id} not found")


class RatingNotFound(GradingError):
    """Raised when no rating has the requested id."""

    def __init__(self, rating_id: UUID):
        self.rating_id = rating_id
        super().__init__(f"Rating {rating_id} not found")


class MethodInUse(GradingError):
    """Raised when editing a grading method that ratings already reference."""

    def __init__(self, method_id: UUID, rating_count: int):
        self.method_id = method_id
        self.rating_count = rating_count
        super().__init__(
            f"Grading method {method_id} is referenced by {rating_count} rating(s) "
            "and can no longer be edited"
        )
