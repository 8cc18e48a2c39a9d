"""
Grading service - the use-case orchestrator.

Creates, shows, edits and deletes grading methods, and turns grade inputs
into rating snapshots. All tree work is delegated to the pure functions of
``music_grading.grading``; this layer only wires them to storage.
Authorization (for example "only the creator may delete") is left to the
caller.
"""

from typing import Iterable, Sequence
from uuid import UUID

from loguru import logger

from music_grading.config import Settings, get_settings
from music_grading.errors import IncompleteRating, InvalidDefinition, MethodInUse
from music_grading.grading import (
    aggregate,
    apply_grades,
    missing_grades,
    normalize,
    propagate_bounds,
    scale_grade,
    show_method,
)
from music_grading.models import (
    BlockComponent,
    GradeComponent,
    GradeInput,
    GradingMethod,
    GradingMethodDefinition,
    GradingMethodSummary,
    Rating,
    RatingOverview,
)
from music_grading.storage import GradingMethodStorage, RatingStorage

BASIC_GRADE_NAME = "basicRating"


class GradingService:
    """
    Main entry point for grading methods and ratings.

    Definition trees are validated and bounded once, at creation or edit
    time. Each rating works on a fresh graded tree, so concurrent raters of
    one method never share mutable state.
    """

    def __init__(
        self,
        method_storage: GradingMethodStorage,
        rating_storage: RatingStorage,
        settings: Settings | None = None,
    ):
        """
        Initialize the grading service.

        Args:
            method_storage: Store for grading methods.
            rating_storage: Store for ratings.
            settings: Configuration settings. Uses global settings if not provided.
        """
        self._methods = method_storage
        self._ratings = rating_storage
        self._settings = settings or get_settings()

    # ==========================================================================
    # Grading Methods
    # ==========================================================================

    def build_method(
        self, definition: GradingMethodDefinition, creator_id: str
    ) -> GradingMethod:
        """
        Validate a submission and build an unsaved grading method.

        Raises:
            InvalidDefinition: If the submitted tree is malformed.
        """
        root = propagate_bounds(definition.to_root(), self._settings.step_tolerance_ratio)
        if not isinstance(root, BlockComponent):
            raise InvalidDefinition("Grading method root must be a block", definition.name)

        return GradingMethod(
            name=definition.name,
            creator_id=creator_id,
            is_public=definition.is_public,
            root=root,
        )

    def create_method(
        self, definition: GradingMethodDefinition, creator_id: str
    ) -> GradingMethod:
        """
        Create and store a grading method.

        Args:
            definition: The user's submission.
            creator_id: Opaque id of the creating user.

        Returns:
            The stored grading method.

        Raises:
            InvalidDefinition: If the submitted tree is malformed.
        """
        try:
            method = self.build_method(definition, creator_id)
        except InvalidDefinition as e:
            logger.warning("Rejected grading method '{}': {}", definition.name, e)
            raise

        self._methods.create(method)
        logger.info(
            "Created grading method '{}' ({}) for {}", method.name, method.id, creator_id
        )
        return method

    def get_method(self, method_id: UUID) -> GradingMethod:
        return self._methods.get_by_id(method_id)

    def show(self, method_id: UUID) -> dict:
        """Return the show document of a grading method."""
        return show_method(self._methods.get_by_id(method_id))

    def list_public_methods(self) -> list[GradingMethodSummary]:
        return [GradingMethodSummary.from_method(m) for m in self._methods.list_public()]

    def list_methods_by_creator(self, user_id: str) -> list[GradingMethodSummary]:
        return [GradingMethodSummary.from_method(m) for m in self._methods.list_by_creator(user_id)]

    def update_method(
        self, method_id: UUID, definition: GradingMethodDefinition
    ) -> GradingMethod:
        """
        Replace a grading method's tree, name and visibility in place.

        A method can only be edited while no rating references it; ratings
        keep their own bound snapshots either way.

        Raises:
            GradingMethodNotFound: If the method does not exist.
            MethodInUse: If ratings already reference the method.
            InvalidDefinition: If the submitted tree is malformed.
        """
        existing = self._methods.get_by_id(method_id)

        rating_count = len(self._ratings.list_by_method(method_id))
        if rating_count:
            logger.warning(
                "Refused edit of grading method {}: {} rating(s) reference it",
                method_id,
                rating_count,
            )
            raise MethodInUse(method_id, rating_count)

        rebuilt = self.build_method(definition, existing.creator_id)
        updated = rebuilt.model_copy(update={"id": existing.id, "created_at": existing.created_at})

        self._methods.update(updated)
        logger.info("Updated grading method '{}' ({})", updated.name, updated.id)
        return updated

    def publish_method(self, method_id: UUID) -> GradingMethod:
        return self._set_visibility(method_id, True)

    def unpublish_method(self, method_id: UUID) -> GradingMethod:
        return self._set_visibility(method_id, False)

    def _set_visibility(self, method_id: UUID, is_public: bool) -> GradingMethod:
        method = self._methods.get_by_id(method_id)
        if method.is_public == is_public:
            return method
        updated = method.model_copy(update={"is_public": is_public})
        self._methods.update(updated)
        logger.info("Grading method {} is now {}", method_id, "public" if is_public else "private")
        return updated

    def delete_method(self, method_id: UUID) -> None:
        """
        Delete a grading method. Existing ratings keep their snapshots.

        Raises:
            GradingMethodNotFound: If the method does not exist.
        """
        self._methods.delete(method_id)
        logger.info("Deleted grading method {}", method_id)

    # ==========================================================================
    # Ratings
    # ==========================================================================

    def grade(
        self,
        method: GradingMethod,
        inputs: Iterable[GradeInput | tuple[str, float]],
        item_id: str,
        item_type: str,
        user_id: str,
    ) -> Rating:
        """
        Apply and aggregate grade inputs against a grading method.

        Pure: nothing is stored.

        Raises:
            ComponentNotFound, AmbiguousPath, NotALeaf, OutOfRange, InvalidStep:
                If any input is invalid. No input of the batch is applied.
        """
        graded = aggregate(
            apply_grades(method.root, inputs, self._settings.step_tolerance_ratio)
        )
        return Rating(
            grading_method_id=method.id,
            item_id=item_id,
            item_type=item_type,
            user_id=user_id,
            grade=graded,
            min_possible_grade=method.min_possible_grade,
            max_possible_grade=method.max_possible_grade,
        )

    def rate(
        self,
        method_id: UUID,
        inputs: Sequence[GradeInput | tuple[str, float]],
        item_id: str,
        item_type: str,
        user_id: str,
        draft: bool = False,
    ) -> Rating:
        """
        Rate an item with a stored grading method and save the rating.

        Args:
            method_id: Grading method to rate with.
            inputs: Ordered grade inputs; the last input for a grade wins.
            item_id: Rated track or album.
            item_type: Kind of the rated item.
            user_id: Opaque id of the rating user.
            draft: Save the rating even if some grades are still missing.

        Returns:
            The saved rating.

        Raises:
            GradingMethodNotFound: If the method does not exist.
            IncompleteRating: If grades are missing and ``draft`` is False.
            ComponentNotFound, AmbiguousPath, NotALeaf, OutOfRange, InvalidStep:
                If any input is invalid.
        """
        log = logger.bind(method_id=str(method_id), item_id=item_id, user_id=user_id)

        method = self._methods.get_by_id(method_id)
        rating = self.grade(method, inputs, item_id, item_type, user_id)

        if not rating.is_complete and not draft:
            missing = missing_grades(rating.grade)
            log.warning(
                "Rejected incomplete rating of {} by {}: {} grade(s) missing",
                item_id,
                user_id,
                len(missing),
            )
            raise IncompleteRating(missing)

        self._ratings.save(rating)
        log.info(
            "Saved {}rating {} of {} by {} (overall={})",
            "draft " if not rating.is_complete else "",
            rating.rating_id,
            item_id,
            user_id,
            rating.overall_grade,
        )
        return rating

    def rate_simple(
        self, value: float, item_id: str, item_type: str, user_id: str
    ) -> Rating:
        """
        Rate an item with a single grade instead of a grading method.

        The grade uses the configured basic bounds (1 to 10 in steps of 1
        by default).

        Raises:
            OutOfRange, InvalidStep: If the value does not fit the basic grade.
        """
        basic = GradeComponent(
            name=BASIC_GRADE_NAME,
            min_grade=self._settings.basic_grade_min,
            max_grade=self._settings.basic_grade_max,
            step_amount=self._settings.basic_grade_step,
            min_possible_grade=self._settings.basic_grade_min,
            max_possible_grade=self._settings.basic_grade_max,
        )
        graded = apply_grades(
            basic, [(BASIC_GRADE_NAME, value)], self._settings.step_tolerance_ratio
        )
        rating = Rating(
            item_id=item_id,
            item_type=item_type,
            user_id=user_id,
            grade=graded,
            min_possible_grade=basic.min_possible_grade,
            max_possible_grade=basic.max_possible_grade,
        )
        self._ratings.save(rating)
        logger.info("Saved simple rating {} of {} by {}", rating.rating_id, item_id, user_id)
        return rating

    def get_rating(self, rating_id: UUID) -> Rating:
        return self._ratings.get_by_id(rating_id)

    def list_ratings_by_user(self, user_id: str) -> list[RatingOverview]:
        return [RatingOverview.from_rating(r) for r in self._ratings.list_by_user(user_id)]

    def list_ratings_by_item(self, item_id: str) -> list[RatingOverview]:
        return [RatingOverview.from_rating(r) for r in self._ratings.list_by_item(item_id)]

    def display_grade(self, rating: Rating) -> float | None:
        """
        Map a rating onto the configured display scale (1-10 by default).

        Returns:
            The display grade, or None while the rating is incomplete.
        """
        if rating.normalized_grade is None:
            return None
        return scale_grade(
            rating.normalized_grade,
            self._settings.display_scale_min,
            self._settings.display_scale_max,
            self._settings.display_scale_step,
        )

    def normalized_grade(self, rating: Rating) -> float | None:
        """
        Normalize a rating onto the configured canonical scale.

        Always uses the rating's own snapshot bounds.
        """
        if rating.overall_grade is None:
            return None
        return normalize(
            rating.overall_grade,
            rating.min_possible_grade,
            rating.max_possible_grade,
            (self._settings.normalized_min, self._settings.normalized_max),
        )
