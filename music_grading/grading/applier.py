"""
Grade application.

Applies a batch of ``(path, value)`` inputs to the grades of a bounded
tree and produces a new graded tree. The batch is atomic: every input is
validated before anything is built, so one bad input fails the whole batch.
"""

import math
from typing import Iterable, Sequence

from loguru import logger

from music_grading.errors import InvalidStep, OutOfRange
from music_grading.grading.bounds import DEFAULT_TOLERANCE_RATIO, nearest_step
from music_grading.grading.resolver import resolve_leaf
from music_grading.models import (
    BlockComponent,
    GradableComponent,
    GradedBlock,
    GradedComponent,
    GradedGrade,
    GradeComponent,
    GradeInput,
)


class GradeApplier:
    """
    Validates grade inputs and builds graded trees.

    Ensures:
    1. Every path resolves to exactly one grade
    2. Every value lies within the grade's declared bounds
    3. Every value sits on the grade's step lattice
    4. Later inputs for the same grade override earlier ones
    """

    def __init__(self, tolerance_ratio: float = DEFAULT_TOLERANCE_RATIO):
        self._tolerance_ratio = tolerance_ratio

    def apply(
        self, root: GradableComponent, inputs: Sequence[GradeInput]
    ) -> GradedComponent:
        """
        Apply a batch of inputs to a bounded tree.

        Args:
            root: Root of the bounded (definition) tree. It is never modified.
            inputs: Ordered batch of grade inputs.

        Returns:
            A new graded tree. Grades without input have no current grade.

        Raises:
            ComponentNotFound: If a path does not resolve.
            AmbiguousPath: If a path resolves to more than one component.
            NotALeaf: If a path resolves to a block.
            OutOfRange: If a value lies outside its grade's bounds.
            InvalidStep: If a value is not on its grade's step lattice.
        """
        values: dict[tuple[int, ...], float] = {}

        for grade_input in inputs:
            resolved = resolve_leaf(root, grade_input.component_path)
            value = self._validate_value(resolved.node, grade_input.component_path, grade_input.value)
            values[resolved.indices] = value
            logger.debug(
                "Accepted grade {} for '{}'", value, resolved.canonical_path
            )

        return self._build(root, (), values)

    def _validate_value(self, grade: GradeComponent, path: str, value: float) -> float:
        """
        Check a value against a grade and snap it onto the step lattice.

        Returns:
            ``min_grade + k * step_amount`` for the step index ``k`` of the value.
        """
        if not math.isfinite(value) or value < grade.min_grade or value > grade.max_grade:
            raise OutOfRange(path, value, grade.min_grade, grade.max_grade)

        k = nearest_step(value - grade.min_grade, grade.step_amount, self._tolerance_ratio)
        if k is None:
            raise InvalidStep(path, value, grade.min_grade, grade.step_amount)

        return min(grade.min_grade + k * grade.step_amount, grade.max_grade)

    def _build(
        self,
        node: GradableComponent,
        indices: tuple[int, ...],
        values: dict[tuple[int, ...], float],
    ) -> GradedComponent:
        if isinstance(node, BlockComponent):
            return GradedBlock(
                name=node.name,
                components=tuple(
                    self._build(child, indices + (i,), values)
                    for i, child in enumerate(node.components)
                ),
                actions=node.actions,
                min_possible_grade=node.min_possible_grade,
                max_possible_grade=node.max_possible_grade,
            )

        return GradedGrade(
            name=node.name,
            description=node.description,
            min_grade=node.min_grade,
            max_grade=node.max_grade,
            step_amount=node.step_amount,
            min_possible_grade=node.min_possible_grade,
            max_possible_grade=node.max_possible_grade,
            current_grade=values.get(indices),
        )


def apply_grades(
    root: GradableComponent,
    inputs: Iterable[GradeInput | tuple[str, float]],
    tolerance_ratio: float = DEFAULT_TOLERANCE_RATIO,
) -> GradedComponent:
    """
    Apply grade inputs to a bounded tree.

    Convenience wrapper around ``GradeApplier`` that also accepts plain
    ``(path, value)`` pairs.
    """
    batch = [
        item
        if isinstance(item, GradeInput)
        else GradeInput(component_path=item[0], value=item[1])
        for item in inputs
    ]
    return GradeApplier(tolerance_ratio).apply(root, batch)
