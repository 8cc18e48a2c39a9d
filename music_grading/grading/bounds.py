"""
Bounds propagation for grading component trees.

Turns an authored definition tree into the authoritative bounded tree:
every grade keeps its author bounds, every block gets the elementwise sum
of its children's bounds. The authored tree is validated on the way, so a
bounded tree always satisfies the tree invariants.
"""

import math
from typing import Iterable, Sequence

from music_grading.errors import InvalidDefinition
from music_grading.models import (
    PATH_SEPARATOR,
    BlockComponent,
    BlockDefinition,
    ComponentDefinition,
    GradableComponent,
    GradeComponent,
    GradeDefinition,
    children_of,
    is_block,
)

DEFAULT_TOLERANCE_RATIO = 1e-6


def nearest_step(offset: float, step_amount: float, tolerance_ratio: float) -> int | None:
    """
    Return ``k`` when ``offset`` is ``k * step_amount`` within tolerance.

    Args:
        offset: Distance from the lower bound.
        step_amount: Quantization step (> 0).
        tolerance_ratio: Allowed error as a fraction of the step.

    Returns:
        The step index, or None if ``offset`` is off the lattice or the
        step count is not a finite number.
    """
    steps = offset / step_amount
    if not math.isfinite(steps):
        return None
    k = round(steps)
    if abs(steps - k) <= tolerance_ratio:
        return int(k)
    return None


def sum_grades(values: Iterable[float]) -> float:
    """
    Sum grades or bounds with a single rounding.

    Returns an infinite total instead of raising when finite values overflow.
    """
    values = list(values)
    try:
        return math.fsum(values)
    except OverflowError:
        return sum(values)


def join_path(parent: str, name: str) -> str:
    return f"{parent}{PATH_SEPARATOR}{name}" if parent else name


class BoundsPropagator:
    """
    Validates definition trees and derives possible-grade bounds.

    Checks:
    1. Names are non-empty and free of the path separator
    2. Grades have ``min_grade < max_grade`` and a positive step
    3. The step evenly divides the grade range
    4. Blocks have at least one child and unique child names
    """

    def __init__(self, tolerance_ratio: float = DEFAULT_TOLERANCE_RATIO):
        self._tolerance_ratio = tolerance_ratio

    def propagate(self, definition: ComponentDefinition) -> GradableComponent:
        """
        Build the bounded tree for a definition in one post-order pass.

        Args:
            definition: Root of the authored tree.

        Returns:
            The bounded tree.

        Raises:
            InvalidDefinition: If the tree violates any invariant.
        """
        return self._propagate(definition, "")

    def _propagate(self, node: ComponentDefinition, parent_path: str) -> GradableComponent:
        path = join_path(parent_path, node.name)
        self._check_name(node.name, path)

        if isinstance(node, GradeDefinition):
            return self._propagate_grade(node, path)
        if isinstance(node, BlockDefinition):
            return self._propagate_block(node, path)

        raise InvalidDefinition(f"Unsupported component type: {type(node).__name__}", path)

    def _propagate_grade(self, grade: GradeDefinition, path: str) -> GradeComponent:
        values = (grade.min_grade, grade.max_grade, grade.step_amount)
        if not all(math.isfinite(v) for v in values):
            raise InvalidDefinition("Grade bounds and step must be finite numbers", path)

        if grade.min_grade >= grade.max_grade:
            raise InvalidDefinition(
                f"min_grade ({grade.min_grade}) must be lower than max_grade ({grade.max_grade})",
                path,
            )

        if grade.step_amount <= 0:
            raise InvalidDefinition(f"step_amount must be positive, got {grade.step_amount}", path)

        span = grade.max_grade - grade.min_grade
        if not math.isfinite(span):
            raise InvalidDefinition("Grade range is too large to represent", path)

        if not math.isfinite(span / grade.step_amount):
            raise InvalidDefinition(
                f"step_amount ({grade.step_amount}) is too small for the range {span}", path
            )

        if nearest_step(span, grade.step_amount, self._tolerance_ratio) is None:
            raise InvalidDefinition(
                f"step_amount ({grade.step_amount}) does not evenly divide the range {span}",
                path,
            )

        return GradeComponent(
            name=grade.name,
            description=grade.description,
            min_grade=grade.min_grade,
            max_grade=grade.max_grade,
            step_amount=grade.step_amount,
            min_possible_grade=grade.min_grade,
            max_possible_grade=grade.max_grade,
        )

    def _propagate_block(self, block: BlockDefinition, path: str) -> BlockComponent:
        if not block.sub_components:
            raise InvalidDefinition("Block has no sub-components", path)

        self._check_unique_names([c.name for c in block.sub_components], path)

        children = tuple(self._propagate(child, path) for child in block.sub_components)

        min_possible = sum_grades(c.min_possible_grade for c in children)
        max_possible = sum_grades(c.max_possible_grade for c in children)
        if not (math.isfinite(min_possible) and math.isfinite(max_possible)):
            raise InvalidDefinition("Summed block bounds are too large to represent", path)

        return BlockComponent(
            name=block.name,
            components=children,
            actions=block.actions,
            min_possible_grade=min_possible,
            max_possible_grade=max_possible,
        )

    def _check_name(self, name: str, path: str) -> None:
        if not name.strip():
            raise InvalidDefinition("Component name is empty", path)
        if PATH_SEPARATOR in name:
            raise InvalidDefinition(
                f"Component name '{name}' must not contain '{PATH_SEPARATOR}'", path
            )

    def _check_unique_names(self, names: Sequence[str], path: str) -> None:
        seen: set[str] = set()
        duplicates: list[str] = []
        for name in names:
            if name in seen and name not in duplicates:
                duplicates.append(name)
            seen.add(name)
        if duplicates:
            raise InvalidDefinition(f"Duplicate component names: {duplicates}", path)


def propagate_bounds(
    definition: ComponentDefinition, tolerance_ratio: float = DEFAULT_TOLERANCE_RATIO
) -> GradableComponent:
    """
    Validate a definition tree and derive its bounds.

    Convenience wrapper around ``BoundsPropagator``.

    Raises:
        InvalidDefinition: If the tree violates any invariant.
    """
    return BoundsPropagator(tolerance_ratio).propagate(definition)


def check_bounds(component: GradableComponent, tolerance: float = 1e-9) -> list[str]:
    """
    Check the additive bounds invariant on an already bounded tree.

    Args:
        component: Root of a bounded or graded tree.
        tolerance: Allowed absolute error of the sums.

    Returns:
        Paths and descriptions of every block whose bounds are not the sum
        of its children's bounds. Empty when the invariant holds.
    """
    issues: list[str] = []

    def visit(node: GradableComponent, parent_path: str) -> None:
        path = join_path(parent_path, node.name)
        if not is_block(node):
            return
        children = children_of(node)
        for child in children:
            visit(child, path)
        expected_min = sum_grades(c.min_possible_grade for c in children)
        expected_max = sum_grades(c.max_possible_grade for c in children)
        if abs(node.min_possible_grade - expected_min) > tolerance:
            issues.append(f"{path}: min_possible_grade {node.min_possible_grade} != {expected_min}")
        if abs(node.max_possible_grade - expected_max) > tolerance:
            issues.append(f"{path}: max_possible_grade {node.max_possible_grade} != {expected_max}")

    visit(component, "")
    return issues
