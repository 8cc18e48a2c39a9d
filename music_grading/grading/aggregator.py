"""
Grade aggregation.

Rolls leaf grades up a graded tree. A block's grade is the sum of its
children's grades and exists only when every child has one; absence
propagates upward and is never replaced by a default.
"""

import math

from loguru import logger

from music_grading.grading.bounds import (
    DEFAULT_TOLERANCE_RATIO,
    join_path,
    nearest_step,
    sum_grades,
)
from music_grading.models import GradedBlock, GradedComponent


def aggregate(node: GradedComponent) -> GradedComponent:
    """
    Compute every block's current grade in one post-order pass.

    Block grades already present are recomputed from the leaves, so
    aggregating an aggregated tree returns an equal tree.

    Args:
        node: Root of a graded tree.

    Returns:
        A new graded tree with block grades filled in where possible.
    """
    result = _aggregate(node)
    logger.debug("Aggregated '{}' to {}", result.name, result.current_grade)
    return result


def _aggregate(node: GradedComponent) -> GradedComponent:
    if not isinstance(node, GradedBlock):
        return node

    children = tuple(_aggregate(child) for child in node.components)
    grades = [child.current_grade for child in children]
    total = None if any(g is None for g in grades) else sum_grades(grades)

    return node.model_copy(update={"components": children, "current_grade": total})


def missing_grades(node: GradedComponent) -> list[str]:
    """List the paths of every grade that has no current grade yet."""
    missing: list[str] = []

    def visit(current: GradedComponent, parent_path: str) -> None:
        path = join_path(parent_path, current.name)
        if isinstance(current, GradedBlock):
            for child in current.components:
                visit(child, path)
        elif current.current_grade is None:
            missing.append(path)

    visit(node, "")
    return missing


def check_grades(
    node: GradedComponent,
    tolerance_ratio: float = DEFAULT_TOLERANCE_RATIO,
    tolerance: float = 1e-9,
) -> list[str]:
    """
    Check that the current grades of a graded tree agree with its bounds.

    Grades must lie within their declared bounds and on their step lattice,
    and every block grade must be the sum of its children's grades (absent
    exactly when a child grade is absent).

    Args:
        node: Root of a graded tree.
        tolerance_ratio: Allowed distance from the step lattice, as a
            fraction of the step.
        tolerance: Allowed absolute error of block sums.

    Returns:
        Paths and descriptions of every inconsistent node. Empty when the
        tree is consistent.
    """
    issues: list[str] = []

    def visit(current: GradedComponent, parent_path: str) -> None:
        path = join_path(parent_path, current.name)
        grade = current.current_grade

        if isinstance(current, GradedBlock):
            for child in current.components:
                visit(child, path)
            grades = [child.current_grade for child in current.components]
            expected = None if any(g is None for g in grades) else sum_grades(grades)
            if expected is None or grade is None:
                if expected is not grade:
                    issues.append(f"{path}: current_grade {grade} != {expected}")
            elif not math.isclose(grade, expected, rel_tol=tolerance, abs_tol=tolerance):
                issues.append(f"{path}: current_grade {grade} != {expected}")
            return

        if (current.min_possible_grade, current.max_possible_grade) != (
            current.min_grade,
            current.max_grade,
        ):
            issues.append(f"{path}: possible bounds differ from the grade bounds")
        if not all(
            math.isfinite(v) for v in (current.min_grade, current.max_grade, current.step_amount)
        ):
            issues.append(f"{path}: grade bounds and step must be finite numbers")
            return
        if not current.step_amount > 0:
            issues.append(f"{path}: step_amount must be positive, got {current.step_amount}")
            return
        if grade is None:
            return
        if not math.isfinite(grade) or not current.min_grade <= grade <= current.max_grade:
            issues.append(
                f"{path}: current_grade {grade} is outside "
                f"[{current.min_grade}, {current.max_grade}]"
            )
        elif nearest_step(grade - current.min_grade, current.step_amount, tolerance_ratio) is None:
            issues.append(
                f"{path}: current_grade {grade} is off the step {current.step_amount}"
            )

    visit(node, "")
    return issues
