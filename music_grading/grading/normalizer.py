"""
Normalization of overall grades.

Maps an absolute grade onto a canonical scale ([0, 1] unless configured
otherwise) using the possible-grade bounds of a rating snapshot.
"""

from music_grading.errors import DegenerateRange


def normalize(
    overall_grade: float,
    min_possible: float,
    max_possible: float,
    scale: tuple[float, float] = (0.0, 1.0),
) -> float:
    """
    Normalize an overall grade.

    Args:
        overall_grade: Grade to normalize.
        min_possible: Lowest grade the method can produce.
        max_possible: Highest grade the method can produce.
        scale: Target ``(low, high)`` interval.

    Returns:
        ``low + (overall - min) / (max - min) * (high - low)``.

    Raises:
        DegenerateRange: If ``max_possible == min_possible``.
    """
    if max_possible == min_possible:
        raise DegenerateRange(min_possible, max_possible)

    low, high = scale
    fraction = (overall_grade - min_possible) / (max_possible - min_possible)
    return low + fraction * (high - low)


def scale_grade(
    normalized: float,
    low: float = 1.0,
    high: float = 10.0,
    step: float = 1.0,
) -> float:
    """
    Project a [0, 1] normalized grade onto a display scale, rounded to ``step``.

    With the defaults a normalized grade of 0.7667 becomes 8 on a 1-10 scale.
    """
    value = low + normalized * (high - low)
    rounded = low + round((value - low) / step) * step
    return max(low, min(high, rounded))
