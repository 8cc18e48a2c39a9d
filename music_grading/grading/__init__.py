"""
Grading Core Module.

Bounds propagation, path resolution, grade application, aggregation,
normalization and the polymorphic tree codec.
"""

from music_grading.grading.aggregator import aggregate, check_grades, missing_grades
from music_grading.grading.applier import GradeApplier, apply_grades
from music_grading.grading.bounds import BoundsPropagator, check_bounds, propagate_bounds
from music_grading.grading.codec import (
    decode_definition,
    decode_graded,
    decode_method,
    decode_rating,
    decode_show,
    encode_definition,
    encode_graded,
    encode_method,
    encode_rating,
    encode_show,
    show_method,
    to_definition,
    to_show,
)
from music_grading.grading.normalizer import normalize, scale_grade
from music_grading.grading.resolver import iter_leaf_paths, locate, resolve, resolve_leaf

__all__ = [
    "BoundsPropagator",
    "GradeApplier",
    "aggregate",
    "apply_grades",
    "check_bounds",
    "check_grades",
    "decode_definition",
    "decode_graded",
    "decode_method",
    "decode_rating",
    "decode_show",
    "encode_definition",
    "encode_graded",
    "encode_method",
    "encode_rating",
    "encode_show",
    "iter_leaf_paths",
    "locate",
    "missing_grades",
    "normalize",
    "propagate_bounds",
    "resolve",
    "resolve_leaf",
    "scale_grade",
    "show_method",
    "to_definition",
    "to_show",
]
