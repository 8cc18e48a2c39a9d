"""
Polymorphic codec for component trees.

Every node is written with a ``componentType`` discriminator (``grade`` or
``block``) so it decodes to the right variant. Three tree shapes share the
convention:

- definition: author input (bounds, step, sub-components, actions)
- show: possible bounds and step, for rendering a method to a rater
- graded: bounded tree plus the optional current grade of every node

Grading methods and ratings are encoded as documents for the storage
collaborator. Method documents keep only the definition shape; bounds are
re-derived on load.
"""

import math
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from music_grading.errors import MalformedTree
from music_grading.grading.aggregator import check_grades
from music_grading.grading.bounds import DEFAULT_TOLERANCE_RATIO, check_bounds, propagate_bounds
from music_grading.models import (
    BlockComponent,
    BlockDefinition,
    BlockView,
    ComponentDefinition,
    GradableComponent,
    GradedComponent,
    GradeDefinition,
    GradeView,
    GradingMethod,
    Rating,
    ShowComponent,
)

_DEFINITION_ADAPTER = TypeAdapter(ComponentDefinition)
_SHOW_ADAPTER = TypeAdapter(ShowComponent)
_GRADED_ADAPTER = TypeAdapter(GradedComponent)

Document = dict[str, Any]


def _dump(model: BaseModel) -> Document:
    return model.model_dump(mode="json", by_alias=True)


def _validation_details(error: ValidationError) -> list[str]:
    details = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"]) or "<root>"
        details.append(f"{location}: {err['msg']}")
    return details


def _decode(adapter: TypeAdapter[Any], data: Any, shape: str) -> Any:
    try:
        return adapter.validate_python(data)
    except ValidationError as e:
        raise MalformedTree(f"Invalid {shape} tree", _validation_details(e)) from e


# ==============================================================================
# Shape Conversions
# ==============================================================================


def to_definition(node: GradableComponent) -> ComponentDefinition:
    """Strip derived bounds from a bounded tree."""
    if isinstance(node, BlockComponent):
        return BlockDefinition(
            name=node.name,
            sub_components=tuple(to_definition(c) for c in node.components),
            actions=node.actions,
        )
    return GradeDefinition(
        name=node.name,
        description=node.description,
        min_grade=node.min_grade,
        max_grade=node.max_grade,
        step_amount=node.step_amount,
    )


def to_show(node: GradableComponent) -> ShowComponent:
    """Build the show view of a bounded tree."""
    if isinstance(node, BlockComponent):
        return BlockView(
            name=node.name,
            components=tuple(to_show(c) for c in node.components),
            actions=node.actions,
            min_possible_grade=node.min_possible_grade,
            max_possible_grade=node.max_possible_grade,
        )
    return GradeView(
        name=node.name,
        description=node.description,
        step_amount=node.step_amount,
        min_possible_grade=node.min_possible_grade,
        max_possible_grade=node.max_possible_grade,
    )


# ==============================================================================
# Tree Shapes
# ==============================================================================


def encode_definition(node: ComponentDefinition | GradableComponent) -> Document:
    """Encode a definition tree (bounded trees are stripped first)."""
    if isinstance(node, (GradeDefinition, BlockDefinition)):
        return _dump(node)
    return _dump(to_definition(node))


def decode_definition(data: Any) -> ComponentDefinition:
    """
    Decode a definition tree.

    Raises:
        MalformedTree: On unknown discriminators, missing or extra fields.
    """
    return _decode(_DEFINITION_ADAPTER, data, "definition")


def encode_show(node: ShowComponent | GradableComponent) -> Document:
    """Encode a show tree (bounded trees are converted first)."""
    if isinstance(node, (GradeView, BlockView)):
        return _dump(node)
    return _dump(to_show(node))


def decode_show(data: Any) -> ShowComponent:
    """
    Decode a show tree.

    Raises:
        MalformedTree: On unknown discriminators, missing or extra fields.
    """
    return _decode(_SHOW_ADAPTER, data, "show")


def encode_graded(node: GradedComponent) -> Document:
    """Encode a graded tree."""
    return _dump(node)


def decode_graded(
    data: Any, tolerance_ratio: float = DEFAULT_TOLERANCE_RATIO
) -> GradedComponent:
    """
    Decode a graded tree and check that its grades agree with its bounds.

    Raises:
        MalformedTree: On unknown discriminators, missing or extra fields,
            or grades and bounds that contradict each other.
    """
    tree = _decode(_GRADED_ADAPTER, data, "graded")
    _check_graded(tree, tolerance_ratio, "Inconsistent graded tree")
    return tree


def _check_graded(tree: GradedComponent, tolerance_ratio: float, message: str) -> None:
    issues = check_bounds(tree) + check_grades(tree, tolerance_ratio)
    if issues:
        raise MalformedTree(message, issues)


# ==============================================================================
# Documents
# ==============================================================================


def encode_method(method: GradingMethod) -> Document:
    """Encode a grading method as a storage document."""
    return {
        "id": str(method.id),
        "name": method.name,
        "creatorId": method.creator_id,
        "createdAt": method.created_at.isoformat(),
        "isPublic": method.is_public,
        "root": encode_definition(method.root),
    }


def decode_method(
    document: Any, tolerance_ratio: float = DEFAULT_TOLERANCE_RATIO
) -> GradingMethod:
    """
    Decode a grading method document, re-deriving bounds from its definition.

    Raises:
        MalformedTree: If the document or its tree is ill-formed.
        InvalidDefinition: If the stored tree violates a tree invariant.
    """
    if not isinstance(document, dict) or "root" not in document:
        raise MalformedTree("Grading method document must be an object with a 'root' tree")

    definition = decode_definition(document["root"])
    if not isinstance(definition, BlockDefinition):
        raise MalformedTree("Grading method root must be a block")

    root = propagate_bounds(definition, tolerance_ratio)
    fields = {key: value for key, value in document.items() if key != "root"}
    try:
        return GradingMethod.model_validate({**fields, "root": root})
    except ValidationError as e:
        raise MalformedTree("Invalid grading method document", _validation_details(e)) from e


def show_method(method: GradingMethod) -> Document:
    """Render a grading method for raters: metadata plus the show tree."""
    root = to_show(method.root)
    return {
        "id": str(method.id),
        "name": method.name,
        "creatorId": method.creator_id,
        "createdAt": method.created_at.isoformat(),
        "isPublic": method.is_public,
        "components": [_dump(c) for c in root.components],
        "actions": list(root.actions),
        "minPossibleGrade": method.min_possible_grade,
        "maxPossibleGrade": method.max_possible_grade,
    }


def encode_rating(rating: Rating) -> Document:
    """Encode a rating, including its derived overall and normalized grades."""
    return _dump(rating)


def decode_rating(
    document: Any, tolerance_ratio: float = DEFAULT_TOLERANCE_RATIO
) -> Rating:
    """
    Decode a rating document. Derived grades in the document are ignored.

    The graded tree must be consistent and the snapshot bounds must match
    the bounds of its root.

    Raises:
        MalformedTree: If the document or its graded tree is ill-formed.
    """
    try:
        rating = Rating.model_validate(document)
    except ValidationError as e:
        raise MalformedTree("Invalid rating document", _validation_details(e)) from e

    _check_graded(rating.grade, tolerance_ratio, "Inconsistent rating document")

    root = rating.grade
    if not (
        math.isclose(rating.min_possible_grade, root.min_possible_grade)
        and math.isclose(rating.max_possible_grade, root.max_possible_grade)
    ):
        raise MalformedTree(
            "Inconsistent rating document",
            [
                f"snapshot bounds [{rating.min_possible_grade}, {rating.max_possible_grade}] "
                f"differ from the root bounds "
                f"[{root.min_possible_grade}, {root.max_possible_grade}]"
            ],
        )
    return rating
