"""
Pydantic models for the music grading system.

These models define the schemas for:
- Grading method definitions as authored by users
- Bounded component trees (grades and blocks with derived bounds)
- Show and graded views of those trees
- Ratings, grade inputs and list summaries

Component trees are tagged unions discriminated by ``component_type``
(``componentType`` on the wire), so every node decodes to its concrete
variant without external type hints. All models are immutable.
"""

from datetime import datetime, timezone
from typing import Annotated, Literal, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictStr,
    computed_field,
    model_validator,
)
from pydantic.alias_generators import to_camel

PATH_SEPARATOR = "."

_NODE_CONFIG = ConfigDict(
    frozen=True,
    extra="forbid",
    alias_generator=to_camel,
    populate_by_name=True,
)

_RECORD_CONFIG = ConfigDict(
    frozen=True,
    extra="ignore",
    alias_generator=to_camel,
    populate_by_name=True,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


ComponentName = Annotated[StrictStr, Field(min_length=1, max_length=200)]


# ==============================================================================
# Definition Shape (author input)
# ==============================================================================


class GradeDefinition(BaseModel):
    """
    A single numeric grade as authored by a user.

    Bounds and step are validated by the bounds propagator, not here, so
    that a structurally valid but semantically wrong tree reports
    ``InvalidDefinition`` rather than a decoding failure.
    """

    model_config = _NODE_CONFIG

    component_type: Literal["grade"] = "grade"
    name: ComponentName
    description: StrictStr | None = None
    min_grade: StrictFloat
    max_grade: StrictFloat
    step_amount: StrictFloat


class BlockDefinition(BaseModel):
    """A named group of sub-components as authored by a user."""

    model_config = _NODE_CONFIG

    component_type: Literal["block"] = "block"
    name: ComponentName
    sub_components: tuple["ComponentDefinition", ...] = ()
    actions: tuple[StrictStr, ...] = ()


ComponentDefinition = Annotated[
    Union[GradeDefinition, BlockDefinition],
    Field(discriminator="component_type"),
]


# ==============================================================================
# Bounded Tree (authoritative gradable components)
# ==============================================================================


class GradeComponent(BaseModel):
    """A leaf grade with its author bounds and derived possible bounds."""

    model_config = _NODE_CONFIG

    component_type: Literal["grade"] = "grade"
    name: ComponentName
    description: StrictStr | None = None
    min_grade: StrictFloat
    max_grade: StrictFloat
    step_amount: StrictFloat
    min_possible_grade: StrictFloat
    max_possible_grade: StrictFloat


class BlockComponent(BaseModel):
    """
    A composite grouping child components.

    ``min_possible_grade`` and ``max_possible_grade`` are the sums of the
    children's bounds; they are produced by the bounds propagator and never
    set by authors.
    """

    model_config = _NODE_CONFIG

    component_type: Literal["block"] = "block"
    name: ComponentName
    components: tuple["GradableComponent", ...]
    actions: tuple[StrictStr, ...] = ()
    min_possible_grade: StrictFloat
    max_possible_grade: StrictFloat


GradableComponent = Annotated[
    Union[GradeComponent, BlockComponent],
    Field(discriminator="component_type"),
]


# ==============================================================================
# Show Shape (rendering a method for rating)
# ==============================================================================


class GradeView(BaseModel):
    """Read-only view of a grade: bounds and the step a rater must respect."""

    model_config = _NODE_CONFIG

    component_type: Literal["grade"] = "grade"
    name: ComponentName
    description: StrictStr | None = None
    step_amount: StrictFloat
    min_possible_grade: StrictFloat
    max_possible_grade: StrictFloat


class BlockView(BaseModel):
    """Read-only view of a block."""

    model_config = _NODE_CONFIG

    component_type: Literal["block"] = "block"
    name: ComponentName
    components: tuple["ShowComponent", ...]
    actions: tuple[StrictStr, ...] = ()
    min_possible_grade: StrictFloat
    max_possible_grade: StrictFloat


ShowComponent = Annotated[
    Union[GradeView, BlockView],
    Field(discriminator="component_type"),
]


# ==============================================================================
# Graded Shape (a rating in progress or complete)
# ==============================================================================


class GradedGrade(BaseModel):
    """A leaf grade together with the value a rater gave it, if any."""

    model_config = _NODE_CONFIG

    component_type: Literal["grade"] = "grade"
    name: ComponentName
    description: StrictStr | None = None
    min_grade: StrictFloat
    max_grade: StrictFloat
    step_amount: StrictFloat
    min_possible_grade: StrictFloat
    max_possible_grade: StrictFloat
    current_grade: StrictFloat | None = None


class GradedBlock(BaseModel):
    """
    A block inside a graded tree.

    ``current_grade`` is only present once every child has a grade.
    """

    model_config = _NODE_CONFIG

    component_type: Literal["block"] = "block"
    name: ComponentName
    components: tuple["GradedComponent", ...]
    actions: tuple[StrictStr, ...] = ()
    min_possible_grade: StrictFloat
    max_possible_grade: StrictFloat
    current_grade: StrictFloat | None = None


GradedComponent = Annotated[
    Union[GradedGrade, GradedBlock],
    Field(discriminator="component_type"),
]


BlockDefinition.model_rebuild()
BlockComponent.model_rebuild()
BlockView.model_rebuild()
GradedBlock.model_rebuild()


def children_of(node: BaseModel) -> tuple[BaseModel, ...]:
    """Return the children of any tree node (empty for grades)."""
    if isinstance(node, BlockDefinition):
        return node.sub_components
    if isinstance(node, (BlockComponent, BlockView, GradedBlock)):
        return node.components
    return ()


def is_block(node: BaseModel) -> bool:
    """Check whether a tree node is a block in any of the tree shapes."""
    return getattr(node, "component_type", None) == "block"


# ==============================================================================
# Grading Method Models
# ==============================================================================


class GradingMethodDefinition(BaseModel):
    """
    A grading method submission.

    The top-level components become the children of a root block named
    after the method.
    """

    model_config = _RECORD_CONFIG

    name: ComponentName
    is_public: StrictBool = False
    components: tuple[ComponentDefinition, ...] = ()
    actions: tuple[StrictStr, ...] = ()

    def to_root(self) -> BlockDefinition:
        """Build the root block definition for this submission."""
        return BlockDefinition(
            name=self.name,
            sub_components=self.components,
            actions=self.actions,
        )


class GradingMethod(BaseModel):
    """A named, reusable tree of grading components."""

    model_config = _RECORD_CONFIG

    id: UUID = Field(default_factory=uuid4)
    name: ComponentName
    creator_id: StrictStr = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=_utcnow)
    is_public: StrictBool = False
    root: BlockComponent

    @computed_field  # type: ignore[prop-decorator]
    @property
    def min_possible_grade(self) -> float:
        """Lowest overall grade this method can produce."""
        return self.root.min_possible_grade

    @computed_field  # type: ignore[prop-decorator]
    @property
    def max_possible_grade(self) -> float:
        """Highest overall grade this method can produce."""
        return self.root.max_possible_grade


class GradingMethodSummary(BaseModel):
    """Listing entry for a grading method."""

    model_config = _RECORD_CONFIG

    id: UUID
    name: str
    creator_id: str
    created_at: datetime
    is_public: bool
    min_possible_grade: float
    max_possible_grade: float

    @classmethod
    def from_method(cls, method: GradingMethod) -> "GradingMethodSummary":
        return cls(
            id=method.id,
            name=method.name,
            creator_id=method.creator_id,
            created_at=method.created_at,
            is_public=method.is_public,
            min_possible_grade=method.min_possible_grade,
            max_possible_grade=method.max_possible_grade,
        )


# ==============================================================================
# Rating Models
# ==============================================================================


class GradeInput(BaseModel):
    """One ``{componentPath, value}`` item of a grade input batch."""

    model_config = _RECORD_CONFIG

    component_path: StrictStr = Field(..., min_length=1)
    value: StrictFloat


class Rating(BaseModel):
    """
    Immutable snapshot of a user's grading of one item.

    The possible-grade bounds are copied from the grading method when the
    rating is created, so later edits to the method never change how an
    existing rating normalizes.
    """

    model_config = _RECORD_CONFIG

    rating_id: UUID = Field(default_factory=uuid4)
    grading_method_id: UUID | None = None
    item_id: StrictStr = Field(..., min_length=1)
    item_type: StrictStr = Field(..., min_length=1)
    user_id: StrictStr = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=_utcnow)
    grade: GradedComponent
    min_possible_grade: StrictFloat
    max_possible_grade: StrictFloat

    @model_validator(mode="after")
    def validate_snapshot_bounds(self) -> "Rating":
        """Ensure the snapshot bounds describe a usable range."""
        if self.min_possible_grade >= self.max_possible_grade:
            raise ValueError(
                f"min_possible_grade ({self.min_possible_grade}) must be lower than "
                f"max_possible_grade ({self.max_possible_grade})"
            )
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def overall_grade(self) -> float | None:
        """The root grade, absent while the rating is incomplete."""
        return self.grade.current_grade

    @computed_field  # type: ignore[prop-decorator]
    @property
    def normalized_grade(self) -> float | None:
        """Overall grade mapped onto [0, 1] using the snapshot bounds."""
        from music_grading.grading.normalizer import normalize

        if self.overall_grade is None:
            return None
        return normalize(self.overall_grade, self.min_possible_grade, self.max_possible_grade)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_complete(self) -> bool:
        return self.overall_grade is not None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_complex(self) -> bool:
        """Whether the rating was made through a grading method."""
        return self.grading_method_id is not None


class RatingOverview(BaseModel):
    """Listing entry for a rating."""

    model_config = _RECORD_CONFIG

    rating_id: UUID
    grading_method_id: UUID | None
    item_id: str
    item_type: str
    user_id: str
    overall_grade: float | None
    normalized_grade: float | None
    min_possible_grade: float
    max_possible_grade: float

    @classmethod
    def from_rating(cls, rating: Rating) -> "RatingOverview":
        return cls(
            rating_id=rating.rating_id,
            grading_method_id=rating.grading_method_id,
            item_id=rating.item_id,
            item_type=rating.item_type,
            user_id=rating.user_id,
            overall_grade=rating.overall_grade,
            normalized_grade=rating.normalized_grade,
            min_possible_grade=rating.min_possible_grade,
            max_possible_grade=rating.max_possible_grade,
        )
