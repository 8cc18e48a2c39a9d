"""
Unit tests for grade application.

Tests value validation, last-write-wins batches and atomic failure.
"""

import math

import pytest

from music_grading.errors import ComponentNotFound, InvalidStep, NotALeaf, OutOfRange
from music_grading.grading import GradeApplier, apply_grades, propagate_bounds
from music_grading.models import (
    BlockComponent,
    GradeDefinition,
    GradedBlock,
    GradedGrade,
    GradeInput,
)


def _leaf_grades(node) -> dict[str, float | None]:
    if isinstance(node, GradedBlock):
        grades: dict[str, float | None] = {}
        for child in node.components:
            grades.update(_leaf_grades(child))
        return grades
    return {node.name: node.current_grade}


class TestGradeApplier:
    """Tests for applying valid inputs."""

    def test_apply_song_grades(self, song_tree: BlockComponent) -> None:
        """Test both grades of the song receive their values."""
        graded = GradeApplier().apply(
            song_tree,
            [
                GradeInput(component_path="Song.Lyrics", value=8.0),
                GradeInput(component_path="Song.Melody", value=3.5),
            ],
        )

        assert isinstance(graded, GradedBlock)
        assert _leaf_grades(graded) == {"Lyrics": 8.0, "Melody": 3.5}

    def test_blocks_are_not_aggregated(self, song_tree: BlockComponent) -> None:
        """Test application leaves block grades to the aggregator."""
        graded = apply_grades(song_tree, [("Lyrics", 8.0), ("Melody", 3.5)])

        assert graded.current_grade is None

    def test_graded_tree_keeps_bounds(self, album_tree: BlockComponent) -> None:
        """Test the graded tree carries the bounded tree's bounds and actions."""
        graded = apply_grades(album_tree, [])

        assert graded.min_possible_grade == album_tree.min_possible_grade
        assert graded.max_possible_grade == album_tree.max_possible_grade
        assert graded.actions == ("Add",)
        vocals = graded.components[0].components[0]
        assert vocals.description == "Performance and processing of the vocals"

    def test_unset_grades_stay_absent(self, song_tree: BlockComponent) -> None:
        """Test grades without input have no current grade."""
        graded = apply_grades(song_tree, [("Song.Lyrics", 8.0)])

        assert _leaf_grades(graded) == {"Lyrics": 8.0, "Melody": None}

    def test_last_write_wins(self, song_tree: BlockComponent) -> None:
        """Test later inputs for one grade override earlier ones."""
        graded = apply_grades(
            song_tree,
            [("Song.Lyrics", 8.0), ("Lyrics", 6.0), ("Song.Lyrics", 7.0)],
        )

        assert _leaf_grades(graded)["Lyrics"] == 7.0

    def test_bounds_are_inclusive(self, song_tree: BlockComponent) -> None:
        """Test the declared min and max are valid values."""
        graded = apply_grades(song_tree, [("Lyrics", 0.0), ("Melody", 5.0)])

        assert _leaf_grades(graded) == {"Lyrics": 0.0, "Melody": 5.0}

    def test_integer_values(self, song_tree: BlockComponent) -> None:
        """Test whole numbers are accepted as grade values."""
        graded = apply_grades(song_tree, [("Lyrics", 8)])

        assert _leaf_grades(graded)["Lyrics"] == 8

    def test_value_is_snapped_to_step(self) -> None:
        """Test a value within tolerance of the lattice is accepted."""
        grade = propagate_bounds(
            GradeDefinition(name="Fine", min_grade=0.0, max_grade=1.0, step_amount=0.1)
        )

        graded = apply_grades(grade, [("Fine", 0.3)])

        assert isinstance(graded, GradedGrade)
        assert graded.current_grade == pytest.approx(0.3)

    def test_offset_lattice(self) -> None:
        """Test the lattice starts at min_grade, not at zero."""
        grade = propagate_bounds(
            GradeDefinition(name="Offset", min_grade=0.5, max_grade=3.5, step_amount=1.0)
        )

        assert apply_grades(grade, [("Offset", 2.5)]).current_grade == 2.5

        with pytest.raises(InvalidStep):
            apply_grades(grade, [("Offset", 2.0)])

    def test_bounded_tree_is_not_modified(self, song_tree: BlockComponent) -> None:
        """Test application builds a new tree."""
        before = song_tree.model_copy(deep=True)

        apply_grades(song_tree, [("Lyrics", 8.0), ("Melody", 3.5)])

        assert song_tree == before

    def test_independent_applications(self, song_tree: BlockComponent) -> None:
        """Test two ratings of one tree do not share state."""
        first = apply_grades(song_tree, [("Lyrics", 8.0)])
        second = apply_grades(song_tree, [("Lyrics", 2.0)])

        assert _leaf_grades(first)["Lyrics"] == 8.0
        assert _leaf_grades(second)["Lyrics"] == 2.0


class TestInvalidInputs:
    """Tests for rejected inputs."""

    def test_off_step_value(self, song_tree: BlockComponent) -> None:
        """Test 8.3 is not a multiple of step 1."""
        with pytest.raises(InvalidStep) as exc_info:
            apply_grades(song_tree, [("Song.Lyrics", 8.3)])

        assert exc_info.value.path == "Song.Lyrics"
        assert exc_info.value.step_amount == 1.0

    def test_off_half_step_value(self, song_tree: BlockComponent) -> None:
        """Test 3.25 is not a multiple of step 0.5."""
        with pytest.raises(InvalidStep):
            apply_grades(song_tree, [("Song.Melody", 3.25)])

    @pytest.mark.parametrize("value", [-1.0, 10.5, 11.0])
    def test_out_of_range(self, song_tree: BlockComponent, value: float) -> None:
        """Test values outside [min_grade, max_grade]."""
        with pytest.raises(OutOfRange) as exc_info:
            apply_grades(song_tree, [("Song.Lyrics", value)])

        assert exc_info.value.value == value
        assert (exc_info.value.min_grade, exc_info.value.max_grade) == (0.0, 10.0)

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_values(self, song_tree: BlockComponent, value: float) -> None:
        """Test NaN and infinities are never valid grades."""
        with pytest.raises(OutOfRange):
            apply_grades(song_tree, [("Song.Lyrics", value)])

    def test_unknown_path(self, song_tree: BlockComponent) -> None:
        """Test an input for a missing component."""
        with pytest.raises(ComponentNotFound):
            apply_grades(song_tree, [("Song.Harmony", 1.0)])

    def test_block_path(self, album_tree: BlockComponent) -> None:
        """Test grades cannot be given to blocks."""
        with pytest.raises(NotALeaf):
            apply_grades(album_tree, [("Album.ProductionBlock", 5.0)])

    def test_batch_is_atomic(self, song_tree: BlockComponent) -> None:
        """Test one bad input fails the whole batch."""
        applier = GradeApplier()

        with pytest.raises(InvalidStep):
            applier.apply(
                song_tree,
                [
                    GradeInput(component_path="Lyrics", value=8.0),
                    GradeInput(component_path="Melody", value=3.3),
                ],
            )

        graded = applier.apply(song_tree, [GradeInput(component_path="Melody", value=3.5)])
        assert _leaf_grades(graded) == {"Lyrics": None, "Melody": 3.5}

    def test_invalid_value_is_rejected_even_if_overridden(self, song_tree: BlockComponent) -> None:
        """Test every input is validated, not only the winning one."""
        with pytest.raises(OutOfRange):
            apply_grades(song_tree, [("Lyrics", 42.0), ("Lyrics", 8.0)])

    def test_custom_tolerance(self, song_tree: BlockComponent) -> None:
        """Test the step tolerance is configurable."""
        graded = apply_grades(song_tree, [("Lyrics", 8.001)], tolerance_ratio=0.01)

        assert _leaf_grades(graded)["Lyrics"] == 8.0
