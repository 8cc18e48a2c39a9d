"""
Pytest configuration and fixtures.

Provides common test fixtures for all test modules.
"""

import json
import tempfile
from pathlib import Path
from typing import Any, Generator

import pytest

from music_grading.config import Settings
from music_grading.grading import propagate_bounds
from music_grading.models import (
    BlockComponent,
    BlockDefinition,
    GradeDefinition,
    GradingMethodDefinition,
)
from music_grading.service import GradingService
from music_grading.storage import InMemoryGradingMethodStorage, InMemoryRatingStorage


# ==============================================================================
# Directory Fixtures
# ==============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ==============================================================================
# Definition Fixtures
# ==============================================================================


@pytest.fixture
def song_definition() -> BlockDefinition:
    """Block "Song" with Lyrics (0-10, step 1) and Melody (0-5, step 0.5)."""
    return BlockDefinition(
        name="Song",
        sub_components=(
            GradeDefinition(name="Lyrics", min_grade=0.0, max_grade=10.0, step_amount=1.0),
            GradeDefinition(name="Melody", min_grade=0.0, max_grade=5.0, step_amount=0.5),
        ),
    )


@pytest.fixture
def song_tree(song_definition: BlockDefinition) -> BlockComponent:
    """Bounded tree for the song definition."""
    return propagate_bounds(song_definition)


@pytest.fixture
def album_definition() -> BlockDefinition:
    """Album method nested four levels deep."""
    return BlockDefinition(
        name="Album",
        actions=("Add",),
        sub_components=(
            BlockDefinition(
                name="ProductionBlock",
                actions=("Add",),
                sub_components=(
                    GradeDefinition(
                        name="Vocals",
                        description="Performance and processing of the vocals",
                        min_grade=1.0,
                        max_grade=10.0,
                        step_amount=1.0,
                    ),
                    BlockDefinition(
                        name="Mix",
                        sub_components=(
                            GradeDefinition(name="Bass", min_grade=0.0, max_grade=5.0, step_amount=0.5),
                            GradeDefinition(name="Drums", min_grade=0.0, max_grade=5.0, step_amount=0.5),
                        ),
                    ),
                ),
            ),
            GradeDefinition(name="Lyrics", min_grade=0.0, max_grade=10.0, step_amount=1.0),
        ),
    )


@pytest.fixture
def album_tree(album_definition: BlockDefinition) -> BlockComponent:
    """Bounded tree for the album definition."""
    return propagate_bounds(album_definition)


@pytest.fixture
def song_method_definition(song_definition: BlockDefinition) -> GradingMethodDefinition:
    """Grading method submission built from the song definition."""
    return GradingMethodDefinition(
        name="Song",
        is_public=True,
        components=song_definition.sub_components,
    )


@pytest.fixture
def song_method_document() -> dict[str, Any]:
    """The song method submission as a JSON document."""
    return {
        "name": "Song",
        "isPublic": True,
        "components": [
            {
                "componentType": "grade",
                "name": "Lyrics",
                "minGrade": 0,
                "maxGrade": 10,
                "stepAmount": 1,
            },
            {
                "componentType": "grade",
                "name": "Melody",
                "minGrade": 0,
                "maxGrade": 5,
                "stepAmount": 0.5,
            },
        ],
        "actions": ["Add"],
    }


# ==============================================================================
# Settings / Service Fixtures
# ==============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with explicit values."""
    return Settings(
        step_tolerance_ratio=1e-6,
        normalized_min=0.0,
        normalized_max=1.0,
        display_scale_min=1.0,
        display_scale_max=10.0,
        display_scale_step=1.0,
        log_level="WARNING",
    )


@pytest.fixture
def method_storage() -> InMemoryGradingMethodStorage:
    return InMemoryGradingMethodStorage()


@pytest.fixture
def rating_storage() -> InMemoryRatingStorage:
    return InMemoryRatingStorage()


@pytest.fixture
def service(
    method_storage: InMemoryGradingMethodStorage,
    rating_storage: InMemoryRatingStorage,
    test_settings: Settings,
) -> GradingService:
    """Grading service over empty in-memory stores."""
    return GradingService(method_storage, rating_storage, test_settings)


# ==============================================================================
# File Fixtures
# ==============================================================================


@pytest.fixture
def song_method_file(temp_dir: Path, song_method_document: dict[str, Any]) -> Path:
    """Write the song method submission to a JSON file."""
    file_path = temp_dir / "song.json"
    file_path.write_text(json.dumps(song_method_document), encoding="utf-8")
    return file_path


@pytest.fixture
def song_inputs_file(temp_dir: Path) -> Path:
    """Write a complete grade input batch for the song method."""
    file_path = temp_dir / "inputs.json"
    file_path.write_text(
        json.dumps(
            [
                {"componentPath": "Song.Lyrics", "value": 8},
                {"componentPath": "Song.Melody", "value": 3.5},
            ]
        ),
        encoding="utf-8",
    )
    return file_path
