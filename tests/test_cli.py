"""
Integration tests for the command line interface.
"""

import json
import sys
from pathlib import Path
from typing import Any, Generator

import pytest
from loguru import logger
from typer.testing import CliRunner

from music_grading.config import get_settings
from music_grading.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_logging(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Run commands with quiet logging and restore the default sink afterwards."""
    monkeypatch.setenv("MUSIC_GRADING_LOG_LEVEL", "ERROR")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    logger.remove()
    logger.add(sys.stderr)


def _write(path: Path, data: Any) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestValidateCommand:
    """Tests for `music-grading validate`."""

    def test_valid_method(self, song_method_file: Path) -> None:
        """Test a valid method prints its bounds."""
        result = runner.invoke(app, ["validate", str(song_method_file)])

        assert result.exit_code == 0
        assert "Lyrics" in result.output
        assert "Grading method is valid" in result.output

    def test_invalid_step(self, temp_dir: Path, song_method_document: dict) -> None:
        """Test a step that does not divide the range fails validation."""
        song_method_document["components"][0]["stepAmount"] = 3
        path = _write(temp_dir / "bad.json", song_method_document)

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Invalid grading method" in result.output

    def test_unknown_component_type(self, temp_dir: Path, song_method_document: dict) -> None:
        """Test an unknown discriminator is reported."""
        song_method_document["components"][0]["componentType"] = "slider"
        path = _write(temp_dir / "bad.json", song_method_document)

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1

    def test_missing_file(self, temp_dir: Path) -> None:
        """Test a missing definition file."""
        result = runner.invoke(app, ["validate", str(temp_dir / "missing.json")])

        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_not_json(self, temp_dir: Path) -> None:
        """Test a file that is not JSON."""
        path = temp_dir / "song.json"
        path.write_text("not json", encoding="utf-8")

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1
        assert "not valid JSON" in result.output


class TestShowCommand:
    """Tests for `music-grading show`."""

    def test_show(self, song_method_file: Path) -> None:
        """Test the show document is printed as JSON."""
        result = runner.invoke(app, ["show", str(song_method_file)])

        assert result.exit_code == 0
        document = json.loads(result.output)
        assert document["name"] == "Song"
        assert document["maxPossibleGrade"] == 15.0
        assert document["components"][1]["stepAmount"] == 0.5


class TestRateCommand:
    """Tests for `music-grading rate`."""

    def test_rate(self, song_method_file: Path, song_inputs_file: Path) -> None:
        """Test the song example prints its overall grade."""
        result = runner.invoke(app, ["rate", str(song_method_file), str(song_inputs_file)])

        assert result.exit_code == 0
        assert "11.5" in result.output
        assert "0.7667" in result.output

    def test_rate_json(self, song_method_file: Path, song_inputs_file: Path) -> None:
        """Test --json prints the rating document."""
        result = runner.invoke(
            app,
            ["rate", str(song_method_file), str(song_inputs_file), "--json", "--item", "track-9"],
        )

        assert result.exit_code == 0
        document = json.loads(result.output)
        assert document["itemId"] == "track-9"
        assert document["overallGrade"] == 11.5
        assert document["grade"]["componentType"] == "block"

    def test_incomplete(self, temp_dir: Path, song_method_file: Path) -> None:
        """Test missing grades fail unless --draft is given."""
        inputs = _write(temp_dir / "partial.json", [{"componentPath": "Song.Lyrics", "value": 8}])

        result = runner.invoke(app, ["rate", str(song_method_file), str(inputs)])
        assert result.exit_code == 1
        assert "Song.Melody" in result.output

        result = runner.invoke(app, ["rate", str(song_method_file), str(inputs), "--draft"])
        assert result.exit_code == 0
        assert "Draft rating" in result.output

    def test_invalid_step(self, temp_dir: Path, song_method_file: Path) -> None:
        """Test an off-step value fails the command."""
        inputs = _write(temp_dir / "bad.json", [{"componentPath": "Song.Lyrics", "value": 8.3}])

        result = runner.invoke(app, ["rate", str(song_method_file), str(inputs)])

        assert result.exit_code == 1
        assert "Grading Error" in result.output

    def test_malformed_inputs(self, temp_dir: Path, song_method_file: Path) -> None:
        """Test an input file with the wrong shape."""
        inputs = _write(temp_dir / "bad.json", [{"path": "Song.Lyrics"}])

        result = runner.invoke(app, ["rate", str(song_method_file), str(inputs)])

        assert result.exit_code == 1
