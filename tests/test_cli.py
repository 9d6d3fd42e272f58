"""
Tests for the photoadjust command line interface.
"""

import json

import numpy as np
import pytest
from click.testing import CliRunner
from PIL import Image

from photoadjust.cli import main
from photoadjust.processing import AdjustmentKind, AdjustmentPipeline, AdjustmentState, EditImage


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def source_file(tmp_path, gradient_image):
    path = tmp_path / "source.png"
    gradient_image.save(path)
    return path


class TestListing:
    """Test informational commands."""

    def test_presets(self, runner):
        """All built-in presets are listed in order."""
        result = runner.invoke(main, ['presets'])
        assert result.exit_code == 0, result.output
        preset_lines = [line for line in result.output.splitlines() if "style=" in line]
        assert len(preset_lines) == 11
        assert preset_lines[0].startswith("Original")
        assert preset_lines[-1].startswith("Sepia")

    def test_adjustments(self, runner):
        """The catalog lists every kind with its range."""
        result = runner.invoke(main, ['adjustments'])
        assert result.exit_code == 0, result.output
        assert "warmth" in result.output
        assert "range=[-50, 50]" in result.output


class TestRender:
    """Test single-image rendering."""

    def test_render_preset(self, runner, tmp_path, source_file, gradient_image):
        """Rendering with a preset writes the output file."""
        output = tmp_path / "out.png"
        result = runner.invoke(main, ['render', str(source_file), str(output), '--preset', 'Mono'])

        assert result.exit_code == 0, result.output
        rendered = EditImage.open(output)
        assert rendered.size == gradient_image.size

    def test_render_with_settings_and_recipe(self, runner, tmp_path, source_file):
        """--set values are applied and --save-recipe records them."""
        output = tmp_path / "out.png"
        recipe_path = tmp_path / "edit.json"
        result = runner.invoke(main, [
            'render', str(source_file), str(output),
            '--preset', '富士NC', '--set', 'exposure=1.0', '--set', 'vignette=0.3',
            '--save-recipe', str(recipe_path),
        ])

        assert result.exit_code == 0, result.output
        data = json.loads(recipe_path.read_text(encoding='utf-8'))
        assert data['preset'] == '富士NC'
        assert data['adjustments']['exposure'] == 1.0
        assert data['adjustments']['vignette'] == 0.3
        assert data['adjustments']['shadows'] == 0.3

    def test_render_from_recipe_matches_direct_render(self, runner, tmp_path, source_file):
        """Replaying a recipe reproduces the same pixels."""
        recipe_path = tmp_path / "edit.json"
        recipe_path.write_text(json.dumps({'preset': 'Chrome', 'adjustments': {'warmth': 20}}))
        output = tmp_path / "out.png"

        result = runner.invoke(main, ['render', str(source_file), str(output), '--recipe', str(recipe_path)])
        assert result.exit_code == 0, result.output

        source = EditImage.open(source_file)
        expected = AdjustmentPipeline().render(
            source, 'Chrome', AdjustmentState({AdjustmentKind.WARMTH: 20})
        )
        rendered = EditImage.open(output)
        assert rendered == EditImage.from_array(expected.to_array(np.uint8))

    def test_unknown_preset(self, runner, tmp_path, source_file):
        """Unknown presets are reported with the available names."""
        result = runner.invoke(main, ['render', str(source_file), str(tmp_path / "o.png"), '--preset', 'Velvia'])
        assert result.exit_code != 0
        assert "Unknown preset 'Velvia'" in result.output

    def test_bad_setting(self, runner, tmp_path, source_file):
        """Malformed --set values are usage errors."""
        result = runner.invoke(main, ['render', str(source_file), str(tmp_path / "o.png"), '--set', 'gamma=2'])
        assert result.exit_code == 2

    def test_undecodable_input(self, runner, tmp_path):
        """Files that are not images produce a clean error."""
        bogus = tmp_path / "bogus.png"
        bogus.write_bytes(b"nope")
        result = runner.invoke(main, ['render', str(bogus), str(tmp_path / "o.png")])
        assert result.exit_code == 1
        assert "Could not decode" in result.output


class TestBatch:
    """Test directory rendering."""

    def test_batch(self, runner, tmp_path, gradient_image):
        """Every image in the directory is rendered."""
        input_dir = tmp_path / "in"
        input_dir.mkdir()
        for name in ("a.png", "b.png"):
            gradient_image.save(input_dir / name)
        (input_dir / "notes.txt").write_text("skip me")
        output_dir = tmp_path / "out"

        result = runner.invoke(main, ['-q', 'batch', str(input_dir), str(output_dir),
                                      '--preset', 'Sepia', '--format', 'jpeg'])

        assert result.exit_code == 0, result.output
        assert sorted(path.name for path in output_dir.iterdir()) == ["a.jpg", "b.jpg"]

    def test_batch_empty_directory(self, runner, tmp_path):
        """An empty directory is an error."""
        input_dir = tmp_path / "empty"
        input_dir.mkdir()
        result = runner.invoke(main, ['batch', str(input_dir), str(tmp_path / "out")])
        assert result.exit_code == 1
        assert "No images found" in result.output

    def test_batch_skips_image_over_pixel_limit(self, runner, tmp_path, gradient_image, monkeypatch, caplog):
        """An oversized file is recorded as a failure and the batch carries on."""
        input_dir = tmp_path / "in"
        input_dir.mkdir()
        gradient_image.save(input_dir / "a_small.png")
        EditImage(np.full((200, 200, 3), 0.5, dtype=np.float32)).save(input_dir / "b_large.png")
        output_dir = tmp_path / "out"
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 2000)

        result = runner.invoke(main, ['-q', 'batch', str(input_dir), str(output_dir), '--preset', 'Mono'])

        assert result.exit_code == 0, result.output
        assert [path.name for path in output_dir.iterdir()] == ["a_small.png"]
        assert "pixel limit" in caplog.text
        assert '"preset": "Mono"' in caplog.text
        assert "b_large.png" in caplog.text


class TestPreviews:
    """Test preset preview export."""

    def test_previews(self, runner, tmp_path, source_file):
        """One thumbnail per preset is written."""
        output_dir = tmp_path / "previews"
        result = runner.invoke(main, ['previews', str(source_file), str(output_dir), '--size', '16'])

        assert result.exit_code == 0, result.output
        files = sorted(output_dir.iterdir())
        assert len(files) == 11
        assert files[0].name == "00_Original.png"
        assert max(EditImage.open(files[0]).size) == 16


class TestGlobalOptions:
    """Test options on the command group."""

    def test_config_option(self, runner, tmp_path, source_file):
        """Custom presets from --config are available."""
        config = tmp_path / "config.yaml"
        config.write_text(
            "presets:\n  custom:\n    - name: Soft\n      style_transform: fade\n",
            encoding='utf-8',
        )
        result = runner.invoke(main, ['-c', str(config), 'presets'])
        assert result.exit_code == 0, result.output
        assert "Soft" in result.output

    def test_invalid_custom_preset(self, runner, tmp_path, source_file):
        """A misspelled kind in presets.custom is a clean error for every command."""
        config = tmp_path / "config.yaml"
        config.write_text(
            "presets:\n  custom:\n    - name: Bad\n      overrides:\n        exposre: 1\n",
            encoding='utf-8',
        )

        for args in (['presets'],
                     ['render', str(source_file), str(tmp_path / "o.png")],
                     ['batch', str(source_file.parent), str(tmp_path / "out")],
                     ['previews', str(source_file), str(tmp_path / "previews")]):
            result = runner.invoke(main, ['-c', str(config)] + args)
            assert result.exit_code == 1, args
            assert "Invalid overrides for preset 'Bad'" in result.output
            assert not isinstance(result.exception, ValueError)


class TestSavePreset:
    """Test writing custom presets to a config file."""

    def test_save_and_list(self, runner, tmp_path):
        """A saved preset shows up when the file is used as --config."""
        config = tmp_path / "presets.yaml"
        result = runner.invoke(main, ['save-preset', 'Warm Fade', str(config),
                                      '--style', 'fade', '--set', 'warmth=25'])
        assert result.exit_code == 0, result.output
        assert config.exists()

        result = runner.invoke(main, ['-c', str(config), 'presets'])
        assert result.exit_code == 0, result.output
        preset_lines = [line for line in result.output.splitlines() if "style=" in line]
        assert preset_lines[-1].startswith("Warm Fade")
        assert "style=fade" in preset_lines[-1]

    def test_appends_to_existing_presets(self, runner, tmp_path):
        """Saving twice keeps both presets in order."""
        config = tmp_path / "presets.yaml"
        for name in ("First", "Second"):
            result = runner.invoke(main, ['save-preset', name, str(config), '--set', 'exposure=0.5'])
            assert result.exit_code == 0, result.output

        result = runner.invoke(main, ['-c', str(config), 'presets'])
        preset_lines = [line for line in result.output.splitlines() if "style=" in line]
        assert [line.split()[0] for line in preset_lines[-2:]] == ["First", "Second"]

    def test_duplicate_name(self, runner, tmp_path):
        """Names already in use are rejected."""
        result = runner.invoke(main, ['save-preset', 'Chrome', str(tmp_path / "presets.yaml")])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_unknown_style(self, runner, tmp_path):
        """Style transforms must be known operators."""
        result = runner.invoke(main, ['save-preset', 'Odd', str(tmp_path / "presets.yaml"),
                                      '--style', 'polaroid'])
        assert result.exit_code == 2
