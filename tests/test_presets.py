"""
Tests for filter presets and the preset registry.
"""

import pytest

from photoadjust.exceptions import PresetRegistryError
from photoadjust.processing import AdjustmentKind, AdjustmentState, FilterPreset, PresetRegistry


class TestBuiltinRegistry:
    """Test the built-in preset set."""

    def test_display_order(self):
        """Presets keep their display order with Original first."""
        registry = PresetRegistry()
        assert registry.names() == [
            "Original", "富士NC", "富士CC", "Mono", "Noir", "Fade",
            "Chrome", "Process", "Transfer", "Instant", "Sepia",
        ]
        assert registry.original.name == "Original"
        assert registry.original.is_identity

    def test_find(self):
        """find returns the preset or None."""
        registry = PresetRegistry()
        assert registry.find("Sepia").style_transform == "sepia"
        assert registry.find("Velvia") is None
        assert "Mono" in registry
        assert "Velvia" not in registry

    def test_fuji_nc_overrides(self):
        """富士NC carries its tone overrides and no style transform."""
        preset = PresetRegistry().find("富士NC")
        assert preset.style_transform is None
        assert preset.overrides[AdjustmentKind.EXPOSURE] == 0.25
        assert preset.overrides[AdjustmentKind.HIGHLIGHTS] == -0.45
        assert AdjustmentKind.BRIGHTNESS not in preset.overrides

    def test_preset_state(self):
        """A preset's state is the defaults plus its overrides."""
        state = AdjustmentState.from_preset(PresetRegistry().find("富士CC"))
        assert state[AdjustmentKind.WARMTH] == -15
        assert state[AdjustmentKind.VIGNETTE] == 0.12
        assert state[AdjustmentKind.CONTRAST] == 1.0


class TestFilterPreset:
    """Test preset construction."""

    def test_overrides_are_clamped_and_read_only(self):
        """Override values are clamped and cannot be changed afterwards."""
        preset = FilterPreset("Hot", overrides={"warmth": 80})
        assert preset.overrides[AdjustmentKind.WARMTH] == 50.0
        with pytest.raises(TypeError):
            preset.overrides[AdjustmentKind.WARMTH] = 1.0

    def test_dict_round_trip(self):
        """Presets serialize to plain dictionaries and back."""
        preset = FilterPreset("Warm Chrome", "chrome", {AdjustmentKind.WARMTH: 20})
        restored = FilterPreset.from_dict(preset.to_dict())
        assert restored == preset

    def test_from_dict_requires_name(self):
        """A definition without a name is rejected."""
        with pytest.raises(PresetRegistryError):
            FilterPreset.from_dict({'style_transform': 'mono'})

    def test_misspelled_override_kind(self):
        """An unknown override kind is a registry error, not a bare ValueError."""
        with pytest.raises(PresetRegistryError, match="Invalid overrides for preset 'Bad'"):
            FilterPreset("Bad", overrides={"exposre": 1})

    def test_non_numeric_override(self):
        """Override values must be numbers."""
        with pytest.raises(PresetRegistryError):
            FilterPreset("Bad", overrides={"exposure": "bright"})

    def test_from_dict_requires_mapping(self):
        """A definition that is not a mapping is rejected."""
        with pytest.raises(PresetRegistryError):
            FilterPreset.from_dict("Soft")


class TestRegistryValidation:
    """Test registry construction rules."""

    def test_original_prepended(self):
        """A registry without Original gets one at the front."""
        registry = PresetRegistry([FilterPreset("Mono", "mono")])
        assert registry.names() == ["Original", "Mono"]

    def test_duplicate_names_rejected(self):
        """Names must be unique."""
        with pytest.raises(PresetRegistryError):
            PresetRegistry([FilterPreset("Mono", "mono"), FilterPreset("Mono", "noir")])

    def test_original_must_come_first(self):
        """Original may not appear later in the list."""
        with pytest.raises(PresetRegistryError):
            PresetRegistry([FilterPreset("Mono", "mono"), FilterPreset("Original")])

    def test_original_must_be_identity(self):
        """Original may not carry a style or overrides."""
        with pytest.raises(PresetRegistryError):
            PresetRegistry([FilterPreset("Original", "mono")])

    def test_from_config_appends_custom(self):
        """Custom presets from config follow the built-ins."""
        config = {'presets': {'custom': [
            {'name': 'Warm Punch', 'style_transform': 'chrome', 'overrides': {'warmth': 20}},
        ]}}
        registry = PresetRegistry.from_config(config)
        assert registry.names()[-1] == "Warm Punch"
        assert registry.find("Warm Punch").overrides[AdjustmentKind.WARMTH] == 20

    def test_from_config_rejects_builtin_name(self):
        """Custom presets may not reuse a built-in name."""
        config = {'presets': {'custom': [{'name': 'Mono'}]}}
        with pytest.raises(PresetRegistryError):
            PresetRegistry.from_config(config)
