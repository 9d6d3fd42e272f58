"""
Tests for the adjustment pipeline: stage order, parameter mapping,
neutral skipping and graceful degradation.
"""

import numpy as np
import pytest

from photoadjust.processing import (
    AdjustmentKind,
    AdjustmentPipeline,
    AdjustmentState,
    EditImage,
    FilterPreset,
    OperatorBackend,
    PresetRegistry,
)


def params_of(backend, name):
    return [params for called, params in backend.calls if called == name]


class TestStageOrder:
    """Test which operators run, in which order, with which parameters."""

    def test_defaults_skip_every_stage(self, recording_backend, gradient_image):
        """A default state with no preset calls no operator."""
        pipeline = AdjustmentPipeline(backend=recording_backend)
        result = pipeline.render(gradient_image, None, AdjustmentState.defaults())

        assert recording_backend.calls == []
        assert result == gradient_image

    def test_fuji_nc_end_to_end(self, recording_backend, gradient_image):
        """富士NC drives each operator with mapped parameters in stage order."""
        pipeline = AdjustmentPipeline(backend=recording_backend)
        preset = pipeline.registry.find("富士NC")
        pipeline.render(gradient_image, preset, AdjustmentState.from_preset(preset))

        assert recording_backend.names_called == [
            "exposure_adjust",
            "color_controls",
            "highlight_shadow",
            "vibrance",
            "temperature_tint",
            "sharpen_luminance",
            "unsharp_mask",
        ]

        calls = dict(recording_backend.calls)
        assert calls["exposure_adjust"] == {"ev": 0.25}
        assert calls["color_controls"] == {"contrast": 1.10, "saturation": 1.10}
        assert calls["highlight_shadow"]["highlight_amount"] == pytest.approx(0.55)
        assert calls["highlight_shadow"]["shadow_amount"] == pytest.approx(1.30)
        assert calls["vibrance"]["amount"] == pytest.approx(0.10)
        assert calls["temperature_tint"]["neutral"] == (6500.0, 0.0)
        assert calls["temperature_tint"]["target_neutral"] == (7500.0, 0.0)
        assert calls["sharpen_luminance"]["sharpness"] == pytest.approx(0.14)
        assert calls["unsharp_mask"]["radius"] == 3.0
        assert calls["unsharp_mask"]["intensity"] == pytest.approx(0.07)

    def test_style_transform_runs_first(self, recording_backend, gradient_image):
        """A preset's style transform precedes every adjustment stage."""
        pipeline = AdjustmentPipeline(backend=recording_backend)
        state = AdjustmentState({AdjustmentKind.EXPOSURE: 0.5})
        pipeline.render(gradient_image, "Sepia", state)

        assert recording_backend.names_called == ["sepia", "exposure_adjust"]

    def test_color_controls_only_passes_changed_values(self, recording_backend, gradient_image):
        """Only non-neutral brightness/contrast/saturation reach the operator."""
        pipeline = AdjustmentPipeline(backend=recording_backend)
        pipeline.render(gradient_image, None, {"brightness": 0.2})

        assert recording_backend.calls == [("color_controls", {"brightness": 0.2})]

    def test_black_point_is_a_second_contrast_call(self, recording_backend, gradient_image):
        """Black point runs its own color_controls call after the first."""
        pipeline = AdjustmentPipeline(backend=recording_backend)
        pipeline.render(gradient_image, None, {"contrast": 1.2, "black_point": 0.5})

        contrast_calls = params_of(recording_backend, "color_controls")
        assert contrast_calls[0] == {"contrast": 1.2}
        assert contrast_calls[1]["contrast"] == pytest.approx(1.05)

    def test_vignette_mapping(self, recording_backend, gradient_image):
        """Vignette intensity and radius scale with the amount."""
        pipeline = AdjustmentPipeline(backend=recording_backend)
        pipeline.render(gradient_image, None, {"vignette": 0.4})

        (params,) = params_of(recording_backend, "vignette")
        assert params["intensity"] == pytest.approx(0.8)
        assert params["radius"] == pytest.approx(0.6)

    def test_single_highlight_change_fires_stage(self, recording_backend, gradient_image):
        """Either of highlights/shadows being non-zero runs the stage."""
        pipeline = AdjustmentPipeline(backend=recording_backend)
        pipeline.render(gradient_image, None, {"shadows": -0.2})

        (params,) = params_of(recording_backend, "highlight_shadow")
        assert params["highlight_amount"] == 1.0
        assert params["shadow_amount"] == pytest.approx(0.8)

    def test_negative_warmth_cools(self, recording_backend, gradient_image):
        """Negative warmth targets a lower temperature."""
        pipeline = AdjustmentPipeline(backend=recording_backend)
        pipeline.render(gradient_image, None, {"warmth": -15})

        (params,) = params_of(recording_backend, "temperature_tint")
        assert params["target_neutral"] == (5000.0, 0.0)


class TestGracefulDegradation:
    """Test that render never fails."""

    def test_missing_operator_passes_through(self, recording_backend, gradient_image):
        """A missing operator skips its stage and later stages still run."""
        recording_backend.available = {"vignette"}
        pipeline = AdjustmentPipeline(backend=recording_backend)
        result = pipeline.render(gradient_image, None, {"exposure": 1.0, "vignette": 0.5})

        assert recording_backend.names_called == ["exposure_adjust", "vignette"]
        assert result == gradient_image

    def test_raising_backend(self, gradient_image):
        """A backend that raises still yields the input image."""
        class ExplodingBackend(OperatorBackend):
            def apply(self, name, image, **params):
                raise RuntimeError("GPU lost")

        pipeline = AdjustmentPipeline(backend=ExplodingBackend())
        result = pipeline.render(gradient_image, "Mono", {"exposure": 1.0})
        assert result == gradient_image

    def test_empty_backend(self, gradient_image):
        """With no operators at all the source comes back unchanged."""
        pipeline = AdjustmentPipeline(backend=OperatorBackend({}))
        assert pipeline.render(gradient_image, "富士CC") == gradient_image

    def test_unknown_preset_name(self, recording_backend, gradient_image):
        """Unknown preset names render without a preset."""
        pipeline = AdjustmentPipeline(backend=recording_backend)
        result = pipeline.render(gradient_image, "Velvia")

        assert recording_backend.calls == []
        assert result == gradient_image


class TestRendering:
    """Test real renders with the built-in operators."""

    def test_preset_determinism(self, gradient_image):
        """Rendering the same preset twice gives identical pixels."""
        pipeline = AdjustmentPipeline()
        preset = pipeline.registry.find("富士CC")
        state = AdjustmentState.from_preset(preset)

        first = pipeline.render(gradient_image, preset, state)
        second = pipeline.render(gradient_image, preset, state)
        assert first == second
        assert first != gradient_image

    def test_source_untouched(self, gradient_image):
        """The source pixels are never modified."""
        before = gradient_image.to_array()
        AdjustmentPipeline().render(gradient_image, "Chrome", {"exposure": 1.0, "clarity": 1.0})
        np.testing.assert_array_equal(gradient_image.pixels, before)

    def test_every_builtin_preset_renders(self, gradient_image):
        """Each built-in preset yields a valid image of the same size."""
        pipeline = AdjustmentPipeline()
        for preset in pipeline.registry:
            result = pipeline.render(gradient_image, preset, AdjustmentState.from_preset(preset))
            assert isinstance(result, EditImage)
            assert result.size == gradient_image.size
            assert 0.0 <= result.pixels.min() and result.pixels.max() <= 1.0

    def test_mono_preset_is_grey(self, gradient_image):
        """The Mono preset produces equal channels."""
        result = AdjustmentPipeline().render(gradient_image, "Mono")
        np.testing.assert_allclose(result.pixels[:, :, 0], result.pixels[:, :, 2], atol=1e-6)

    def test_custom_registry(self, recording_backend, gradient_image):
        """Preset names resolve against the pipeline's registry."""
        registry = PresetRegistry([FilterPreset("Punch", "chrome")])
        pipeline = AdjustmentPipeline(backend=recording_backend, registry=registry)
        pipeline.render(gradient_image, "Punch")
        assert recording_backend.names_called == ["chrome"]


class TestRenderCache:
    """Test memoization of identical renders."""

    def test_cache_hit_skips_operators(self, recording_backend, gradient_image):
        """A repeated request is served from the cache."""
        pipeline = AdjustmentPipeline(backend=recording_backend, cache_size=2)
        state = {"exposure": 0.5}

        first = pipeline.render(gradient_image, None, state)
        second = pipeline.render(EditImage(gradient_image.to_array()), None, state)

        assert second is first
        assert recording_backend.names_called == ["exposure_adjust"]

    def test_cache_eviction(self, recording_backend, gradient_image):
        """The least recently used entry is evicted past the size bound."""
        pipeline = AdjustmentPipeline(backend=recording_backend, cache_size=1)
        pipeline.render(gradient_image, None, {"exposure": 0.5})
        pipeline.render(gradient_image, None, {"exposure": 1.0})
        pipeline.render(gradient_image, None, {"exposure": 0.5})

        assert len(recording_backend.calls) == 3

    def test_clear_cache(self, recording_backend, gradient_image):
        """clear_cache forces a fresh render."""
        pipeline = AdjustmentPipeline(backend=recording_backend, cache_size=4)
        pipeline.render(gradient_image, None, {"exposure": 0.5})
        pipeline.clear_cache()
        pipeline.render(gradient_image, None, {"exposure": 0.5})

        assert len(recording_backend.calls) == 2

    def test_from_config(self):
        """Cache size and custom presets come from config."""
        config = {
            'pipeline': {'cache_size': 3},
            'presets': {'custom': [{'name': 'Soft', 'style_transform': 'fade'}]},
        }
        pipeline = AdjustmentPipeline.from_config(config)
        assert pipeline.cache_size == 3
        assert "Soft" in pipeline.registry
