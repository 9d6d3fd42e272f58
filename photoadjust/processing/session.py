"""
Editing session for PhotoAdjust.

Owns the pristine source image, the current adjustment values, the active
preset and the edit history. Every edit re-renders from the source with the
full current state; nothing is applied incrementally.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Union

from .adjustments import AdjustmentKind, AdjustmentState
from .history import EditHistory, HistoryEntry
from .image import EditImage
from .pipeline import AdjustmentPipeline
from .presets import FilterPreset, PresetRegistry

logger = logging.getLogger(__name__)


class EditSession:
    """
    Preset and slider editing over one source image at a time.

    Undo and redo move through rendered images only; they do not restore the
    adjustment values that produced them.
    """

    def __init__(self, pipeline: Optional[AdjustmentPipeline] = None,
                 history: Optional[EditHistory] = None,
                 registry: Optional[PresetRegistry] = None):
        """
        Initialize session.

        Args:
            pipeline: Renderer, defaults to a pipeline over the built-in operators
            history: Edit history, defaults to an unbounded one
            registry: Preset registry, defaults to the pipeline's registry
        """
        self.pipeline = pipeline or AdjustmentPipeline(registry=registry)
        self.registry = registry or self.pipeline.registry
        self.history = history if history is not None else EditHistory()

        self._source: Optional[EditImage] = None
        self._state = AdjustmentState.defaults()
        self._active_preset: Optional[FilterPreset] = None

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]] = None) -> 'EditSession':
        """Build a session from the pipeline/history/presets config sections."""
        from ..config import get_config_value

        config = config or {}
        pipeline = AdjustmentPipeline.from_config(config)
        max_entries = get_config_value(config, 'history.max_entries', None)
        return cls(
            pipeline=pipeline,
            history=EditHistory(max_entries=max_entries or None),
            registry=pipeline.registry,
        )

    @property
    def source(self) -> Optional[EditImage]:
        return self._source

    @property
    def state(self) -> AdjustmentState:
        """Copy of the current adjustment values."""
        return self._state.copy()

    @property
    def active_preset(self) -> Optional[FilterPreset]:
        return self._active_preset

    @property
    def current_image(self) -> Optional[EditImage]:
        entry = self.history.current()
        return entry.image if entry else None

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    def load_image(self, image: EditImage) -> HistoryEntry:
        """
        Start editing a new source image.

        Adjustments return to their defaults, the active preset is cleared and
        the history is reset to the untouched source.
        """
        self._source = image
        self._state = AdjustmentState.defaults()
        self._active_preset = None
        logger.info(f"Loaded source image {image.width}x{image.height}")
        return self.history.reset(image)

    def apply_preset(self, preset: Union[FilterPreset, str]) -> EditImage:
        """
        Select a preset and render it.

        The adjustment values become the defaults with the preset's overrides
        on top. Unknown names fall back to "Original".

        Args:
            preset: FilterPreset or preset name

        Returns:
            The rendered image, also added to history under the preset name
        """
        source = self._require_source()

        if not isinstance(preset, FilterPreset):
            found = self.registry.find(preset)
            if found is None:
                logger.warning(f"Unknown preset '{preset}', using '{self.registry.original.name}'")
                found = self.registry.original
            preset = found

        self._active_preset = preset
        self._state = AdjustmentState.from_preset(preset)

        rendered = self.pipeline.render(source, preset, self._state)
        self.history.add(rendered, preset.name)
        logger.debug(f"Applied preset '{preset.name}'")
        return rendered

    def set_adjustment(self, kind: Union[AdjustmentKind, str], value: float) -> EditImage:
        """
        Change one adjustment and re-render from the source.

        The active preset's style transform stays applied.

        Returns:
            The rendered image, also added to history with an empty label
        """
        source = self._require_source()
        kind = AdjustmentKind.parse(kind)
        stored = self._state.set(kind, value)
        logger.debug(f"Set {kind.value} = {stored}")

        rendered = self.pipeline.render(source, self._active_preset, self._state)
        self.history.add(rendered, "")
        return rendered

    def undo(self) -> Optional[HistoryEntry]:
        return self.history.undo()

    def redo(self) -> Optional[HistoryEntry]:
        return self.history.redo()

    def preset_previews(self, max_size: int = 80) -> Dict[str, EditImage]:
        """
        Render every preset onto a thumbnail of the source.

        Session state and history are left untouched.

        Args:
            max_size: Longest side of the thumbnail in pixels

        Returns:
            Preset name to preview image, in display order
        """
        thumbnail = self._require_source().thumbnail(max_size)
        previews = {}
        for preset in self.registry:
            if preset.is_identity:
                previews[preset.name] = thumbnail
            else:
                previews[preset.name] = self.pipeline.render(
                    thumbnail, preset, AdjustmentState.from_preset(preset)
                )
        logger.debug(f"Rendered {len(previews)} preset previews at {max_size}px")
        return previews

    def _require_source(self) -> EditImage:
        if self._source is None:
            raise RuntimeError("No image loaded; call load_image() first")
        return self._source
