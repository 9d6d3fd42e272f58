"""
Edit recipes: a preset name plus adjustment values, stored as JSON.

A recipe holds no pixels. Rendering it onto any source image reproduces the
same edit.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

from ..exceptions import RecipeError
from .adjustments import AdjustmentKind, AdjustmentState

logger = logging.getLogger(__name__)

RECIPE_VERSION = "1.0"


@dataclass
class EditRecipe:
    """
    Non-destructive edit recipe

    Only non-default adjustments need to be listed; missing kinds take their
    catalog defaults when the recipe is turned back into a state.
    """
    preset: Optional[str] = None
    adjustments: Dict[str, float] = field(default_factory=dict)
    created_at: Optional[str] = None
    version: str = RECIPE_VERSION

    @classmethod
    def from_state(cls, preset: Optional[str], state: AdjustmentState) -> 'EditRecipe':
        """Capture a preset name and the full adjustment state."""
        return cls(preset=preset, adjustments=state.to_dict())

    def apply_to(self, base: Optional[AdjustmentState] = None) -> AdjustmentState:
        """
        Layer this recipe's adjustments over a base state.

        Args:
            base: State to start from (left untouched); defaults when None

        Returns:
            New AdjustmentState with every listed kind replaced

        Raises:
            RecipeError: If an adjustment name is not recognized
        """
        base = base if base is not None else AdjustmentState.defaults()
        try:
            return AdjustmentState.merge_overrides(base, self.adjustments)
        except (TypeError, ValueError) as e:
            raise RecipeError(f"Invalid recipe adjustments: {e}") from e

    def to_json(self) -> str:
        """Serialize recipe to JSON"""
        data = {
            'preset': self.preset,
            'adjustments': dict(self.adjustments),
            'created_at': self.created_at or datetime.now().isoformat(),
            'version': self.version,
        }
        return json.dumps(data, indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, json_str: str) -> 'EditRecipe':
        """
        Deserialize recipe from JSON

        Raises:
            RecipeError: If the text is not a valid recipe
        """
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise RecipeError(f"Recipe is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise RecipeError("Recipe must be a JSON object")

        adjustments = data.get('adjustments') or {}
        if not isinstance(adjustments, dict):
            raise RecipeError("Recipe 'adjustments' must be an object")

        try:
            adjustments = {AdjustmentKind.parse(key).value: float(value)
                           for key, value in adjustments.items()}
        except (TypeError, ValueError) as e:
            raise RecipeError(f"Invalid recipe adjustments: {e}") from e

        return cls(
            preset=data.get('preset'),
            adjustments=adjustments,
            created_at=data.get('created_at'),
            version=str(data.get('version', RECIPE_VERSION)),
        )

    def save(self, path: Union[str, Path]) -> None:
        """Save recipe to file"""
        Path(path).write_text(self.to_json(), encoding='utf-8')
        logger.debug(f"Saved recipe to {path}")

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'EditRecipe':
        """Load recipe from file"""
        try:
            text = Path(path).read_text(encoding='utf-8')
        except OSError as e:
            raise RecipeError(f"Could not read recipe {path}: {e}") from e
        return cls.from_json(text)
