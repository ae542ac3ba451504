"""
Reconciler - Preset selection and drift handling
================================================

Tracks which preset is selected and decides what an edit means:

- selecting a preset writes all of its values to the display
- editing while a preset is selected writes the edit and absorbs it into
  the preset (custom presets update in place, built-ins fork into
  "{id}_custom")
- revert replays the stored values of the selected preset
- save-as-custom turns the live values of a modified built-in into a new
  custom preset and selects it
"""

import logging
import time
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from .device_state import DeviceStateCache
from .matcher import values_equal
from .presets import ParameterValues, Preset, clamp_value, is_valid_value
from .preset_store import PresetStore

logger = logging.getLogger(__name__)

Dispatch = Callable[[str, str, int], None]


class PresetStatus(Enum):
    """Status of the selection as shown next to the preset buttons."""
    NONE = "none"            # Nothing selected
    MATCHING = "matching"    # Live values equal the selected preset
    MODIFIED = "modified"    # Live values drifted from the selected preset
    SELECTED = "selected"    # Selected, but no live values to compare yet


class Reconciler:
    """
    Selection state machine: Unselected or Selected(preset_id).

    With per_display=False a single selection is shared by all displays,
    which is how the application has always behaved. With per_display=True
    each display keeps its own.
    """

    def __init__(
        self,
        store: PresetStore,
        cache: DeviceStateCache,
        dispatch: Dispatch,
        per_display: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize reconciler.

        Args:
            store: Preset store to read and mutate
            cache: Device state cache holding live values
            dispatch: Fire-and-forget function(display_id, code, value)
            per_display: Keep one selection per display instead of a global one
            clock: Time source for new preset ids
        """
        self.store = store
        self.cache = cache
        self._dispatch = dispatch
        self.per_display = per_display
        self._clock = clock
        self._selection: Dict[Optional[str], str] = {}
        # Edits sent since the cache last refreshed: display_id -> (token, values)
        self._pending: Dict[str, Tuple[Optional[int], ParameterValues]] = {}

    # Selection state

    def _scope(self, display_id: str) -> Optional[str]:
        return display_id if self.per_display else None

    def selected_id(self, display_id: str) -> Optional[str]:
        """Id of the selected preset, or None when Unselected."""
        return self._selection.get(self._scope(display_id))

    def selected_preset(self, display_id: str) -> Optional[Preset]:
        """The selected preset as currently stored."""
        preset_id = self.selected_id(display_id)
        if preset_id is None:
            return None
        preset = self.store.get(preset_id)
        if preset is None:
            logger.warning(f"Selected preset {preset_id} no longer exists, clearing selection")
            self._selection.pop(self._scope(display_id), None)
        return preset

    def is_selected(self, display_id: str, preset_id: str) -> bool:
        return self.selected_id(display_id) == preset_id

    def clear_selection(self, display_id: str):
        self._selection.pop(self._scope(display_id), None)

    def status(self, display_id: str) -> PresetStatus:
        """Derive the selection status for a display."""
        preset = self.selected_preset(display_id)
        if preset is None:
            return PresetStatus.NONE
        if not self.cache.has_values(display_id):
            return PresetStatus.SELECTED
        if values_equal(self._current_values(display_id), preset.values):
            return PresetStatus.MATCHING
        return PresetStatus.MODIFIED

    # Live values

    def _current_values(self, display_id: str) -> ParameterValues:
        """Cached values plus edits sent since the cache last refreshed."""
        values = self.cache.values(display_id)
        token = self.cache.token(display_id)
        pending = self._pending.get(display_id)
        if pending is not None:
            pending_token, edits = pending
            if pending_token == token:
                values.update(edits)
            else:
                del self._pending[display_id]
        return values

    def _remember_edit(self, display_id: str, code: str, value: int):
        token = self.cache.token(display_id)
        pending = self._pending.get(display_id)
        if pending is None or pending[0] != token:
            pending = (token, {})
            self._pending[display_id] = pending
        pending[1][code] = value

    def _send_values(self, display_id: str, values: ParameterValues):
        for code in sorted(values):
            self._dispatch(display_id, code, values[code])

    # Transitions

    def select(self, display_id: str, preset_id: str) -> bool:
        """
        User clicked a preset.

        Selecting the already-selected preset deselects it and sends nothing.

        Returns:
            True if the selection changed
        """
        scope = self._scope(display_id)
        if self._selection.get(scope) == preset_id:
            del self._selection[scope]
            logger.info(f"Deselected preset {preset_id}")
            return True

        preset = self.store.get(preset_id)
        if preset is None:
            logger.warning(f"Cannot select unknown preset: {preset_id}")
            return False

        self._send_values(display_id, preset.values)
        self._pending.pop(display_id, None)
        for code, value in preset.values.items():
            self._remember_edit(display_id, code, value)
        self._selection[scope] = preset_id
        logger.info(f"Selected preset '{preset.name}' on display {display_id}")
        return True

    def change_value(self, display_id: str, code: str, value: int) -> Optional[Preset]:
        """
        User moved a slider.

        The command is sent first. If a preset is selected, the edit is
        absorbed into it via PresetStore.update.

        Returns:
            The preset that absorbed the edit, or None when Unselected
        """
        value = clamp_value(value)
        self._dispatch(display_id, code, value)
        self._remember_edit(display_id, code, value)

        preset_id = self.selected_id(display_id)
        if preset_id is None:
            return None

        values = self._current_values(display_id)
        values[code] = value
        updated = self.store.update(preset_id, values)
        if updated is not None and updated.id != preset_id:
            logger.info(f"Edit on built-in preset {preset_id} stored in {updated.id}")
        return updated

    def revert(self, display_id: str) -> bool:
        """
        Resend the stored values of the selected preset.

        For a built-in this is the original definition, not its fork.
        Selection and store are left as they are.
        """
        preset = self.selected_preset(display_id)
        if preset is None:
            logger.warning("Nothing to revert: no preset selected")
            return False
        self._send_values(display_id, preset.values)
        self._pending.pop(display_id, None)
        for code, value in preset.values.items():
            self._remember_edit(display_id, code, value)
        logger.info(f"Reverted display {display_id} to preset '{preset.name}'")
        return True

    def save_as_custom(self, display_id: str, name: Optional[str] = None) -> Optional[Preset]:
        """
        Copy the live values of a modified built-in into a new custom preset.

        Only valid while a built-in is selected and the live values differ
        from it. The new preset becomes the selection.
        """
        source = self.selected_preset(display_id)
        if source is None:
            logger.warning("Save as custom: no preset selected")
            return None
        if source.is_custom:
            logger.warning(f"Save as custom: '{source.name}' is already a custom preset")
            return None
        if self.status(display_id) != PresetStatus.MODIFIED:
            logger.warning(f"Save as custom: '{source.name}' is not modified")
            return None

        preset = Preset(
            id=self.store.unique_id(source.id, "custom"),
            name=name or f"{source.name} (Custom)",
            values=self._current_values(display_id),
            is_custom=True,
        )
        stored = self.store.add(preset)
        self._selection[self._scope(display_id)] = stored.id
        logger.info(f"Saved '{source.name}' as new preset '{stored.name}' ({stored.id})")
        return stored

    def delete(self, preset_id: str) -> bool:
        """Delete a custom preset, deselecting it first wherever it is selected."""
        preset = self.store.get(preset_id)
        if preset is None or not preset.is_custom:
            logger.warning(f"Cannot delete preset {preset_id}: not a custom preset")
            return False
        for scope in [s for s, selected in self._selection.items() if selected == preset_id]:
            del self._selection[scope]
        return self.store.remove(preset_id)

    def duplicate(self, preset_id: str, name: Optional[str] = None) -> Optional[Preset]:
        """Copy any preset into a new custom preset. Selection is untouched."""
        source = self.store.get(preset_id)
        if source is None:
            logger.warning(f"Cannot duplicate unknown preset: {preset_id}")
            return None
        copy = Preset(
            id=self.store.unique_id(source.id, "copy"),
            name=name or f"{source.name} (Copy)",
            values=dict(source.values),
            is_custom=True,
        )
        return self.store.add(copy)

    def create(self, name: str, values: ParameterValues) -> Preset:
        """
        Create a custom preset from scratch.

        Raises:
            ValueError: If any value is not an integer in 0-100
        """
        for code, value in values.items():
            if not is_valid_value(value):
                raise ValueError(f"Invalid value for {code}: {value!r}")
        preset_id = f"custom_{int(self._clock() * 1000)}"
        if self.store.get(preset_id) is not None:
            preset_id = self.store.unique_id(preset_id, "n")
        return self.store.add(Preset(id=preset_id, name=name, values=dict(values), is_custom=True))

    def rename(self, preset_id: str, name: str) -> bool:
        return self.store.rename(preset_id, name)
