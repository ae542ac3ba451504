"""
Preset Manager - Feed events, user actions and status callbacks
===============================================================
"""

import logging
import threading
from typing import Callable, List, Optional
from dataclasses import dataclass, field

from .config import Config
from .device_state import DeviceStateCache, DisplayInfo
from .dispatch import CommandDispatcher
from .events import DisplayBackend, DisplayDiscovered, DisplayEvent, DisplayStateChanged
from .matcher import find_matching
from .presets import ParameterValues, Preset
from .preset_store import PresetStore
from .reconciler import PresetStatus, Reconciler
from .storage import FileStorage, KeyValueStorage

logger = logging.getLogger(__name__)


@dataclass
class PresetState:
    """Snapshot of what the preset panel shows for the active display."""
    display: Optional[DisplayInfo]
    values: ParameterValues = field(default_factory=dict)
    ready: bool = False
    error: Optional[str] = None
    selected_preset: Optional[Preset] = None
    matching_preset: Optional[Preset] = None
    status: PresetStatus = PresetStatus.NONE


class PresetManager:
    """
    Connects the display feed, the device state cache, the reconciler
    and the preset store, and tells the UI when anything it shows changes.

    Events and user actions are serialized through one lock, so the
    reconciler never runs two transitions at once.
    """

    def __init__(
        self,
        config: Config,
        backend: DisplayBackend,
        storage: Optional[KeyValueStorage] = None,
        dispatcher: Optional[CommandDispatcher] = None,
    ):
        """
        Initialize preset manager.

        Args:
            config: Application configuration
            backend: Display transport (discovery, feed, writes)
            storage: Optional storage (will use a FileStorage from config if None)
            dispatcher: Optional command dispatcher (will create if None)
        """
        self.config = config
        self.backend = backend
        self.storage = storage or FileStorage(config.storage.path)
        self.store = PresetStore(self.storage, key=config.storage.key)
        self.cache = DeviceStateCache()
        self.dispatcher = dispatcher or CommandDispatcher(
            backend.set_parameter_value,
            threaded=config.dispatch.threaded,
        )
        self.reconciler = Reconciler(
            self.store,
            self.cache,
            self.dispatcher.dispatch,
            per_display=config.selection.per_display,
        )

        self._lock = threading.RLock()
        self._active_display_id: Optional[str] = None
        self._startup_preset_applied = False
        self._last_status: Optional[PresetStatus] = None
        self._running = False

        # Callbacks for UI updates
        self._status_change_callbacks: List[Callable[[str, PresetStatus], None]] = []
        self._presets_change_callbacks: List[Callable[[List[Preset]], None]] = []
        self._display_change_callbacks: List[Callable[[DisplayInfo], None]] = []

    def start(self):
        """Query displays once and subscribe to the feed."""
        if self._running:
            return
        self._running = True

        try:
            displays = self.backend.list_displays()
        except Exception as e:
            logger.error(f"Failed to list displays: {e}")
            displays = []

        with self._lock:
            for info in displays:
                self.cache.add_display(info)
            self._choose_initial_display()

        self.backend.subscribe(self.handle_event)
        logger.info(f"Preset manager started with {len(displays)} display(s)")

    def stop(self):
        """Stop dispatching commands."""
        self._running = False
        self.dispatcher.stop()
        logger.info("Preset manager stopped")

    def _choose_initial_display(self):
        if self._active_display_id is not None:
            return
        remembered = self.config.last_selected_display_id
        if remembered and self.cache.get_display(remembered):
            logger.info(f"Restoring last selected display {remembered}")
            self._activate(remembered, remember=False)
            return
        displays = self.cache.displays()
        if displays:
            self._activate(displays[0].id, remember=False)

    # Feed

    def handle_event(self, event: DisplayEvent):
        """Apply one event from the display feed."""
        with self._lock:
            if isinstance(event, DisplayDiscovered):
                self._on_display_discovered(event)
            elif isinstance(event, DisplayStateChanged):
                self._on_display_state_changed(event)
            else:
                logger.warning(f"Ignoring unknown display event: {event!r}")

    def _on_display_discovered(self, event: DisplayDiscovered):
        if not self.cache.add_display(event.info):
            return
        if self._active_display_id is None:
            self._choose_initial_display()

    def _on_display_state_changed(self, event: DisplayStateChanged):
        if self.cache.get_display(event.display_id) is None:
            logger.debug(f"State for undiscovered display {event.display_id}, registering it")
            self.cache.add_display(DisplayInfo(id=event.display_id, display_key=event.display_id))
            if self._active_display_id is None:
                self._choose_initial_display()

        accepted = self.cache.update(
            event.display_id,
            event.values,
            token=event.token,
            ready=event.ready,
            error=event.error,
            caps=event.caps,
        )
        if not accepted:
            return

        if event.ready and not event.error:
            self._apply_startup_preset(event.display_id)

        if event.display_id == self._active_display_id:
            self._notify_status()

    def _apply_startup_preset(self, display_id: str):
        """Select the configured startup preset on the first display that becomes ready."""
        if self._startup_preset_applied or not self.config.startup_preset:
            return
        self._startup_preset_applied = True

        preset_id = self.config.startup_preset
        if self.store.get(preset_id) is None:
            logger.warning(f"Startup preset not found: {preset_id}")
            return
        if self.reconciler.is_selected(display_id, preset_id):
            return
        logger.info(f"Applying startup preset '{preset_id}' to display {display_id}")
        self.reconciler.select(display_id, preset_id)

    # Active display

    @property
    def active_display(self) -> Optional[DisplayInfo]:
        if self._active_display_id is None:
            return None
        return self.cache.get_display(self._active_display_id)

    def list_displays(self) -> List[DisplayInfo]:
        return self.cache.displays()

    def set_active_display(self, display_id: str) -> bool:
        """
        Switch the display the preset panel controls.

        Selection is not reset; with a global selection the status is
        recomputed against the new display's values.

        Returns:
            True if the display is known
        """
        with self._lock:
            if self.cache.get_display(display_id) is None:
                logger.warning(f"Display not found: {display_id}")
                return False
            self._activate(display_id, remember=True)
            return True

    def _activate(self, display_id: str, remember: bool):
        if display_id == self._active_display_id:
            return
        self._active_display_id = display_id
        info = self.cache.get_display(display_id)
        logger.info(f"Active display: {info}")
        if remember:
            self.config.set_last_selected_display(display_id)

        for callback in self._display_change_callbacks:
            try:
                callback(info)
            except Exception as e:
                logger.error(f"Display change callback error: {e}")
        self._notify_status(force=True)

    def _require_display(self) -> Optional[str]:
        if self._active_display_id is None:
            logger.warning("No display selected")
        return self._active_display_id

    # User actions

    def select_preset(self, preset_id: str) -> bool:
        """Select (or toggle off) a preset on the active display."""
        with self._lock:
            display_id = self._require_display()
            if display_id is None:
                return False
            changed = self.reconciler.select(display_id, preset_id)
            self._notify_status()
            return changed

    def change_value(self, code: str, value: int) -> Optional[Preset]:
        """Slider moved on the active display."""
        with self._lock:
            display_id = self._require_display()
            if display_id is None:
                return None
            updated = self.reconciler.change_value(display_id, code, value)
            if updated is not None:
                self._notify_presets()
            self._notify_status()
            return updated

    def revert(self) -> bool:
        with self._lock:
            display_id = self._require_display()
            if display_id is None:
                return False
            reverted = self.reconciler.revert(display_id)
            self._notify_status()
            return reverted

    def save_as_custom(self, name: Optional[str] = None) -> Optional[Preset]:
        with self._lock:
            display_id = self._require_display()
            if display_id is None:
                return None
            preset = self.reconciler.save_as_custom(display_id, name)
            if preset is not None:
                self._notify_presets()
                self._notify_status()
            return preset

    def delete_preset(self, preset_id: str) -> bool:
        with self._lock:
            deleted = self.reconciler.delete(preset_id)
            if deleted:
                self._notify_presets()
                self._notify_status()
            return deleted

    def duplicate_preset(self, preset_id: str, name: Optional[str] = None) -> Optional[Preset]:
        with self._lock:
            preset = self.reconciler.duplicate(preset_id, name)
            if preset is not None:
                self._notify_presets()
            return preset

    def create_preset(self, name: str, values: Optional[ParameterValues] = None) -> Preset:
        """
        Create a custom preset, by default from the active display's live values.

        Raises:
            ValueError: If any value is out of range
        """
        with self._lock:
            if values is None:
                values = self.cache.values(self._active_display_id) if self._active_display_id else {}
            preset = self.reconciler.create(name, values)
            self._notify_presets()
            return preset

    def rename_preset(self, preset_id: str, name: str) -> bool:
        with self._lock:
            renamed = self.reconciler.rename(preset_id, name)
            if renamed:
                self._notify_presets()
            return renamed

    # Queries

    def list_presets(self) -> List[Preset]:
        return self.store.list()

    def get_status(self) -> PresetStatus:
        with self._lock:
            if self._active_display_id is None:
                return PresetStatus.NONE
            return self.reconciler.status(self._active_display_id)

    def get_matching_preset(self) -> Optional[Preset]:
        """First preset whose values equal the active display's live values (checkmark)."""
        with self._lock:
            if self._active_display_id is None or not self.cache.has_values(self._active_display_id):
                return None
            return find_matching(self.cache.values(self._active_display_id), self.store.list())

    def get_state(self) -> PresetState:
        """Get the current preset panel state (no device reads, cached values only)."""
        with self._lock:
            display_id = self._active_display_id
            if display_id is None:
                return PresetState(display=None)
            cached = self.cache.get(display_id)
            return PresetState(
                display=self.cache.get_display(display_id),
                values=cached.values if cached else {},
                ready=cached.ready if cached else False,
                error=cached.error if cached else None,
                selected_preset=self.reconciler.selected_preset(display_id),
                matching_preset=self.get_matching_preset(),
                status=self.reconciler.status(display_id),
            )

    # Callbacks

    def _notify_status(self, force: bool = False):
        display_id = self._active_display_id
        if display_id is None:
            return
        status = self.reconciler.status(display_id)
        if status == self._last_status and not force:
            return
        self._last_status = status
        logger.debug(f"Preset status for display {display_id}: {status.value}")
        for callback in self._status_change_callbacks:
            try:
                callback(display_id, status)
            except Exception as e:
                logger.error(f"Status callback error: {e}")

    def _notify_presets(self):
        presets = self.store.list()
        for callback in self._presets_change_callbacks:
            try:
                callback(presets)
            except Exception as e:
                logger.error(f"Presets callback error: {e}")

    def add_status_change_callback(self, callback: Callable[[str, PresetStatus], None]):
        """Add callback for selection status changes on the active display."""
        self._status_change_callbacks.append(callback)

    def add_presets_change_callback(self, callback: Callable[[List[Preset]], None]):
        """Add callback for preset list changes."""
        self._presets_change_callbacks.append(callback)

    def add_display_change_callback(self, callback: Callable[[DisplayInfo], None]):
        """Add callback for active display changes."""
        self._display_change_callbacks.append(callback)

    def remove_status_change_callback(self, callback: Callable[[str, PresetStatus], None]):
        """Remove status change callback."""
        if callback in self._status_change_callbacks:
            self._status_change_callbacks.remove(callback)

    def remove_presets_change_callback(self, callback: Callable[[List[Preset]], None]):
        """Remove presets change callback."""
        if callback in self._presets_change_callbacks:
            self._presets_change_callbacks.remove(callback)
