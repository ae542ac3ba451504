"""
Radiant Control - Display presets with live drift detection
===========================================================

Manage brightness/contrast presets for DDC/CI displays:
- Built-in and custom presets persisted in a key-value blob store
- Live matching of display values against the selected preset
- Built-in presets fork into custom copies when hand-edited
- Fire-and-forget set-value dispatch to an external transport
"""

__version__ = "1.0.0"
__author__ = "Radiant Control"

from .config import Config
from .device_state import DeviceStateCache, DisplayInfo, DisplayState
from .dispatch import CommandDispatcher
from .events import DisplayBackend, DisplayDiscovered, DisplayStateChanged
from .matcher import find_matching, matches
from .preset_manager import PresetManager
from .preset_store import DuplicateIdError, PresetStore, StorageCorruptError
from .presets import BUILTIN_PRESETS, Preset
from .reconciler import PresetStatus, Reconciler
from .storage import FileStorage, MemoryStorage

__all__ = [
    "Config",
    "DeviceStateCache",
    "DisplayInfo",
    "DisplayState",
    "CommandDispatcher",
    "DisplayBackend",
    "DisplayDiscovered",
    "DisplayStateChanged",
    "find_matching",
    "matches",
    "PresetManager",
    "DuplicateIdError",
    "PresetStore",
    "StorageCorruptError",
    "BUILTIN_PRESETS",
    "Preset",
    "PresetStatus",
    "Reconciler",
    "FileStorage",
    "MemoryStorage",
]
