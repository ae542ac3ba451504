"""
Preset Store - Built-in and custom presets persisted as one blob
================================================================
"""

import logging
import threading
from typing import Dict, List, Optional

import yaml

from .presets import (
    BUILTIN_PRESETS,
    InvalidPresetError,
    ParameterValues,
    Preset,
    RadiantControlError,
)
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)


class StorageCorruptError(RadiantControlError):
    """Raised when the persisted preset blob cannot be decoded."""
    pass


class DuplicateIdError(RadiantControlError):
    """Raised when adding a custom preset whose id is already taken."""
    pass


def encode_presets(presets: List[Preset]) -> bytes:
    """Serialize custom presets into a single blob."""
    records = [p.to_dict() for p in presets]
    return yaml.safe_dump(records, default_flow_style=False, sort_keys=False).encode("utf-8")


def decode_presets(blob: bytes) -> List[Preset]:
    """
    Deserialize a blob written by encode_presets.

    Raises:
        StorageCorruptError: If the blob is not a list of valid preset records
    """
    try:
        data = yaml.safe_load(blob.decode("utf-8"))
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise StorageCorruptError(f"Failed to parse preset blob: {e}") from e

    if data is None:
        return []
    if not isinstance(data, list):
        raise StorageCorruptError(f"Preset blob is a {type(data).__name__}, expected a list")

    presets = []
    seen = set()
    for record in data:
        try:
            preset = Preset.from_dict(record)
        except InvalidPresetError as e:
            raise StorageCorruptError(str(e)) from e
        if preset.id in seen:
            raise StorageCorruptError(f"Duplicate preset id in blob: {preset.id}")
        seen.add(preset.id)
        presets.append(preset.copy(is_custom=True))
    return presets


class PresetStore:
    """
    CRUD over built-in and custom presets.

    Built-in presets are seeded from BUILTIN_PRESETS and never mutated.
    Custom presets live in an ordered dict and are written back as one
    blob after every mutation.
    """

    DEFAULT_KEY = "custom_presets"

    def __init__(self, storage: KeyValueStorage, key: str = DEFAULT_KEY):
        """
        Initialize the store and load custom presets.

        Args:
            storage: Key-value persistence capability
            key: Storage key holding the custom preset blob
        """
        self.storage = storage
        self.key = key
        self._lock = threading.RLock()
        self._builtins: Dict[str, Preset] = {p.id: p.copy(is_custom=False) for p in BUILTIN_PRESETS}
        self._custom: Dict[str, Preset] = {}
        self.load()

    def load(self):
        """Load custom presets from storage; a bad blob yields an empty set."""
        with self._lock:
            self._custom = {}
            try:
                blob = self.storage.get(self.key)
            except OSError as e:
                logger.error(f"Failed to read presets from storage: {e}")
                return
            if blob is None:
                logger.info("No stored custom presets")
                return
            try:
                presets = decode_presets(blob)
            except StorageCorruptError as e:
                logger.warning(f"Ignoring corrupt preset storage: {e}")
                return
            self._custom = {p.id: p for p in presets}
            logger.info(f"Loaded {len(self._custom)} custom preset(s)")

    def _save(self) -> bool:
        """Write all custom presets to storage."""
        blob = encode_presets(list(self._custom.values()))
        try:
            self.storage.set(self.key, blob)
            return True
        except OSError as e:
            logger.error(f"Failed to save presets: {e}")
            return False

    def list(self) -> List[Preset]:
        """Return built-ins in definition order, then customs in persistence order."""
        with self._lock:
            return ([p.copy() for p in self._builtins.values()] +
                    [p.copy() for p in self._custom.values()])

    def ids(self) -> List[str]:
        """Return all preset ids in list order."""
        with self._lock:
            return list(self._builtins) + list(self._custom)

    def get(self, preset_id: str) -> Optional[Preset]:
        """Get a copy of a preset by id."""
        with self._lock:
            preset = self._builtins.get(preset_id) or self._custom.get(preset_id)
            return preset.copy() if preset else None

    def is_builtin(self, preset_id: str) -> bool:
        """Check if an id names a built-in preset."""
        return preset_id in self._builtins

    def unique_id(self, base: str, suffix: str) -> str:
        """
        Generate an id of the form {base}_{suffix}_{n} not used by any preset.

        Args:
            base: Id the new preset derives from
            suffix: Namespace tag ("copy", "custom", ...)
        """
        with self._lock:
            n = 1
            while True:
                candidate = f"{base}_{suffix}_{n}"
                if candidate not in self._builtins and candidate not in self._custom:
                    return candidate
                n += 1

    def add(self, preset: Preset) -> Preset:
        """
        Store a new custom preset.

        The is_custom flag of the argument is ignored and forced to True.

        Raises:
            DuplicateIdError: If a custom preset with the same id exists
        """
        with self._lock:
            if preset.id in self._custom:
                raise DuplicateIdError(f"Custom preset already exists: {preset.id}")
            stored = preset.copy(is_custom=True)
            self._custom[stored.id] = stored
            self._save()
            logger.info(f"Added custom preset '{stored.name}' ({stored.id})")
            return stored.copy()

    def update(self, preset_id: str, values: ParameterValues) -> Optional[Preset]:
        """
        Replace a preset's values.

        Custom presets are updated in place and flagged as modified.
        Built-in presets are left untouched; the values go to a derived
        custom preset "{id}_custom", overwritten if it already exists.

        Returns:
            The preset now holding the values, or None if the id is unknown
        """
        with self._lock:
            if preset_id in self._custom:
                preset = self._custom[preset_id]
                preset.values = dict(values)
                preset.is_modified = True
                self._save()
                logger.debug(f"Updated custom preset {preset_id}: {preset.values}")
                return preset.copy()

            builtin = self._builtins.get(preset_id)
            if builtin is None:
                logger.warning(f"Cannot update unknown preset: {preset_id}")
                return None

            derived_id = f"{preset_id}_custom"
            existing = self._custom.get(derived_id)
            if existing is not None:
                existing.values = dict(values)
                existing.is_modified = True
                derived = existing
                logger.debug(f"Overwrote derived preset {derived_id}: {derived.values}")
            else:
                derived = Preset(
                    id=derived_id,
                    name=f"{builtin.name} (Custom)",
                    values=dict(values),
                    is_custom=True,
                    is_modified=True,
                )
                self._custom[derived_id] = derived
                logger.info(f"Built-in preset '{preset_id}' forked into {derived_id}")
            self._save()
            return derived.copy()

    def rename(self, preset_id: str, name: str) -> bool:
        """Rename a custom preset. Built-ins keep their names."""
        with self._lock:
            preset = self._custom.get(preset_id)
            if preset is None:
                logger.warning(f"Cannot rename preset {preset_id}: not a custom preset")
                return False
            preset.name = name
            self._save()
            logger.info(f"Renamed preset {preset_id} to '{name}'")
            return True

    def remove(self, preset_id: str) -> bool:
        """
        Remove a custom preset.

        Removing a built-in or unknown id is a no-op.

        Returns:
            True if a preset was removed
        """
        with self._lock:
            if preset_id not in self._custom:
                if preset_id in self._builtins:
                    logger.debug(f"Ignoring removal of built-in preset {preset_id}")
                else:
                    logger.debug(f"Ignoring removal of unknown preset {preset_id}")
                return False
            removed = self._custom.pop(preset_id)
            self._save()
            logger.info(f"Removed custom preset '{removed.name}' ({preset_id})")
            return True
