"""
Device State Cache - Latest known values per display
====================================================
"""

import logging
import threading
from typing import Dict, List, Optional
from dataclasses import dataclass, field

from .presets import ParameterValues

logger = logging.getLogger(__name__)


@dataclass
class DisplayInfo:
    """Identity of a discovered display."""
    id: str
    display_key: str
    model: Optional[str] = None
    mfg: Optional[str] = None
    serial: Optional[str] = None
    bus: Optional[str] = None

    def __str__(self):
        label = self.model or self.display_key
        if self.mfg:
            return f"{self.mfg} {label} (Display {self.display_key})"
        return f"{label} (Display {self.display_key})"


@dataclass
class DisplayState:
    """Last known state of one display."""
    values: ParameterValues = field(default_factory=dict)
    token: int = 0                # Strictly increasing per display
    ready: bool = False
    error: Optional[str] = None
    caps: Optional[str] = None


class DeviceStateCache:
    """
    Per-display latest values with a freshness token.

    Entries are replaced wholesale on every update; there is no partial
    merge. Freshness is decided by token ordering only.
    """

    def __init__(self):
        self._displays: Dict[str, DisplayInfo] = {}
        self._states: Dict[str, DisplayState] = {}
        self._lock = threading.Lock()

    def add_display(self, info: DisplayInfo) -> bool:
        """
        Register a discovered display.

        Returns:
            True if the display was new
        """
        with self._lock:
            if info.id in self._displays:
                logger.debug(f"Display {info.id} already known")
                return False
            self._displays[info.id] = info
        logger.info(f"Discovered display: {info}")
        return True

    def displays(self) -> List[DisplayInfo]:
        """Return known displays in discovery order."""
        with self._lock:
            return list(self._displays.values())

    def get_display(self, display_id: str) -> Optional[DisplayInfo]:
        with self._lock:
            return self._displays.get(display_id)

    def update(
        self,
        display_id: str,
        values: ParameterValues,
        token: Optional[int] = None,
        ready: bool = True,
        error: Optional[str] = None,
        caps: Optional[str] = None,
    ) -> bool:
        """
        Replace the cached state of a display.

        Args:
            display_id: Display the snapshot belongs to
            values: Complete current value set
            token: Freshness token; None lets the cache pick the next one
            ready: Whether the display finished its initial read
            error: Error reported by the transport, if any
            caps: Raw capabilities text, if known

        Returns:
            True if the snapshot was accepted, False if it was stale
        """
        with self._lock:
            current = self._states.get(display_id)
            current_token = current.token if current else None

            if token is None:
                token = (current_token or 0) + 1
            elif current_token is not None and token <= current_token:
                logger.debug(f"Dropping stale update for {display_id}: token {token} <= {current_token}")
                return False

            self._states[display_id] = DisplayState(
                values=dict(values),
                token=token,
                ready=ready,
                error=error,
                caps=caps,
            )
        if error:
            logger.warning(f"Display {display_id} reported error: {error}")
        logger.debug(f"Display {display_id} state #{token}: {values}")
        return True

    def get(self, display_id: str) -> Optional[DisplayState]:
        """Get a copy of the cached state, or None if nothing is known yet."""
        with self._lock:
            state = self._states.get(display_id)
            if state is None:
                return None
            return DisplayState(
                values=dict(state.values),
                token=state.token,
                ready=state.ready,
                error=state.error,
                caps=state.caps,
            )

    def values(self, display_id: str) -> ParameterValues:
        """Get the latest values for a display (empty if unknown)."""
        with self._lock:
            state = self._states.get(display_id)
            return dict(state.values) if state else {}

    def has_values(self, display_id: str) -> bool:
        with self._lock:
            return display_id in self._states

    def token(self, display_id: str) -> Optional[int]:
        with self._lock:
            state = self._states.get(display_id)
            return state.token if state else None

    def changed_since(self, display_id: str, token: Optional[int]) -> bool:
        """Check whether anything arrived for a display after the given token."""
        current = self.token(display_id)
        if current is None:
            return False
        return token is None or current > token
