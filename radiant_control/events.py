"""
Events - Display feed events and the backend contract
=====================================================
"""

from typing import Callable, List, Optional, Union
from dataclasses import dataclass, field

from .device_state import DisplayInfo
from .presets import ParameterValues


@dataclass
class DisplayDiscovered:
    """A display appeared on the bus."""
    info: DisplayInfo


@dataclass
class DisplayStateChanged:
    """A complete value snapshot for one display."""
    display_id: str
    values: ParameterValues = field(default_factory=dict)
    token: Optional[int] = None
    ready: bool = True
    error: Optional[str] = None
    caps: Optional[str] = None


DisplayEvent = Union[DisplayDiscovered, DisplayStateChanged]


class DisplayBackend:
    """
    External collaborator that talks to the hardware.

    The preset core never implements the transport; it only calls these
    three methods. set_parameter_value may be slow and its result is not
    observed.
    """

    def list_displays(self) -> List[DisplayInfo]:
        """Return displays known at startup."""
        raise NotImplementedError

    def set_parameter_value(self, display_id: str, code: str, value: int):
        """Write one parameter to a display."""
        raise NotImplementedError

    def subscribe(self, callback: Callable[[DisplayEvent], None]):
        """Register a callback for DisplayDiscovered / DisplayStateChanged events."""
        raise NotImplementedError
