"""
Presets - Parameter codes, preset records and the built-in set
==============================================================
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Union
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# ParameterCode is an opaque VCP code string such as "0x10"
ParameterValues = Dict[str, int]

VCP_BRIGHTNESS = "0x10"
VCP_CONTRAST = "0x12"
VCP_RED_GAIN = "0x16"
VCP_GREEN_GAIN = "0x18"
VCP_BLUE_GAIN = "0x1a"

MIN_VALUE = 0
MAX_VALUE = 100


class RadiantControlError(Exception):
    """Base class for preset core errors."""
    pass


class InvalidPresetError(RadiantControlError):
    """Raised when a preset record cannot be parsed."""
    pass


def normalize_code(code: Union[str, int], aliases: Optional[Mapping[str, str]] = None) -> str:
    """
    Turn user input into a canonical parameter code.

    Accepts integers (16), hex strings ("0X10"), decimal strings ("16")
    and alias names ("brightness").

    Args:
        code: Code as typed by a user or read from config
        aliases: Optional name -> code mapping

    Returns:
        Code in "0x%02x" form

    Raises:
        ValueError: If the code cannot be interpreted
    """
    if isinstance(code, bool):
        raise ValueError(f"Invalid parameter code: {code!r}")
    if isinstance(code, int):
        number = code
    else:
        text = str(code).strip()
        if aliases and text.lower() in aliases:
            return normalize_code(aliases[text.lower()])
        try:
            number = int(text, 16) if text.lower().startswith("0x") else int(text)
        except ValueError:
            raise ValueError(f"Invalid parameter code: {code!r}") from None
    if not 0 <= number <= 0xFF:
        raise ValueError(f"Parameter code out of range: {code!r}")
    return f"0x{number:02x}"


def clamp_value(value: int) -> int:
    """Clamp a parameter value to 0-100."""
    return max(MIN_VALUE, min(MAX_VALUE, int(value)))


def is_valid_value(value: Any) -> bool:
    """Check that a value is an integer in 0-100 (bools rejected)."""
    return (isinstance(value, int) and not isinstance(value, bool)
            and MIN_VALUE <= value <= MAX_VALUE)


@dataclass
class Preset:
    """A named set of target parameter values."""
    id: str
    name: str
    values: ParameterValues = field(default_factory=dict)
    is_custom: bool = False
    is_modified: bool = False  # Informational only

    def copy(self, **changes) -> 'Preset':
        """Return an independent copy, optionally with fields replaced."""
        data = {
            'id': self.id,
            'name': self.name,
            'values': dict(self.values),
            'is_custom': self.is_custom,
            'is_modified': self.is_modified,
        }
        data.update(changes)
        data['values'] = dict(data['values'])
        return Preset(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted record layout."""
        return {
            'id': self.id,
            'name': self.name,
            'values': dict(self.values),
            'is_custom': self.is_custom,
            'is_modified': self.is_modified,
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'Preset':
        """
        Create a Preset from a persisted record.

        Raises:
            InvalidPresetError: If the record is missing fields or holds bad values
        """
        if not isinstance(data, dict):
            raise InvalidPresetError(f"Preset record is not a mapping: {data!r}")

        preset_id = data.get('id')
        if not isinstance(preset_id, str) or not preset_id:
            raise InvalidPresetError(f"Preset record has no id: {data!r}")

        name = data.get('name', preset_id)
        if not isinstance(name, str):
            raise InvalidPresetError(f"Preset '{preset_id}' has a non-string name")

        values = data.get('values')
        if not isinstance(values, dict):
            raise InvalidPresetError(f"Preset '{preset_id}' has no values map")
        for code, value in values.items():
            if not isinstance(code, str) or not is_valid_value(value):
                raise InvalidPresetError(f"Preset '{preset_id}' has invalid value {code!r}={value!r}")

        return cls(
            id=preset_id,
            name=name,
            values=dict(values),
            is_custom=bool(data.get('is_custom', True)),
            is_modified=bool(data.get('is_modified', False)),
        )


# Built-in presets in fixed definition order
BUILTIN_PRESETS: List[Preset] = [
    Preset(id="brightest", name="Brightest", values={VCP_BRIGHTNESS: 100, VCP_CONTRAST: 75}),
    Preset(id="mid", name="Mid", values={VCP_BRIGHTNESS: 50, VCP_CONTRAST: 50}),
    Preset(id="midnight", name="Midnight", values={VCP_BRIGHTNESS: 10, VCP_CONTRAST: 40}),
]


def get_builtin_preset(preset_id: str) -> Optional[Preset]:
    """Get a copy of a built-in preset by id."""
    for preset in BUILTIN_PRESETS:
        if preset.id == preset_id:
            return preset.copy()
    return None
