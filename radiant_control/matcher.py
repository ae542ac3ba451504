"""
Matcher - Decide whether live values equal a preset
===================================================
"""

from typing import Iterable, Mapping, Optional

from .presets import Preset


def values_equal(a: Mapping[str, int], b: Mapping[str, int]) -> bool:
    """Exact equality of two value maps: same keys, same integers."""
    return dict(a) == dict(b)


def matches(values: Mapping[str, int], preset: Preset) -> bool:
    """
    Check whether live values match a preset.

    No subset matching: a preset naming a code the live state does not
    report (or the reverse) never matches. Values compare exactly.
    """
    return values_equal(values, preset.values)


def find_matching(values: Mapping[str, int], presets: Iterable[Preset]) -> Optional[Preset]:
    """Return the first preset in order whose values match, or None."""
    for preset in presets:
        if matches(values, preset):
            return preset
    return None
