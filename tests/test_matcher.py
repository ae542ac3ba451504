#!/usr/bin/env python3
"""
Tests for preset matching.
"""

import sys
import unittest
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from radiant_control.matcher import find_matching, matches, values_equal
from radiant_control.presets import Preset


def preset(preset_id, values, **kwargs):
    return Preset(id=preset_id, name=preset_id.title(), values=values, **kwargs)


class TestMatches(unittest.TestCase):
    """Exact key-set and value equality."""

    def test_equal_values_match(self):
        self.assertTrue(matches({'0x10': 50, '0x12': 50}, preset('mid', {'0x10': 50, '0x12': 50})))

    def test_key_order_is_irrelevant(self):
        live = {'0x12': 40, '0x10': 10}
        p = preset('midnight', {'0x10': 10, '0x12': 40})
        self.assertTrue(matches(live, p))
        self.assertTrue(matches(p.values, preset('live', live)))

    def test_different_value_does_not_match(self):
        self.assertFalse(matches({'0x10': 51, '0x12': 50}, preset('mid', {'0x10': 50, '0x12': 50})))

    def test_no_tolerance(self):
        self.assertFalse(matches({'0x10': 49}, preset('p', {'0x10': 50})))

    def test_live_superset_does_not_match(self):
        live = {'0x10': 50, '0x12': 50, '0x16': 100}
        self.assertFalse(matches(live, preset('mid', {'0x10': 50, '0x12': 50})))

    def test_preset_superset_does_not_match(self):
        self.assertFalse(matches({'0x10': 50}, preset('mid', {'0x10': 50, '0x12': 50})))

    def test_same_size_different_keys_do_not_match(self):
        self.assertFalse(matches({'0x10': 50, '0x16': 50}, preset('mid', {'0x10': 50, '0x12': 50})))

    def test_empty_maps_match(self):
        self.assertTrue(values_equal({}, {}))
        self.assertFalse(values_equal({}, {'0x10': 0}))

    def test_repeated_calls_are_stable(self):
        p = preset('mid', {'0x10': 50, '0x12': 50})
        results = [matches({'0x10': 50, '0x12': 50}, p) for _ in range(3)]
        self.assertEqual(results, [True, True, True])

    def test_matching_ignores_flags(self):
        live = {'0x10': 50}
        self.assertTrue(matches(live, preset('c', {'0x10': 50}, is_custom=True, is_modified=True)))


class TestFindMatching(unittest.TestCase):
    """First match in list order."""

    def test_returns_first_of_identical_presets(self):
        first = preset('a', {'0x10': 30, '0x12': 30})
        second = preset('b', {'0x10': 30, '0x12': 30})
        self.assertIs(find_matching({'0x12': 30, '0x10': 30}, [first, second]), first)
        self.assertIs(find_matching({'0x12': 30, '0x10': 30}, [second, first]), second)

    def test_returns_none_without_match(self):
        presets = [preset('a', {'0x10': 30}), preset('b', {'0x10': 40})]
        self.assertIsNone(find_matching({'0x10': 35}, presets))

    def test_empty_list(self):
        self.assertIsNone(find_matching({'0x10': 35}, []))


if __name__ == '__main__':
    unittest.main()
