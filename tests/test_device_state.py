#!/usr/bin/env python3
"""
Tests for the device state cache.
"""

import sys
import unittest
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from radiant_control.device_state import DeviceStateCache, DisplayInfo


class TestDisplayRegistry(unittest.TestCase):

    def setUp(self):
        self.cache = DeviceStateCache()

    def test_add_display_once(self):
        info = DisplayInfo(id='1:RD280UA:ABC', display_key='1', model='RD280UA')
        self.assertTrue(self.cache.add_display(info))
        self.assertFalse(self.cache.add_display(DisplayInfo(id='1:RD280UA:ABC', display_key='1')))
        self.assertEqual(self.cache.displays(), [info])
        self.assertEqual(self.cache.get_display('1:RD280UA:ABC').model, 'RD280UA')

    def test_discovery_order(self):
        for key in ['2', '1', '3']:
            self.cache.add_display(DisplayInfo(id=key, display_key=key))
        self.assertEqual([d.id for d in self.cache.displays()], ['2', '1', '3'])

    def test_display_label(self):
        self.assertEqual(str(DisplayInfo(id='1', display_key='1', model='RD280UA', mfg='BNQ')),
                         'BNQ RD280UA (Display 1)')
        self.assertEqual(str(DisplayInfo(id='2', display_key='2')), '2 (Display 2)')


class TestStateUpdates(unittest.TestCase):

    def setUp(self):
        self.cache = DeviceStateCache()

    def test_unknown_display(self):
        self.assertIsNone(self.cache.get('1'))
        self.assertEqual(self.cache.values('1'), {})
        self.assertIsNone(self.cache.token('1'))
        self.assertFalse(self.cache.has_values('1'))
        self.assertFalse(self.cache.changed_since('1', None))

    def test_update_replaces_wholesale(self):
        self.cache.update('1', {'0x10': 50, '0x12': 50}, token=1)
        self.cache.update('1', {'0x10': 60}, token=2)
        self.assertEqual(self.cache.values('1'), {'0x10': 60})

    def test_stale_token_ignored(self):
        self.assertTrue(self.cache.update('1', {'0x10': 50}, token=5))
        self.assertFalse(self.cache.update('1', {'0x10': 10}, token=4))
        self.assertFalse(self.cache.update('1', {'0x10': 10}, token=5))
        self.assertEqual(self.cache.values('1'), {'0x10': 50})
        self.assertEqual(self.cache.token('1'), 5)

    def test_missing_token_is_synthesized(self):
        self.cache.update('1', {'0x10': 50})
        self.cache.update('1', {'0x10': 51})
        self.assertEqual(self.cache.token('1'), 2)
        self.cache.update('1', {'0x10': 52}, token=10)
        self.cache.update('1', {'0x10': 53})
        self.assertEqual(self.cache.token('1'), 11)

    def test_tokens_are_per_display(self):
        self.cache.update('1', {'0x10': 50}, token=100)
        self.assertTrue(self.cache.update('2', {'0x10': 50}, token=1))

    def test_changed_since(self):
        self.cache.update('1', {'0x10': 50}, token=3)
        self.assertTrue(self.cache.changed_since('1', None))
        self.assertTrue(self.cache.changed_since('1', 2))
        self.assertFalse(self.cache.changed_since('1', 3))

    def test_flags_and_copies(self):
        self.cache.update('1', {'0x10': 50}, token=1, ready=False, error='ddcutil failed', caps='(prot(monitor))')
        state = self.cache.get('1')
        self.assertFalse(state.ready)
        self.assertEqual(state.error, 'ddcutil failed')
        self.assertEqual(state.caps, '(prot(monitor))')
        state.values['0x10'] = 0
        self.cache.values('1')['0x10'] = 0
        self.assertEqual(self.cache.values('1'), {'0x10': 50})


if __name__ == '__main__':
    unittest.main()
