#!/usr/bin/env python3
"""
Tests for configuration loading and app state persistence.
"""

import shutil
import sys
import tempfile
import unittest
from pathlib import Path

import yaml

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from radiant_control.config import Config


class TestConfig(unittest.TestCase):

    def setUp(self):
        self.tmp = Path(tempfile.mkdtemp())
        self.addCleanup(shutil.rmtree, self.tmp, ignore_errors=True)
        self.path = self.tmp / "config.yaml"

    def write(self, text):
        self.path.write_text(text)

    def test_defaults_when_missing(self):
        config = Config(self.path)
        self.assertFalse(config.load())
        self.assertFalse(config.selection.per_display)
        self.assertTrue(config.dispatch.threaded)
        self.assertEqual(config.storage.key, 'custom_presets')
        self.assertEqual(config.parameters['brightness'], '0x10')
        self.assertIsNone(config.startup_preset)

    def test_load_sections(self):
        self.write(
            "storage:\n"
            "  path: ~/presets-test\n"
            "  key: mine\n"
            "selection:\n"
            "  per_display: true\n"
            "dispatch:\n"
            "  threaded: false\n"
            "parameters:\n"
            "  Sharpness: 0x87\n"
            "  volume: '98'\n"
            "app_state:\n"
            "  last_selected_display_id: '1:RD280UA:SN1'\n"
            "  startup_preset: mid\n"
        )
        config = Config(self.path)
        self.assertTrue(config.load())
        self.assertEqual(config.storage.path, Path.home() / "presets-test")
        self.assertEqual(config.storage.key, 'mine')
        self.assertTrue(config.selection.per_display)
        self.assertFalse(config.dispatch.threaded)
        self.assertEqual(config.parameters['sharpness'], '0x87')
        self.assertEqual(config.parameters['volume'], '0x62')
        self.assertEqual(config.parameters['contrast'], '0x12')
        self.assertEqual(config.last_selected_display_id, '1:RD280UA:SN1')
        self.assertEqual(config.startup_preset, 'mid')

    def test_bad_alias_is_skipped(self):
        self.write("parameters:\n  broken: nope\n  brightness: 16\n")
        config = Config(self.path)
        self.assertTrue(config.load())
        self.assertNotIn('broken', config.parameters)
        self.assertEqual(config.parameters['brightness'], '0x10')

    def test_invalid_yaml(self):
        self.write("storage: [unclosed\n")
        config = Config(self.path)
        self.assertFalse(config.load())
        self.assertEqual(config.storage.key, 'custom_presets')

    def test_non_mapping(self):
        self.write("- just\n- a list\n")
        self.assertFalse(Config(self.path).load())

    def test_section_not_a_mapping_keeps_defaults(self):
        for text in ["storage: somewhere\n",
                     "selection: [1]\n",
                     "dispatch:\n  threaded: false\nparameters: 5\n"]:
            self.write(text)
            config = Config(self.path)
            self.assertFalse(config.load(), msg=text)
            self.assertEqual(config.storage.key, 'custom_presets')
            self.assertFalse(config.selection.per_display)
            self.assertTrue(config.dispatch.threaded)
            self.assertEqual(config.parameters['brightness'], '0x10')

    def test_resolve_code(self):
        config = Config(self.path)
        self.assertEqual(config.resolve_code('contrast'), '0x12')
        self.assertEqual(config.resolve_code('0x1A'), '0x1a')
        with self.assertRaises(ValueError):
            config.resolve_code('loudness')
        self.assertEqual(config.get_parameter_name('0x10'), 'brightness')
        self.assertEqual(config.get_parameter_name('0x99'), '0x99')

    def test_app_state_persists_and_keeps_other_sections(self):
        self.write("selection:\n  per_display: true\n")
        config = Config(self.path)
        config.load()
        self.assertTrue(config.set_last_selected_display('2:X:Y'))
        self.assertTrue(config.set_startup_preset('brightest'))

        data = yaml.safe_load(self.path.read_text())
        self.assertEqual(data['selection'], {'per_display': True})
        self.assertEqual(data['app_state'], {'last_selected_display_id': '2:X:Y', 'startup_preset': 'brightest'})

        self.assertTrue(config.set_startup_preset(None))
        reloaded = Config(self.path)
        reloaded.load()
        self.assertIsNone(reloaded.startup_preset)
        self.assertEqual(reloaded.last_selected_display_id, '2:X:Y')

    def test_save_failure(self):
        blocker = self.tmp / "file"
        blocker.write_text("x")
        config = Config(blocker / "config.yaml")
        self.assertFalse(config.save())


if __name__ == '__main__':
    unittest.main()
