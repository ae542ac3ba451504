#!/usr/bin/env python3
"""
Tests for the fire-and-forget command dispatcher.
"""

import sys
import threading
import unittest
from pathlib import Path
from unittest.mock import Mock, call

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from radiant_control.dispatch import CommandDispatcher


class TestSynchronousDispatch(unittest.TestCase):

    def test_calls_setter_inline(self):
        setter = Mock()
        dispatcher = CommandDispatcher(setter, threaded=False)
        dispatcher.dispatch('1', '0x10', 50)
        setter.assert_called_once_with('1', '0x10', 50)

    def test_setter_errors_are_swallowed(self):
        setter = Mock(side_effect=RuntimeError("ddcutil failed"))
        dispatcher = CommandDispatcher(setter, threaded=False)
        dispatcher.dispatch('1', '0x10', 50)
        dispatcher.dispatch('1', '0x12', 50)
        self.assertEqual(setter.call_count, 2)

    def test_stopped_dispatcher_drops_commands(self):
        setter = Mock()
        dispatcher = CommandDispatcher(setter, threaded=False)
        dispatcher.stop()
        dispatcher.dispatch('1', '0x10', 50)
        setter.assert_not_called()


class TestThreadedDispatch(unittest.TestCase):

    def test_preserves_order_per_display(self):
        received = []
        lock = threading.Lock()

        def setter(display_id, code, value):
            with lock:
                received.append((display_id, code, value))

        dispatcher = CommandDispatcher(setter, threaded=True)
        for value in range(20):
            dispatcher.dispatch('1', '0x10', value)
            dispatcher.dispatch('2', '0x12', value)
        dispatcher.flush()

        self.assertEqual([v for d, _, v in received if d == '1'], list(range(20)))
        self.assertEqual([v for d, _, v in received if d == '2'], list(range(20)))
        dispatcher.stop()

    def test_failure_does_not_stop_worker(self):
        setter = Mock(side_effect=[RuntimeError("busy"), None])
        dispatcher = CommandDispatcher(setter, threaded=True)
        dispatcher.dispatch('1', '0x10', 1)
        dispatcher.dispatch('1', '0x10', 2)
        dispatcher.flush('1')
        self.assertEqual(setter.call_args_list, [call('1', '0x10', 1), call('1', '0x10', 2)])
        dispatcher.stop()

    def test_flush_unknown_display(self):
        dispatcher = CommandDispatcher(Mock(), threaded=True)
        dispatcher.flush('nope')
        dispatcher.stop()


if __name__ == '__main__':
    unittest.main()
