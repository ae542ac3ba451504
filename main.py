#!/usr/bin/env python3
"""
Radiant Control - Display preset management
===========================================

Manage the brightness/contrast presets used by Radiant Control.
Built-in presets (brightest, mid, midnight) are always available;
custom presets are stored in the preset storage directory.

Usage:
    python main.py [--config PATH] [--debug] COMMAND

    Options:
        --config PATH             Path to configuration file
        --debug                   Enable debug logging
        --list                    List presets
        --create NAME CODE=VALUE  Create a custom preset (codes may be aliases)
        --duplicate ID            Duplicate a preset
        --delete ID               Delete a custom preset
        --rename ID NAME          Rename a custom preset
        --startup-preset ID       Preset applied when the first display is ready
                                  ("none" to disable)
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional


# Set up logging first
def setup_logging(debug: bool = False, log_file: Optional[Path] = None):
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO

    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=handlers,
    )

logger = logging.getLogger(__name__)


def _offline_dispatch(display_id: str, code: str, value: int):
    logger.warning(f"No display transport in CLI mode, not sending {code}={value} to {display_id}")


def _open_reconciler(config):
    """Build a store and reconciler from config, without a display transport."""
    from radiant_control.device_state import DeviceStateCache
    from radiant_control.preset_store import PresetStore
    from radiant_control.reconciler import Reconciler
    from radiant_control.storage import FileStorage

    store = PresetStore(FileStorage(config.storage.path), key=config.storage.key)
    return Reconciler(store, DeviceStateCache(), _offline_dispatch,
                      per_display=config.selection.per_display)


def parse_assignments(config, assignments: List[str]) -> Dict[str, int]:
    """
    Parse CODE=VALUE arguments.

    Raises:
        ValueError: On malformed assignments or out-of-range values
    """
    from radiant_control.presets import is_valid_value

    values = {}
    for item in assignments:
        if '=' not in item:
            raise ValueError(f"Expected CODE=VALUE, got '{item}'")
        name, _, raw_value = item.partition('=')
        code = config.resolve_code(name)
        try:
            value = int(raw_value)
        except ValueError:
            raise ValueError(f"Value for {name} is not a number: '{raw_value}'") from None
        if not is_valid_value(value):
            raise ValueError(f"Value for {name} must be 0-100, got {value}")
        values[code] = value
    return values


def list_presets(config) -> int:
    """Print all presets."""
    reconciler = _open_reconciler(config)
    presets = reconciler.store.list()

    print(f"{len(presets)} preset(s):\n")
    for p in presets:
        flags = []
        if p.is_custom:
            flags.append("custom")
        if p.is_modified:
            flags.append("modified")
        if p.id == config.startup_preset:
            flags.append("startup")
        values = ", ".join(
            f"{config.get_parameter_name(code)}={value}" for code, value in sorted(p.values.items())
        )
        suffix = f"  [{', '.join(flags)}]" if flags else ""
        print(f"  {p.id:<24} {p.name:<24} {values}{suffix}")
    return 0


def create_preset(config, name: str, assignments: List[str]) -> int:
    try:
        values = parse_assignments(config, assignments)
    except ValueError as e:
        print(f"Error: {e}")
        return 1
    if not values:
        print("Error: a preset needs at least one CODE=VALUE")
        return 1
    preset = _open_reconciler(config).create(name, values)
    print(f"Created preset '{preset.name}' ({preset.id})")
    return 0


def duplicate_preset(config, preset_id: str) -> int:
    preset = _open_reconciler(config).duplicate(preset_id)
    if preset is None:
        print(f"Error: preset not found: {preset_id}")
        return 1
    print(f"Created preset '{preset.name}' ({preset.id})")
    return 0


def delete_preset(config, preset_id: str) -> int:
    if not _open_reconciler(config).delete(preset_id):
        print(f"Error: {preset_id} is not a custom preset")
        return 1
    if config.startup_preset == preset_id:
        config.set_startup_preset(None)
    print(f"Deleted preset {preset_id}")
    return 0


def rename_preset(config, preset_id: str, name: str) -> int:
    if not _open_reconciler(config).rename(preset_id, name):
        print(f"Error: {preset_id} is not a custom preset")
        return 1
    print(f"Renamed preset {preset_id} to '{name}'")
    return 0


def set_startup_preset(config, preset_id: str) -> int:
    if preset_id.lower() == "none":
        config.set_startup_preset(None)
        print("Startup preset disabled")
        return 0
    if _open_reconciler(config).store.get(preset_id) is None:
        print(f"Error: preset not found: {preset_id}")
        return 1
    config.set_startup_preset(preset_id)
    print(f"Startup preset set to {preset_id}")
    return 0


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Radiant Control - display preset management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        '--config', '-c',
        type=Path,
        help='Path to configuration file'
    )
    parser.add_argument(
        '--debug', '-d',
        action='store_true',
        help='Enable debug logging'
    )

    commands = parser.add_mutually_exclusive_group(required=True)
    commands.add_argument(
        '--list', '-l',
        action='store_true',
        help='List presets'
    )
    commands.add_argument(
        '--create',
        nargs='+',
        metavar='ARG',
        help='Create a custom preset: NAME followed by CODE=VALUE pairs'
    )
    commands.add_argument(
        '--duplicate',
        metavar='ID',
        help='Duplicate a preset'
    )
    commands.add_argument(
        '--delete',
        metavar='ID',
        help='Delete a custom preset'
    )
    commands.add_argument(
        '--rename',
        nargs=2,
        metavar='ARG',
        help='Rename a custom preset: ID and new NAME'
    )
    commands.add_argument(
        '--startup-preset',
        metavar='ID',
        help='Preset applied when the first display is ready ("none" to disable)'
    )

    args = parser.parse_args(argv)

    setup_logging(args.debug)

    from radiant_control.config import Config

    config = Config(args.config)
    config.load()

    if args.list:
        return list_presets(config)
    if args.create:
        return create_preset(config, args.create[0], args.create[1:])
    if args.duplicate:
        return duplicate_preset(config, args.duplicate)
    if args.delete:
        return delete_preset(config, args.delete)
    if args.rename:
        return rename_preset(config, args.rename[0], args.rename[1])
    if args.startup_preset:
        return set_startup_preset(config, args.startup_preset)
    return 0


if __name__ == '__main__':
    sys.exit(main())
