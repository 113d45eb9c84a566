#!/usr/bin/env python3
"""Videohub preset manager CLI.

Usage:
    videohub [--hub ID | --host IP] [--presets DIR] COMMAND [ARGS]

Environment variables:
    VIDEOHUB_CONFIG         Path to hubs.yaml
    VIDEOHUB_PRESETS_DIR    Preset base directory (default: ~/.videohub)
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config.inventory import HubInventory
from .devices import HubConnectionError
from .hub_engine.diff import summarize_compare
from .hub_engine.engine import HubSession
from .hub_engine.report import (
    format_state,
    format_full,
    format_compare,
    format_apply,
)
from .hub_engine.schema import PreconditionError
from .preset_store import PresetStore, PresetError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="videohub",
        description="Read, store, compare and apply Videohub routing presets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Show the hub's labels and routing
    videohub read

    # Capture the current routing as a preset
    videohub save sunday -d "Sunday service"

    # What would change if the preset were applied?
    videohub compare sunday

    # Write the preset's routing to a hub at another address
    videohub --host 192.168.1.248 apply sunday
""",
    )
    parser.add_argument("--config", type=str, help="Path to hubs.yaml")
    parser.add_argument("--hub", type=str, help="Hub ID from the inventory")
    parser.add_argument("--host", type=str, help="Hub IPv4 address (overrides the inventory host)")
    parser.add_argument(
        "--presets",
        type=Path,
        help="Preset base directory (default: $VIDEOHUB_PRESETS_DIR or ~/.videohub)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("hubs", help="List configured hubs")

    read = sub.add_parser("read", help="Read and show the hub status")
    read.add_argument("--full", action="store_true", help="Include the device info preamble")

    save = sub.add_parser("save", help="Read the hub and save it as a preset")
    save.add_argument("name")
    save.add_argument("-d", "--description", default="", help="Preset description")
    save.add_argument("--force", action="store_true", help="Overwrite an existing preset")

    show = sub.add_parser("show", help="Show a stored preset")
    show.add_argument("name")

    sub.add_parser("list", help="List stored presets")

    delete = sub.add_parser("delete", help="Delete a stored preset")
    delete.add_argument("name")

    compare = sub.add_parser("compare", help="Compare a preset with the hub")
    compare.add_argument("name")

    apply = sub.add_parser("apply", help="Write a preset's routing to the hub")
    apply.add_argument("name")
    apply.add_argument("--dry-run", action="store_true", help="Show the routes without sending")

    return parser


def make_session(args: argparse.Namespace) -> HubSession:
    inventory = HubInventory(args.config)
    hub = inventory.get_hub(args.hub)
    session = HubSession(hub, PresetStore(args.presets), hub_id=args.hub or inventory.default_hub_id)
    if args.host:
        session.set_hub(args.host)
    return session


async def run_command(args: argparse.Namespace, session: HubSession) -> int:
    """Run one subcommand; returns the exit code."""
    if args.command == "read":
        result = await session.read_hub()
        if args.full:
            print(format_full(result.state, result.preamble))
        else:
            print(format_state(result.state))

    elif args.command == "save":
        await session.read_hub()
        path = session.save_preset(args.name, args.description, overwrite=args.force)
        print(f"Preset saved as {path}")

    elif args.command == "show":
        state = session.load_preset(args.name)
        print(format_state(state, title=f"Preset {session.preset_name}"))

    elif args.command == "list":
        presets = session.store.list_presets()
        if not presets:
            print(f"No presets found in {session.store.presets_dir}")
        for info in presets:
            print(f"  - {info.name} : {info.description}")

    elif args.command == "delete":
        if session.delete_preset(args.name):
            print(f"Preset deleted: {args.name}")
        else:
            logger.error(f"Preset not found: {args.name}")
            return 1

    elif args.command == "compare":
        session.load_preset(args.name)
        await session.read_hub()
        rows = session.compare()
        print(format_compare(rows))
        print(summarize_compare(rows))

    elif args.command == "apply":
        session.load_preset(args.name)
        result = await session.apply_preset(dry_run=args.dry_run)
        print(format_apply(result, session.preset))
        if not result.success:
            return 1

    return 0


def main(argv=None) -> int:
    """Main entry point for the videohub CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)-5s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if args.command == "hubs":
        inventory = HubInventory(args.config)
        for hub_id in inventory.get_hub_ids():
            config = inventory.get_hub_config(hub_id)
            marker = "*" if hub_id == inventory.default_hub_id else " "
            print(f"{marker} {hub_id:20s} {config.get('host')}:{config.get('port')}  {config.get('name')}")
        return 0

    try:
        session = make_session(args)
        return asyncio.run(run_command(args, session))
    except (PreconditionError, PresetError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except HubConnectionError as e:
        print(f"Error: Cannot connect to Videohub. {e}", file=sys.stderr)
        return 1
    except (KeyError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
