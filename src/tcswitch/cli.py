"""
Command-line entry point for tcswitch.

Runs one blinded experiment group by default; a few one-shot actions
(listing, status, apply, clear) are available for setting up and
debugging the testbed.
"""

import argparse
import logging
import random
import signal
import sys
from typing import Optional

from .catalog import ProfileCatalog
from .config import Settings, load_settings
from .emulator import NetworkEmulator
from .exceptions import (
    ExperimentInterrupted,
    ProfileNotFoundError,
    TcSwitchError,
    ValidationError,
)
from .interfaces import check_privileges, list_interfaces, validate_interface
from .ledger import RunLedger
from .session import ExperimentSession

logger = logging.getLogger("tcswitch")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tcswitch",
        description="Blinded, randomized network condition switching with tc/netem",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML settings file (default: configs/tcswitch.yaml if present)"
    )
    parser.add_argument(
        "--profiles", "-p",
        default=None,
        help="Path to network condition profiles (text or YAML)"
    )
    parser.add_argument(
        "--log", "-l",
        default=None,
        help="Path to the experiment ledger"
    )
    parser.add_argument(
        "--interface", "-i",
        default=None,
        help="Network interface to shape (prompted for if omitted)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for the trial order"
    )
    parser.add_argument(
        "--no-sudo",
        action="store_true",
        help="Never prefix tc with sudo"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Increase diagnostic logging (-v info, -vv debug). Shows applied conditions."
    )

    actions = parser.add_mutually_exclusive_group()
    actions.add_argument(
        "--list-profiles",
        action="store_true",
        help="List network conditions in the profile file"
    )
    actions.add_argument(
        "--list-interfaces",
        action="store_true",
        help="List network interfaces"
    )
    actions.add_argument(
        "--status",
        action="store_true",
        help="Show the tc qdisc currently installed on the interface"
    )
    actions.add_argument(
        "--clear",
        action="store_true",
        help="Remove all shaping rules from the interface"
    )
    actions.add_argument(
        "--apply",
        metavar="ID",
        default=None,
        help="Apply a single network condition and exit"
    )
    return parser


def resolve_settings(args: argparse.Namespace) -> Settings:
    """Load settings and apply command-line overrides."""
    settings = load_settings(args.config)
    if args.profiles:
        settings.profiles_path = args.profiles
    if args.log:
        settings.ledger_path = args.log
    if args.interface:
        settings.interface = args.interface
    if args.seed is not None:
        settings.seed = args.seed
    if args.no_sudo:
        settings.use_sudo = False
    return settings


def print_interfaces() -> None:
    print("Available network interfaces:")
    for name, state in list_interfaces():
        print(f"  {name:<20} {state}")


def ask_interface(settings: Settings) -> str:
    """Return the configured interface, or prompt the operator for one."""
    if settings.interface:
        return validate_interface(settings.interface)

    print_interfaces()
    print()
    try:
        name = input("Enter the network interface to use: ")
    except EOFError:
        name = ""
    return validate_interface(name)


def _require_interface(settings: Settings) -> str:
    if not settings.interface:
        raise ValidationError("--interface is required for this action")
    return validate_interface(settings.interface)


def _raise_interrupted(signum, frame):
    raise ExperimentInterrupted(f"terminated by {signal.Signals(signum).name}")


def run_group(settings: Settings) -> int:
    """Validate the environment and run one experiment group."""
    check_privileges(settings.use_sudo)

    interface = ask_interface(settings)
    print(f"[info] Using network interface: {interface}")

    catalog = ProfileCatalog.load(settings.profiles_path)
    print(f"[info] Loaded {len(catalog)} network conditions.")

    rng = random.Random(settings.seed) if settings.seed is not None else None
    session = ExperimentSession(
        catalog=catalog,
        emulator=NetworkEmulator(
            interface=interface,
            use_sudo=settings.use_sudo,
            timeout_sec=settings.tc_timeout_sec,
        ),
        ledger=RunLedger(settings.ledger_path),
        rng=rng,
    )

    previous = signal.signal(signal.SIGTERM, _raise_interrupted)
    try:
        session.run()
    finally:
        signal.signal(signal.SIGTERM, previous)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # INFO records name the applied condition and would unblind the operator
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        settings = resolve_settings(args)

        if args.list_interfaces:
            print_interfaces()
            return 0

        if args.list_profiles:
            catalog = ProfileCatalog.load(settings.profiles_path)
            print(f"\nNetwork conditions in {catalog.source}:")
            for profile in catalog.values():
                print(f"  - {profile.describe()}")
            return 0

        if args.status:
            emulator = NetworkEmulator(interface=_require_interface(settings))
            status = emulator.get_status()
            print(f"Interface: {status['interface']}")
            if "error" in status:
                print(f"  Error: {status['error']}")
                return 1
            print(f"  netem active: {status['netem_active']}")
            print(status["tc_output"].rstrip())
            return 0

        if args.clear:
            check_privileges(settings.use_sudo)
            emulator = NetworkEmulator(
                interface=_require_interface(settings), use_sudo=settings.use_sudo
            )
            emulator.clear()
            print(f"[info] Shaping rules cleared on {emulator.interface}")
            return 0

        if args.apply:
            check_privileges(settings.use_sudo)
            interface = _require_interface(settings)
            catalog = ProfileCatalog.load(settings.profiles_path)
            if args.apply not in catalog:
                raise ProfileNotFoundError(args.apply)
            emulator = NetworkEmulator(interface=interface, use_sudo=settings.use_sudo)
            emulator.apply(catalog[args.apply]).raise_for_status()
            print(f"[info] Applied {catalog[args.apply].describe()} on {interface}")
            return 0

        return run_group(settings)

    except ExperimentInterrupted as e:
        print(f"[info] {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\n[info] Aborted by operator", file=sys.stderr)
        return 1
    except TcSwitchError as e:
        logger.debug("Aborting", exc_info=True)
        print(f"[error] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
