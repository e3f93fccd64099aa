"""
Host-side helpers: network interface discovery and privilege checks.

Thin wrappers around ``ip`` and ``sudo`` so the experiment can validate
its environment before touching any shaping rule.
"""

import logging
import os
import subprocess

from .exceptions import InterfaceNotFoundError, SudoNotAvailableError, ValidationError

logger = logging.getLogger(__name__)


def is_root() -> bool:
    """True if the process runs with effective uid 0."""
    return os.geteuid() == 0


def check_sudo() -> bool:
    """
    Check if sudo is available without password.

    Returns:
        True if passwordless sudo is available.
    """
    try:
        result = subprocess.run(["sudo", "-n", "true"], capture_output=True, timeout=5)
    except (OSError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0


def check_privileges(use_sudo: bool = True) -> None:
    """
    Ensure tc can be run with the required privileges.

    Raises:
        SudoNotAvailableError: If neither root nor passwordless sudo is available.
    """
    if is_root():
        return
    if use_sudo and check_sudo():
        logger.debug("Not running as root, using passwordless sudo for tc")
        return
    raise SudoNotAvailableError(
        "Root privileges are required for traffic shaping; run with sudo"
    )


def list_interfaces() -> list[tuple[str, str]]:
    """
    List network interfaces and their operational state.

    Returns:
        List of (name, state) tuples, e.g. [("lo", "UNKNOWN"), ("eth0", "UP")].
        Empty if ``ip`` is not available.
    """
    try:
        result = subprocess.run(
            ["ip", "-br", "link", "show"], capture_output=True, text=True, timeout=5
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning(f"Could not list interfaces: {e}")
        return []

    interfaces = []
    for line in result.stdout.splitlines():
        fields = line.split()
        if not fields:
            continue
        # veth pairs are reported as "veth0@if3"
        name = fields[0].split("@", 1)[0]
        state = fields[1] if len(fields) > 1 else ""
        interfaces.append((name, state))
    return interfaces


def interface_exists(name: str) -> bool:
    """Check whether a network interface exists on this host."""
    try:
        result = subprocess.run(
            ["ip", "link", "show", name], capture_output=True, text=True, timeout=5
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning(f"Could not query interface {name}: {e}")
        return False
    return result.returncode == 0


def validate_interface(name: str) -> str:
    """
    Validate an operator-supplied interface name.

    Args:
        name: Interface name as typed by the operator.

    Returns:
        The name with surrounding whitespace removed.

    Raises:
        ValidationError: If the name is empty.
        InterfaceNotFoundError: If no such interface exists.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Network interface name must not be empty")
    if not interface_exists(name):
        raise InterfaceNotFoundError(name)
    return name
