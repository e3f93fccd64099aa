"""
Network Emulator using Linux tc/netem.

Provides the NetworkEmulator class for applying a NetworkProfile (delay,
jitter and packet loss) to a network interface, and clearing it again.
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import Optional

from .exceptions import ImpairmentError
from .interfaces import is_root
from .profile import NetworkProfile, format_number

logger = logging.getLogger(__name__)

JITTER_DISTRIBUTION = "normal"


@dataclass(frozen=True)
class ShapingResult:
    """
    Outcome of a tc invocation.

    Attributes:
        command: Command line that was run, or None for a pure clear.
        returncode: Exit status of tc (0 on success, -1 if tc could not run).
        output: Diagnostic text from tc (stderr, falling back to stdout).
    """

    command: Optional[str] = None
    returncode: int = 0
    output: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def raise_for_status(self) -> None:
        """Raise ImpairmentError if the command failed."""
        if not self.success:
            raise ImpairmentError(self.command, self.returncode, self.output)


def build_netem_params(profile: NetworkProfile) -> list[str]:
    """
    Build the netem parameter list for a profile.

    The round-trip time is halved into a one-way delay. Jitter is attached
    to the delay with a normal distribution. Zero-valued impairments are
    left out entirely, so the baseline profile yields no parameters.

    Example:
        >>> build_netem_params(NetworkProfile("C02", 100, 10, 2))
        ['delay', '50.0ms', '10ms', 'distribution', 'normal', 'loss', '2%']
    """
    params: list[str] = []

    if profile.rtt_ms != 0 or profile.jitter_ms != 0:
        params += ["delay", f"{profile.one_way_delay_ms:.1f}ms"]
        if profile.jitter_ms != 0:
            params += [
                f"{format_number(profile.jitter_ms)}ms",
                "distribution",
                JITTER_DISTRIBUTION,
            ]

    if profile.loss_pct != 0:
        params += ["loss", f"{format_number(profile.loss_pct)}%"]

    return params


class NetworkEmulator:
    """
    Network condition emulator using Linux tc/netem.

    Requires root (or passwordless sudo) for tc commands. Every apply
    starts by clearing the root qdisc, so applying a profile is idempotent
    whatever state the interface was left in.

    Example:
        >>> emulator = NetworkEmulator(interface="eth0")
        >>> emulator.apply(catalog["C02"]).success
        True
        >>> emulator.clear().success
        True

    Context manager usage:
        >>> with NetworkEmulator(interface="eth0") as emu:
        ...     emu.apply(catalog["C02"])
        ...     # Rules are automatically cleared on exit
    """

    def __init__(
        self,
        interface: str = "eth0",
        use_sudo: bool = True,
        timeout_sec: float = 10.0,
    ):
        """
        Initialize the network emulator.

        Args:
            interface: Network interface to apply rules to.
            use_sudo: Prefix tc commands with sudo when not running as root.
            timeout_sec: Timeout for each tc invocation.
        """
        self.interface = interface
        self.use_sudo = use_sudo
        self.timeout_sec = timeout_sec
        self.current_profile: Optional[str] = None

    def __enter__(self) -> "NetworkEmulator":
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager, clearing all rules."""
        self.clear()

    def apply(self, profile: NetworkProfile) -> ShapingResult:
        """
        Apply a network profile to the interface.

        Existing rules are cleared first. The baseline (all-zero) profile
        is a pure clear.

        Args:
            profile: Profile to apply.

        Returns:
            ShapingResult of the add command. Failures are logged, not raised.
        """
        cleared = self.clear()

        if profile.is_baseline:
            logger.info(f"Applied baseline profile {profile.id}: shaping cleared")
            self.current_profile = profile.id
            return cleared

        params = build_netem_params(profile)
        result = self._run_tc_command(
            ["qdisc", "add", "dev", self.interface, "root", "netem", *params]
        )

        if result.success:
            self.current_profile = profile.id
            logger.info(f"Applied profile {profile.id} on {self.interface}")
        else:
            logger.error(
                f"Failed to apply shaping on {self.interface} "
                f"(exit {result.returncode}): {result.output}"
            )
        return result

    def clear(self) -> ShapingResult:
        """
        Clear all tc rules from the interface.

        Returns:
            A successful ShapingResult. A failed delete (typically because no
            qdisc was installed) is logged and ignored.
        """
        result = self._run_tc_command(["qdisc", "del", "dev", self.interface, "root"])
        if not result.success:
            # "RTNETLINK answers: No such file or directory" when nothing is installed
            logger.debug(f"Ignoring clear failure on {self.interface}: {result.output}")

        self.current_profile = None
        return ShapingResult(command=result.command)

    def _tc_argv(self, args: list[str]) -> list[str]:
        argv = ["tc", *args]
        if self.use_sudo and not is_root():
            argv = ["sudo", *argv]
        return argv

    def _run_tc_command(self, args: list[str]) -> ShapingResult:
        """Execute a tc command."""
        argv = self._tc_argv(args)
        cmd = " ".join(argv)
        logger.debug(f"Running: {cmd}")

        try:
            result = subprocess.run(
                argv, capture_output=True, text=True, timeout=self.timeout_sec
            )
        except subprocess.TimeoutExpired:
            logger.error(f"tc command timed out after {self.timeout_sec}s on {self.interface}")
            return ShapingResult(command=cmd, returncode=-1, output="timed out")
        except OSError as e:
            logger.error(f"tc command error: {e}")
            return ShapingResult(command=cmd, returncode=-1, output=str(e))

        output = (result.stderr or result.stdout or "").strip()
        return ShapingResult(command=cmd, returncode=result.returncode, output=output)

    def get_status(self) -> dict:
        """
        Get current tc/netem status.

        Returns:
            Dictionary with interface, profile info, and tc output.
        """
        argv = ["tc", "qdisc", "show", "dev", self.interface]
        try:
            result = subprocess.run(
                argv, capture_output=True, text=True, timeout=self.timeout_sec
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            return {
                "interface": self.interface,
                "current_profile": self.current_profile,
                "error": str(e),
            }

        return {
            "interface": self.interface,
            "current_profile": self.current_profile,
            "tc_output": result.stdout,
            "netem_active": "netem" in result.stdout,
        }


# Convenience functions for scripting
def apply_profile(
    profile: NetworkProfile, interface: str = "eth0", use_sudo: bool = True
) -> ShapingResult:
    """
    Apply a single profile to an interface.

    Args:
        profile: Profile to apply.
        interface: Network interface to apply to.
        use_sudo: Prefix tc with sudo when not running as root.

    Returns:
        ShapingResult of the apply.
    """
    emulator = NetworkEmulator(interface=interface, use_sudo=use_sudo)
    return emulator.apply(profile)


def clear_profile(interface: str = "eth0", use_sudo: bool = True) -> ShapingResult:
    """
    Clear all network emulation rules.

    Args:
        interface: Network interface to clear rules from.
        use_sudo: Prefix tc with sudo when not running as root.

    Returns:
        ShapingResult of the clear.
    """
    emulator = NetworkEmulator(interface=interface, use_sudo=use_sudo)
    return emulator.clear()
