"""
Custom exceptions for the tcswitch package.
"""

from typing import Optional


class TcSwitchError(Exception):
    """Base exception for all tcswitch errors."""

    pass


class ConfigError(TcSwitchError):
    """
    Raised when configuration cannot be loaded.

    Configuration errors are fatal and are raised before any shaping
    rule is touched.
    """

    pass


class CatalogError(ConfigError):
    """
    Raised when the network condition catalogue cannot be loaded.

    Check that the file exists, is readable, and declares at least one
    well-formed condition.
    """

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"Failed to load network conditions from: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class ValidationError(TcSwitchError):
    """Raised when operator input or the host environment is unusable."""

    pass


class InterfaceNotFoundError(ValidationError):
    """Raised when the requested network interface does not exist."""

    def __init__(self, interface: str):
        self.interface = interface
        super().__init__(f"Network interface does not exist: {interface}")


class ProfileNotFoundError(ValidationError):
    """
    Raised when a requested network condition is not in the catalogue.

    Check that the condition id is spelled as in the profile file.
    """

    def __init__(self, profile_id: str):
        self.profile_id = profile_id
        super().__init__(f"Network condition not found: {profile_id}")


class SudoNotAvailableError(ValidationError):
    """
    Raised when root privileges are required but not available.

    Traffic shaping requires root privileges to execute tc commands.
    Run as root or configure passwordless sudo for tc.
    """

    def __init__(self, message: str = "Root privileges are required for traffic shaping"):
        super().__init__(message)


class ImpairmentError(TcSwitchError):
    """
    Raised when a tc command exits with a non-zero status.

    This may indicate insufficient permissions, invalid parameters,
    or a missing sch_netem kernel module.
    """

    def __init__(self, command: Optional[str], returncode: int, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        message = f"Command failed (exit {returncode}): {command}"
        if stderr:
            message += f"\nStderr: {stderr}"
        super().__init__(message)


class ExperimentInterrupted(TcSwitchError):
    """Raised when an experiment group is aborted by a signal."""

    def __init__(self, reason: str = "interrupted by operator"):
        self.reason = reason
        super().__init__(f"Experiment {reason}")
