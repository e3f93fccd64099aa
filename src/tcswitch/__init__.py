"""
tcswitch - blinded network condition switching with Linux tc/netem.

This package runs a controlled network-impairment experiment: it reads a
catalogue of network conditions (round-trip latency, jitter, packet loss),
applies them to an interface in a randomized order, reveals each
condition to the operator only after its trial, and keeps an append-only
ledger from which interrupted experiment groups resume.

Example:
    >>> from tcswitch import ProfileCatalog, NetworkEmulator, RunLedger, ExperimentSession
    >>> catalog = ProfileCatalog.load("configs/profiles.txt")
    >>> session = ExperimentSession(
    ...     catalog, NetworkEmulator(interface="eth0"), RunLedger("logs/tc_experiment.log")
    ... )
    >>> summary = session.run()

Using the emulator directly:
    >>> with NetworkEmulator(interface="eth0") as emu:
    ...     emu.apply(catalog["C02"])
"""

from .catalog import ProfileCatalog
from .emulator import NetworkEmulator, ShapingResult, apply_profile, clear_profile
from .exceptions import (
    CatalogError,
    ConfigError,
    ExperimentInterrupted,
    ImpairmentError,
    InterfaceNotFoundError,
    ProfileNotFoundError,
    SudoNotAvailableError,
    TcSwitchError,
    ValidationError,
)
from .ledger import RunLedger
from .profile import NetworkProfile
from .session import ExperimentSession, SessionSummary, TrialRecord
from .shuffler import shuffle_profiles

__version__ = "0.1.0"

__all__ = [
    # Core classes
    "NetworkProfile",
    "ProfileCatalog",
    "RunLedger",
    "NetworkEmulator",
    "ShapingResult",
    "ExperimentSession",
    "SessionSummary",
    "TrialRecord",
    # Exceptions
    "TcSwitchError",
    "ConfigError",
    "CatalogError",
    "ValidationError",
    "InterfaceNotFoundError",
    "ProfileNotFoundError",
    "SudoNotAvailableError",
    "ImpairmentError",
    "ExperimentInterrupted",
    # Convenience functions
    "shuffle_profiles",
    "apply_profile",
    "clear_profile",
    # Version
    "__version__",
]
