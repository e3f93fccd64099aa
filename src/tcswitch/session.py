"""
Experiment session: one blinded, randomized pass over the catalogue.

A session runs one group. Conditions are applied in a shuffled order and
each one is revealed to the operator only when the next trial starts (the
last one once the operator acknowledges the end of testing). Every step is
written to the RunLedger. If the run is interrupted, shaping is cleared
and an interruption marker is logged, so the group number is reused on
the next attempt.
"""

import logging
import random
import signal
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Optional

from .catalog import ProfileCatalog
from .emulator import NetworkEmulator, ShapingResult
from .exceptions import ExperimentInterrupted
from .ledger import COMPLETION_MARKER, INTERRUPT_MARKER, REVEAL_MARKER, SEPARATOR, RunLedger
from .profile import NetworkProfile, format_number
from .shuffler import shuffle_profiles

logger = logging.getLogger(__name__)

OPERATOR_INTERRUPT = "interrupted by operator"


@contextmanager
def _signals_ignored():
    """Ignore SIGINT and SIGTERM inside the block (main thread only)."""
    try:
        previous = {
            signum: signal.signal(signum, signal.SIG_IGN)
            for signum in (signal.SIGINT, signal.SIGTERM)
        }
    except ValueError:
        # not the main thread; handlers cannot be changed
        yield
        return
    try:
        yield
    finally:
        for signum, handler in previous.items():
            if handler is not None:
                signal.signal(signum, handler)


@dataclass(frozen=True)
class TrialRecord:
    """One applied trial: its 1-based position, condition and tc outcome."""

    index: int
    profile: NetworkProfile
    result: ShapingResult


@dataclass
class SessionSummary:
    """Result of a completed group."""

    group_number: int
    interface: str
    order: tuple[str, ...]
    trials: list[TrialRecord] = field(default_factory=list)

    @property
    def failed_trials(self) -> list[TrialRecord]:
        return [t for t in self.trials if not t.result.success]


class ExperimentSession:
    """
    Runs one experiment group against a single interface.

    Args:
        catalog: Conditions to test.
        emulator: Emulator bound to the interface under test.
        ledger: Experiment ledger, used both for resumption and logging.
        prompt: Blocking operator acknowledgment, ``input`` by default.
        output: Operator-facing output, ``print`` by default.
        rng: Random source for the trial order.
    """

    def __init__(
        self,
        catalog: ProfileCatalog,
        emulator: NetworkEmulator,
        ledger: RunLedger,
        prompt: Optional[Callable[[str], str]] = None,
        output: Optional[Callable[[str], None]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.catalog = catalog
        self.emulator = emulator
        self.ledger = ledger
        self.prompt = prompt or input
        self.output = output or print
        self.rng = rng
        self.group_number: Optional[int] = None
        self.order: tuple[str, ...] = ()
        self.trials: list[TrialRecord] = []
        self._cleaned_up = False

    @property
    def interface(self) -> str:
        return self.emulator.interface

    @property
    def total(self) -> int:
        return len(self.order)

    def run(self) -> SessionSummary:
        """
        Run a full group.

        Returns:
            SessionSummary of the completed group.

        Raises:
            ExperimentInterrupted: If a signal or closed input aborted the
                group. Shaping has been cleared by then.
        """
        self.group_number = self.ledger.current_group_number()

        try:
            self._start_group()
            for index in range(1, self.total + 1):
                if index > 1:
                    self._reveal(index - 1)
                self._run_trial(index)
                self._wait(
                    f"  Trial {index}/{self.total} is running. "
                    f"Press Enter when testing is complete..."
                )
            self._reveal(self.total)
            self._restore_network()
            self._show_summary()
        except KeyboardInterrupt:
            self._interrupt_cleanup(OPERATOR_INTERRUPT)
            raise ExperimentInterrupted(OPERATOR_INTERRUPT) from None
        except ExperimentInterrupted as e:
            self._interrupt_cleanup(e.reason)
            raise
        except Exception:
            self._clear_quietly()
            raise

        return SessionSummary(
            group_number=self.group_number,
            interface=self.interface,
            order=self.order,
            trials=list(self.trials),
        )

    def _start_group(self) -> None:
        started = self.ledger.timestamp()
        self._print_separator()
        self.output(f"    Group {self.group_number}")
        self.output(f"    Date: {started}")
        self.output(f"    Interface: {self.interface}")
        self.output(f"    Trials: {len(self.catalog)}")
        self._print_separator()

        self.ledger.append(SEPARATOR)
        self.ledger.append(f"Group {self.group_number} started")
        self.ledger.append(f"Date: {started}")
        self.ledger.append(f"Interface: {self.interface}")
        self.ledger.append(f"Profiles file: {self.catalog.source}")
        self.ledger.append(f"Trials: {len(self.catalog)}")
        self.ledger.append(SEPARATOR)

        self.order = tuple(shuffle_profiles(self.catalog.ids, self.rng))
        self.ledger.append(f"Random order: {' '.join(self.order)}")
        logger.info(
            f"Starting group {self.group_number} with {self.total} trials on {self.interface}"
        )

    def _run_trial(self, index: int) -> None:
        profile = self.catalog[self.order[index - 1]]

        self._print_separator()
        self.output(f"  > Trial {index}/{self.total} (group {self.group_number})")

        self.ledger.append(f"--- Trial {index}/{self.total} ---")
        self.ledger.append(f"  Condition ID: {profile.id}")
        self.ledger.append(
            f"  RTT: {format_number(profile.rtt_ms)}ms "
            f"(one-way delay: {profile.one_way_delay_ms:.1f}ms)"
        )
        self.ledger.append(f"  Jitter: {format_number(profile.jitter_ms)}ms")
        self.ledger.append(f"  Loss: {format_number(profile.loss_pct)}%")

        result = self.emulator.apply(profile)
        self.trials.append(TrialRecord(index=index, profile=profile, result=result))

        if profile.is_baseline:
            self.ledger.append("  Command: clear all shaping rules (normal network)")
        else:
            self.ledger.append(f"  Command: {result.command}")

        if result.success:
            self.ledger.append("  Result: success")
            self.output("  [tc] Condition applied")
        else:
            self.ledger.append(
                f"  Result: failed (exit code: {result.returncode}, output: {result.output})"
            )
            self.output(f"  [tc] Command failed! (exit code: {result.returncode})")
            self.output(f"  Output: {result.output}")

        self.output(f"  Trial {index}/{self.total} condition is set, start testing.")

    def _reveal(self, index: int) -> None:
        profile = self.catalog[self.order[index - 1]]
        self.output("")
        self.output("  +" + "-" * 50 + "+")
        self.output(f"  | {REVEAL_MARKER} Trial {index}/{self.total} condition:")
        self.output(f"  | {profile.describe()}")
        self.output("  +" + "-" * 50 + "+")
        self.output("")
        self.ledger.append(
            f"{REVEAL_MARKER} Trial {index}/{self.total} condition: {profile.describe()}"
        )

    def _restore_network(self) -> None:
        self.output("Clearing shaping rules, restoring normal network...")
        self.emulator.clear()
        self.ledger.append("All shaping rules cleared, network restored")
        self.output("Network restored.")

    def _show_summary(self) -> None:
        self._print_separator()
        self.output(f"    Group {self.group_number} summary")
        self._print_separator()
        self.output(f"  {'Trial':<10} {'ID':<8} {'RTT':<12} {'Jitter':<14} {'Loss':<10}")
        self.output(f"  {'-' * 8:<10} {'-' * 6:<8} {'-' * 10:<12} {'-' * 12:<14} {'-' * 8:<10}")

        self.ledger.append(f"--- Group {self.group_number} summary ---")
        for index, profile_id in enumerate(self.order, start=1):
            profile = self.catalog[profile_id]
            position = f"{index}/{self.total}"
            self.output(
                f"  {position:<10} {profile.id:<8} "
                f"{format_number(profile.rtt_ms) + 'ms':<12} "
                f"{format_number(profile.jitter_ms) + 'ms':<14} "
                f"{format_number(profile.loss_pct) + '%':<10}"
            )
            self.ledger.append(f"  Trial {position}: {profile.describe()}")

        self.ledger.append(f"{COMPLETION_MARKER} Group {self.group_number} finished")
        self.ledger.append(f"End time: {self.ledger.timestamp()}")
        self.ledger.append(SEPARATOR)

        self._print_separator()
        self.output(f"  Group {self.group_number} complete.")
        self.output(f"  Ledger: {self.ledger.path}")

    def _wait(self, message: str) -> None:
        try:
            self.prompt(message)
        except EOFError:
            raise ExperimentInterrupted("aborted (operator input closed)") from None

    def _interrupt_cleanup(self, reason: str) -> None:
        """Clear shaping and record the interruption. Runs at most once."""
        if self._cleaned_up:
            return
        self._cleaned_up = True

        self.output("")
        self.output(f"[warning] Experiment {reason}, clearing shaping rules...")
        # a second Ctrl+C must not cut the clear or the ledger entry short
        with _signals_ignored():
            self._clear_quietly()
            try:
                self.ledger.append(
                    f"{INTERRUPT_MARKER} Experiment {reason}, shaping rules cleared"
                )
                self.ledger.append(SEPARATOR)
            except OSError as e:
                logger.error(f"Could not record interruption in {self.ledger.path}: {e}")
        self.output("Shaping rules cleared, network restored.")
        logger.warning(f"Group {self.group_number} {reason}")

    def _clear_quietly(self) -> None:
        try:
            self.emulator.clear()
        except Exception as e:
            logger.error(f"Failed to clear shaping on {self.interface}: {e}")

    def _print_separator(self) -> None:
        self.output("=" * 60)
