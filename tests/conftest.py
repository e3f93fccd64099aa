"""Pytest configuration and fixtures for tcswitch tests."""

import subprocess
from datetime import datetime

import pytest

from tcswitch import NetworkEmulator, ProfileCatalog, RunLedger


class FakeTc:
    """
    Stand-in for the tc binary.

    Tracks the root qdisc installed on each device so tests can assert on
    the resulting shaping state rather than on individual commands.
    """

    def __init__(self, fail_add: bool = False):
        self.qdiscs: dict[str, list[str]] = {}
        self.calls: list[list[str]] = []
        self.fail_add = fail_add
        self.add_error = "Error: Specified qdisc kind is unknown."

    def __call__(self, argv, **kwargs):
        self.calls.append(list(argv))
        args = list(argv)
        if args[0] == "sudo":
            args = args[1:]

        # tc qdisc <verb> dev <device> [root ...]
        verb, device = args[2], args[4]
        if verb == "del":
            if device not in self.qdiscs:
                return self._done(argv, 2, stderr="RTNETLINK answers: No such file or directory")
            del self.qdiscs[device]
            return self._done(argv, 0)

        if verb == "add":
            if self.fail_add:
                return self._done(argv, 2, stderr=self.add_error)
            if device in self.qdiscs:
                return self._done(argv, 2, stderr="Error: Exclusivity flag on, cannot modify.")
            self.qdiscs[device] = args[6:]
            return self._done(argv, 0)

        if verb == "show":
            params = self.qdiscs.get(device)
            if params:
                return self._done(argv, 0, stdout=f"qdisc {' '.join(params)} 8001: root refcnt 2\n")
            return self._done(argv, 0, stdout="qdisc noqueue 0: root refcnt 2\n")

        raise AssertionError(f"unexpected tc invocation: {argv}")

    def add_calls(self) -> list[list[str]]:
        return [c for c in self.calls if "add" in c]

    @staticmethod
    def _done(argv, returncode, stdout="", stderr=""):
        return subprocess.CompletedProcess(argv, returncode, stdout=stdout, stderr=stderr)


class Operator:
    """Scripted operator: acknowledges every prompt, optionally raising at one."""

    def __init__(self, raise_at=None, exc=KeyboardInterrupt):
        self.prompts: list[str] = []
        self.raise_at = raise_at
        self.exc = exc
        self.on_prompt = None

    def __call__(self, message: str) -> str:
        self.prompts.append(message)
        if self.on_prompt is not None:
            self.on_prompt(len(self.prompts))
        if self.raise_at is not None and len(self.prompts) == self.raise_at:
            raise self.exc
        return ""


@pytest.fixture
def fake_tc(mocker):
    """Patch subprocess.run in the emulator with a FakeTc."""
    fake = FakeTc()
    mocker.patch("tcswitch.emulator.subprocess.run", side_effect=fake)
    return fake


@pytest.fixture
def emulator(fake_tc):
    """Emulator on eth0 backed by the fake tc."""
    return NetworkEmulator(interface="eth0", use_sudo=False)


@pytest.fixture
def profile_lines():
    """Three-condition catalogue used across the session tests."""
    return [
        "# ID   RTT     JITTER   LOSS",
        "C01    0ms     0ms      0%",
        "C02    100ms   10ms     2%",
        "C03    50ms    5ms      0%",
    ]


@pytest.fixture
def catalog(profile_lines):
    """Catalogue built from profile_lines."""
    return ProfileCatalog.from_lines(profile_lines, source="profiles.txt")


@pytest.fixture
def profiles_file(tmp_path, profile_lines):
    """Write profile_lines to a temporary profiles file."""
    path = tmp_path / "profiles.txt"
    path.write_text("\n".join(profile_lines) + "\n")
    return path


@pytest.fixture
def ledger(tmp_path):
    """Ledger in a temporary directory with a fixed clock."""
    return RunLedger(tmp_path / "logs" / "tc_experiment.log", clock=lambda: datetime(2026, 10, 17, 14, 0, 0))


@pytest.fixture
def operator():
    """Operator that acknowledges every prompt."""
    return Operator()


@pytest.fixture
def make_operator():
    """Factory for operators that raise at a given prompt."""
    return Operator
